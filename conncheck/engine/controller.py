# conncheck/engine/controller.py

import inspect
import logging
import time
from datetime import timedelta
from typing import Callable, Sequence

from conncheck.config import Settings
from conncheck.engine.dispatcher import dispatch
from conncheck.engine.expectation import (
    Expectation,
    ExpectationOption,
    describe_expected,
    expect_with_loss,
    expect_with_src_ips,
)
from conncheck.engine.rules import matches
from conncheck.engine.state import AttemptState, unactivated_checkers
from conncheck.errors import ConfigurationError, ConnectivityError
from conncheck.prober.base import ConnectionSource, ConnectionTarget

logger = logging.getLogger(__name__)

MIN_TIMEOUT_S = 0.1


class Checker:
    """
    Records connectivity expectations and checks them against what the probes actually see:

        cc = Checker()
        cc.expect_none(w[2], w[0], 1234)
        cc.expect_some(w[1], w[0], 5678)
        cc.check_connectivity()

    Every expectation is probed concurrently on each attempt; attempts repeat until
    everything matches or the timeout (and the two-attempt floor) runs out.
    """

    def __init__(self, settings: Settings | None = None,
                 on_fail: Callable[[str], None] | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.s = settings or Settings()
        self.protocol = self.s.protocol
        self.reverse_direction = self.s.reverse_direction
        self.check_snat = self.s.check_snat
        self.retries_disabled = self.s.retries_disabled
        # called instead of raising ConnectivityError (useful for testing the checker itself)
        self.on_fail = on_fail
        self.clock = clock
        self.expectations: list[Expectation] = []

    # -------------------------------
    # Registration
    # -------------------------------
    def expect_some(self, source, target, *explicit_port: int):
        self._expect(True, source, target, explicit_port)

    def expect_snat(self, source, src_ip: str, target, *explicit_port: int):
        self.check_snat = True
        self._expect(True, source, target, explicit_port, expect_with_src_ips(src_ip))

    def expect_none(self, source, target, *explicit_port: int):
        self._expect(False, source, target, explicit_port)

    def expect_connectivity(self, source, target, ports: Sequence[int] = (), *opts: ExpectationOption):
        """Like expect_some(), with details set by expect_with_*() options."""
        self._expect(True, source, target, tuple(ports), *opts)

    def expect_loss(self, source, target, duration_s: float, max_percent: float, max_number: int,
                    *explicit_port: int):
        # built first so bad bounds fail before anything is recorded
        loss = expect_with_loss(duration_s, max_percent, max_number)
        # a loss measurement is a single run; retrying would skew the numbers
        self.retries_disabled = True
        self._expect(True, source, target, explicit_port, loss)

    def _expect(self, expected: bool, source, target, explicit_port, *opts: ExpectationOption):
        unactivated_checkers.add(self)
        if self.reverse_direction:
            if not isinstance(target, ConnectionSource) or not isinstance(source, ConnectionTarget):
                raise ConfigurationError(
                    f"reverse_direction needs {target!r} to be a source and {source!r} to be a target")
            source, target = target, source

        if not isinstance(source, ConnectionSource):
            raise ConfigurationError(f"{source!r} cannot originate connections")
        if not isinstance(target, ConnectionTarget):
            raise ConfigurationError(f"{target!r} cannot be a connection target")

        e = Expectation(
            source=source,
            target=target.to_matcher(*explicit_port),
            expected=expected,
            # no NAT unless told otherwise
            exp_src_ips=tuple(source.source_ips()) if expected else (),
        )

        for option in opts:
            e = option(e)

        self.expectations.append(e)

    def reset_expectations(self):
        self.expectations = []
        self.check_snat = False
        self.retries_disabled = False

    # -------------------------------
    # Probing
    # -------------------------------
    def actual_connectivity(self):
        """
        Probe every expectation once. Returns (responses, pretty, faults): one Result (or None)
        per expectation, a same-length list of printable summaries, and any probe faults.
        """
        unactivated_checkers.discard(self)
        out = dispatch(self.expectations, self.protocol, self.check_snat)
        return out.responses, out.pretty, out.faults

    def expected_connectivity_pretty(self) -> list[str]:
        return [describe_expected(exp, self.check_snat) for exp in self.expectations]

    # -------------------------------
    # Checking
    # -------------------------------
    def check_connectivity(self, *description):
        self.check_connectivity_with_timeout_offset(2, self.s.timeout_s, *description)

    def check_connectivity_offset(self, offset: int, *description):
        self.check_connectivity_with_timeout_offset(offset + 2, self.s.timeout_s, *description)

    def check_connectivity_packet_loss(self, *description):
        # no retries for packet loss, so no timeout either
        self.check_connectivity_with_timeout_offset(2, 0, *description)

    def check_connectivity_with_timeout(self, timeout_s: float, *description):
        if timeout_s <= MIN_TIMEOUT_S:
            raise ConfigurationError(f"Very low timeout ({timeout_s}), it is in seconds")
        if description and isinstance(description[0], (int, float, timedelta)) \
                and not isinstance(description[0], bool):
            raise ConfigurationError("Unexpected duration passed for description")
        self.check_connectivity_with_timeout_offset(2, timeout_s, *description)

    def check_connectivity_with_timeout_offset(self, caller_skip: int, timeout_s: float, *description):
        """
        The retry loop. caller_skip counts frames up from this one to the code the failure
        should be blamed on (2 = the caller of check_connectivity()).
        """
        run = AttemptState(
            timeout_s=timeout_s,
            min_attempts=self.s.min_attempts,
            retries_disabled=self.retries_disabled,
            clock=self.clock,
        )

        while run.should_attempt():
            actual, run.actual, faults = self.actual_connectivity()
            run.expected = self.expected_connectivity_pretty()
            run.faults.extend(faults)

            failed = False
            for i, exp in enumerate(self.expectations):
                if not matches(exp, actual[i], self.check_snat):
                    failed = True
                    run.actual[i] += " <---- WRONG"
                    run.expected[i] += " <---- EXPECTED"

            run.attempts += 1
            logger.debug("Connectivity attempt %d after %.2fs: %s",
                         run.attempts, run.elapsed(), "failed" if failed else "ok")
            if not failed:
                run.succeeded = True
                break

        if run.succeeded and not run.faults:
            return

        message = self._failure_message(run, description)
        location = _caller_location(caller_skip + 1)
        logger.error("Connectivity check from %s failed after %d attempt(s)", location, run.attempts)
        if self.on_fail is not None:
            self.on_fail(message)
        else:
            raise ConnectivityError(message, location=location)

    def _failure_message(self, run: AttemptState, description) -> str:
        if run.succeeded:
            message = "Connectivity matched, but probes failed along the way"
        else:
            message = "Connectivity was incorrect:\n\nExpected\n    {}\nto match\n    {}".format(
                "\n    ".join(run.actual),
                "\n    ".join(run.expected),
            )
        if run.faults:
            message += "\n\nProbe faults:\n    " + "\n    ".join(run.faults)
        desc = _format_description(description)
        if desc:
            message = desc + "\n" + message
        return message


def _format_description(description) -> str:
    if not description:
        return ""
    if len(description) > 1 and isinstance(description[0], str):
        try:
            return description[0] % tuple(description[1:])
        except (TypeError, ValueError):
            # not a format string, just several words
            pass
    return " ".join(str(d) for d in description)


def _caller_location(skip: int) -> str:
    frame = inspect.currentframe()
    try:
        for _ in range(skip):
            if frame.f_back is None:
                break
            frame = frame.f_back
        return f"{frame.f_code.co_filename}:{frame.f_lineno}"
    finally:
        del frame
