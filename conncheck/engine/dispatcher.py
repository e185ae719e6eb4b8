# conncheck/engine/dispatcher.py
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Sequence

from conncheck.engine.expectation import Expectation
from conncheck.engine.state import DispatchResult
from conncheck.prober.base import with_duration, with_recv_len, with_send_len
from conncheck.schemas import Result

logger = logging.getLogger(__name__)


def describe_actual(exp: Expectation, res: Result | None, check_snat: bool) -> str:
    """The "actual" column of the diff report."""
    line = f"{exp.source.source_name()} -> {exp.target.target_name} = {res is not None}"
    if res is None:
        return line

    if check_snat:
        line += f" (from {res.last_response.source_ip})"
    if res.client_mtu.start != 0:
        line += f" (client MTU {res.client_mtu.start} -> {res.client_mtu.end})"
    if exp.expected_packet_loss.duration_s > 0:
        sent = res.stats.requests_sent
        line += f" (sent: {sent}, lost: {res.stats.lost} / {res.stats.lost_percent:.1f}%)"
    return line


def probe_one(exp: Expectation, protocol: str) -> Result | None:
    opts = [with_duration(exp.expected_packet_loss.duration_s)]
    if exp.send_len > 0 or exp.recv_len > 0:
        opts += [with_send_len(exp.send_len), with_recv_len(exp.recv_len)]
    return exp.source.can_connect_to(exp.target.ip, exp.target.port, protocol, *opts)


def dispatch(expectations: Sequence[Expectation], protocol: str | None, check_snat: bool) -> DispatchResult:
    """
    Probe every expectation at once, one thread each, and wait for all of them.
    Slot i of the returned lists always belongs to expectations[i], whatever order the
    probes finish in. An exception in one probe is logged, recorded as a fault and counted
    as "no connection" for that slot; the other probes are unaffected.
    """
    n = len(expectations)
    out = DispatchResult(responses=[None] * n, pretty=[""] * n)
    if n == 0:
        return out

    def unit(i: int, exp: Expectation):
        p = exp.target.resolve_protocol(protocol)
        try:
            res = probe_one(exp, p)
        except Exception as e:
            logger.exception("Probe %s -> %s failed", exp.source.source_name(), exp.target.target_name)
            out.faults.append(f"{exp.source.source_name()} -> {exp.target.target_name}: {e!r}")
            res = None
        out.pretty[i] = describe_actual(exp, res, check_snat)
        out.responses[i] = res

    with ThreadPoolExecutor(max_workers=n) as executor:
        futures = [executor.submit(unit, i, exp) for i, exp in enumerate(expectations)]
        wait(futures)

    for i, f in enumerate(futures):
        if f.exception() is not None:
            # blew up outside the probe itself (e.g. while describing it)
            logger.error("Connectivity unit %d failed: %r", i, f.exception())
            out.faults.append(f"expectation #{i}: {f.exception()!r}")

    logger.debug("Connectivity: %s", out.responses)
    return out
