# conncheck/engine/expectation.py
from dataclasses import dataclass, field, replace
from typing import Callable

from conncheck.errors import ConfigurationError
from conncheck.prober.base import ConnectionSource
from conncheck.prober.targets import Matcher


@dataclass(frozen=True)
class ExpPacketLoss:
    duration_s: float = 0     # how long the measurement runs; 0 = not a loss check
    max_percent: float = -1   # 10 means 10%. -1 means unbounded.
    max_number: int = -1      # 10 means 10 packets. -1 means unbounded.


@dataclass(frozen=True)
class Expectation:
    source: ConnectionSource
    target: Matcher
    expected: bool
    exp_src_ips: tuple[str, ...] = ()
    expected_packet_loss: ExpPacketLoss = field(default_factory=ExpPacketLoss)

    send_len: int = 0
    recv_len: int = 0

    client_mtu_start: int = 0
    client_mtu_end: int = 0


ExpectationOption = Callable[[Expectation], Expectation]


def expect_with_src_ips(*ips: str) -> ExpectationOption:
    return lambda e: replace(e, exp_src_ips=tuple(ips))


def expect_with_send_len(n: int) -> ExpectationOption:
    """Extra bytes on top of the request that must get through."""
    return lambda e: replace(e, send_len=n)


def expect_with_recv_len(n: int) -> ExpectationOption:
    """Extra bytes on top of the response that must come back."""
    return lambda e: replace(e, recv_len=n)


def expect_with_client_adjusted_mtu(start: int, end: int) -> ExpectationOption:
    """The client's path MTU should go from `start` to `end` during the transfer."""
    return lambda e: replace(e, client_mtu_start=start, client_mtu_end=end)


def expect_with_loss(duration_s: float, max_percent: float, max_number: int) -> ExpectationOption:
    """
    Bound the packet loss over a timed run. Either bound may be -1 (unbounded) but not both.
    Bad bounds are rejected here, when the option is built, not when the check runs.
    """
    if not duration_s:
        raise ConfigurationError("Packet loss test must have a duration")
    if duration_s < 0:
        raise ConfigurationError(f"Packet loss duration must be positive, got {duration_s}")
    if max_percent > 100:
        raise ConfigurationError("Loss percentage should be <=100")
    if max_percent < 0 and max_number < 0:
        raise ConfigurationError("Either loss count or percent must be specified")

    loss = ExpPacketLoss(duration_s=duration_s, max_percent=max_percent, max_number=max_number)
    return lambda e: replace(e, expected_packet_loss=loss)


def describe_expected(exp: Expectation, check_snat: bool) -> str:
    """The "expected" column of the diff report, in the same shape as the actual column."""
    line = f"{exp.source.source_name()} -> {exp.target.target_name} = {exp.expected}"
    if exp.expected:
        if check_snat:
            line += " (from " + "|".join(exp.exp_src_ips) + ")"
        if exp.client_mtu_start != 0 or exp.client_mtu_end != 0:
            line += f" (client MTU {exp.client_mtu_start} -> {exp.client_mtu_end})"
    loss = exp.expected_packet_loss
    if loss.duration_s > 0:
        if loss.max_number >= 0:
            line += f" (maxLoss: {loss.max_number} packets)"
        if loss.max_percent >= 0:
            line += f" (maxLoss: {loss.max_percent:.1f}%)"
    return line
