# conncheck/engine/rules.py

from conncheck.engine.expectation import Expectation
from conncheck.schemas import Result


def snat_ok(exp: Expectation, result: Result) -> bool:
    return result.last_response.source_ip in exp.exp_src_ips


def mtu_ok(exp: Expectation, result: Result) -> bool:
    """Only bounds that were declared (non-zero) are compared."""
    if exp.client_mtu_start != 0 and exp.client_mtu_start != result.client_mtu.start:
        return False
    if exp.client_mtu_end != 0 and exp.client_mtu_end != result.client_mtu.end:
        return False
    return True


def loss_ok(exp: Expectation, result: Result) -> bool:
    """Bounds are inclusive; -1 leaves that axis unbounded."""
    loss = exp.expected_packet_loss
    if loss.duration_s <= 0:
        return True
    if loss.max_number >= 0 and result.stats.lost > loss.max_number:
        return False
    if loss.max_percent >= 0 and result.stats.lost_percent > loss.max_percent:
        return False
    return True


def matches(exp: Expectation, result: Result | None, check_snat: bool) -> bool:
    if not exp.expected:
        return result is None
    if result is None:
        return False
    if check_snat and not snat_ok(exp, result):
        return False
    return mtu_ok(exp, result) and loss_ok(exp, result)
