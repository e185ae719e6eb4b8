# tests/test_rules_unit.py
import pytest

from conncheck.engine.expectation import (
    Expectation,
    expect_with_client_adjusted_mtu,
    expect_with_loss,
)
from conncheck.engine.rules import matches
from conncheck.prober.fake import FakeSource, reply_from
from conncheck.prober.targets import TargetIP

SRC = FakeSource("client", ips=["10.0.0.1"])
DST = TargetIP("10.0.0.2").to_matcher(8055)


def exp(expected=True, src_ips=("10.0.0.1",), *opts):
    e = Expectation(source=SRC, target=DST, expected=expected, exp_src_ips=tuple(src_ips))
    for o in opts:
        e = o(e)
    return e


@pytest.mark.parametrize("check_snat", [False, True])
def test_expected_none(check_snat):
    """expected=False matches exactly when there was no connection."""
    e = exp(expected=False, src_ips=())
    assert matches(e, None, check_snat)
    assert not matches(e, reply_from("10.0.0.1:4000"), check_snat)


def test_expected_some_without_constraints():
    e = exp()
    assert matches(e, reply_from("192.168.1.1:4000"), False)
    assert not matches(e, None, False)


def test_snat_membership():
    """With SNAT checking the observed source IP must be one of the expected ones, in any order."""
    e = exp(True, ("10.0.0.9", "10.0.0.1"))
    assert matches(e, reply_from("10.0.0.1:4000"), True)
    assert matches(e, reply_from("10.0.0.9:4000"), True)
    assert not matches(e, reply_from("10.0.0.7:4000"), True)
    # not checked when SNAT checking is off
    assert matches(e, reply_from("10.0.0.7:4000"), False)


def test_snat_is_case_sensitive():
    e = exp(True, ("fd00::a",))
    assert matches(e, reply_from("[fd00::a]:4000"), True)
    assert not matches(e, reply_from("[FD00::A]:4000"), True)


def test_mtu_only_declared_bounds_compared():
    e = exp(True, ("10.0.0.1",), expect_with_client_adjusted_mtu(1500, 1400))
    assert matches(e, reply_from("10.0.0.1:1", mtu=(1500, 1400)), False)
    assert not matches(e, reply_from("10.0.0.1:1", mtu=(1500, 1500)), False)
    assert not matches(e, reply_from("10.0.0.1:1", mtu=(1400, 1400)), False)

    end_only = exp(True, ("10.0.0.1",), expect_with_client_adjusted_mtu(0, 1400))
    assert matches(end_only, reply_from("10.0.0.1:1", mtu=(9000, 1400)), False)

    unset = exp()
    assert matches(unset, reply_from("10.0.0.1:1", mtu=(1500, 1400)), False)


@pytest.mark.parametrize("max_percent,max_number,ok", [
    (15, -1, False),
    (25, -1, True),
    (20, -1, True),
    (-1, 20, True),
    (-1, 19, False),
    (25, 19, False),
    (15, 20, False),
])
def test_loss_bounds(max_percent, max_number, ok):
    """sent=100, received=80: lost=20, 20.0%; both bounds are inclusive."""
    e = exp(True, ("10.0.0.1",), expect_with_loss(5, max_percent, max_number))
    res = reply_from("10.0.0.1:1", sent=100, received=80)
    assert res.stats.lost == 20
    assert res.stats.lost_percent == 20.0
    assert matches(e, res, False) is ok


def test_loss_not_checked_on_unreachable():
    e = exp(True, ("10.0.0.1",), expect_with_loss(5, 10, -1))
    assert not matches(e, None, False)
