# tests/test_state_unit.py
from concurrent.futures import ThreadPoolExecutor

from conncheck.engine.controller import Checker
from conncheck.engine.state import CheckerRegistry


def test_registry_concurrent_add_discard():
    """Many checkers added and discarded from many threads: membership ends up exact."""
    reg = CheckerRegistry()
    checkers = [Checker() for _ in range(500)]

    def churn(i):
        c = checkers[i]
        for _ in range(20):
            reg.add(c)
            reg.discard(c)
        # odd ones stay registered
        if i % 2:
            reg.add(c)

    with ThreadPoolExecutor(max_workers=32) as executor:
        list(executor.map(churn, range(len(checkers))))

    assert len(reg) == 250
    assert set(reg.snapshot()) == set(checkers[1::2])
    assert checkers[0] not in reg
    assert checkers[1] in reg


def test_registry_snapshot_is_a_copy():
    reg = CheckerRegistry()
    c = Checker()
    reg.add(c)
    snap = reg.snapshot()
    reg.clear()
    assert snap == [c]
    assert len(reg) == 0
