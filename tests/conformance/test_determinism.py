"""
Determinism Conformance Tests

INVARIANT: Same inputs produce same outputs.

    ∀ operation sequence S:
        run(S) on market A ≡ run(S) on market B
        (positions, event logs, token balances and outcomes all identical)

No wall-clock time, randomness or iteration-order dependence leaks into
pool state.
"""

from hypothesis import given, settings

from lending import LendingError

from tests.conformance.strategies import operation_lists
from tests.market import Market, run_op


def replay(ops):
    market = Market()
    outcomes = []
    for op, user, amount in ops:
        try:
            outcomes.append(run_op(market, op, user, amount))
        except LendingError as exc:
            outcomes.append(type(exc).__name__)
    return market, outcomes


class TestDeterminism:

    @given(operation_lists)
    @settings(max_examples=40, deadline=None)
    def test_replay_is_identical(self, ops):
        first, first_outcomes = replay(ops)
        second, second_outcomes = replay(ops)
        assert first_outcomes == second_outcomes
        assert first.pool.positions == second.pool.positions
        assert first.pool.event_log == second.pool.event_log
        assert first.snapshot() == second.snapshot()
