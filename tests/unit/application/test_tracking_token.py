"""Unit tests for GlobalSequenceToken."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mp_eventstore.application.event_sourcing import GlobalSequenceToken
from mp_eventstore.kernel.errors import ValidationError

Token = GlobalSequenceToken


def _deliver(order: list[int], span: int = 10_000) -> Token:
    token = Token.tail()
    for gs in order:
        token = token.advanced_to(gs, span)
    return token


class TestConstruction:
    def test_tail(self) -> None:
        assert Token.tail() == Token(0, frozenset())

    @pytest.mark.parametrize("position", [-1, True, 1.5])
    def test_invalid_position(self, position: object) -> None:
        with pytest.raises(ValidationError):
            Token(position)  # type: ignore[arg-type]

    def test_gaps_must_be_below_position(self) -> None:
        with pytest.raises(ValidationError):
            Token(3, frozenset({3}))
        with pytest.raises(ValidationError):
            Token(3, frozenset({0}))

    def test_gaps_coerced_to_frozenset(self) -> None:
        assert Token(5, {2, 3}).gaps == frozenset({2, 3})  # type: ignore[arg-type]


class TestAdvance:
    def test_contiguous_has_no_gaps(self) -> None:
        assert _deliver([1, 2, 3]) == Token(3)

    def test_skipped_numbers_become_gaps(self) -> None:
        assert _deliver([1, 4]) == Token(4, frozenset({2, 3}))

    def test_late_commit_fills_gap(self) -> None:
        assert _deliver([1, 4, 3]) == Token(4, frozenset({2}))

    def test_redelivery_is_noop(self) -> None:
        token = _deliver([1, 2])
        assert token.advanced_to(2) is token
        assert token.advanced_to(1) is token

    def test_old_gaps_are_dropped(self) -> None:
        token = _deliver([1, 3], span=5).advanced_to(20, 5)
        assert token.position == 20
        assert min(token.gaps) == 15
        assert 2 not in token.gaps

    def test_huge_jump_is_bounded(self) -> None:
        token = Token.tail().advanced_to(10_000_000, 100)
        assert len(token.gaps) == 100


class TestOrdering:
    def test_covers_simple(self) -> None:
        assert Token(5).covers(Token(3))
        assert not Token(3).covers(Token(5))

    def test_gap_not_covered(self) -> None:
        with_gap = Token(5, frozenset({3}))
        assert not with_gap.covers(Token(3))
        assert Token(5).covers(with_gap)
        assert with_gap < Token(5)

    def test_incomparable(self) -> None:
        a = Token(5, frozenset({2}))
        b = Token(4)
        assert not a.covers(b)
        assert not b.covers(a)
        assert not a <= b and not b <= a

    def test_equal_tokens(self) -> None:
        assert Token(4, frozenset({2})) <= Token(4, frozenset({2}))
        assert not Token(4) < Token(4)


class TestJson:
    def test_round_trip_with_gaps(self) -> None:
        token = Token(9, frozenset({4, 7}))
        assert token.to_json() == '{"position": 9, "gaps": [4, 7]}'
        assert Token.from_json(token.to_json()) == token

    @pytest.mark.parametrize("raw", ["", "[]", "{}", '{"position": "x"}', '{"position": 3, "gaps": [5]}'])
    def test_malformed_rejected(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            Token.from_json(raw)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(st.lists(st.integers(min_value=1, max_value=200), unique=True, max_size=60))
def test_every_delivered_number_is_covered(order: list[int]) -> None:
    token = _deliver(order)
    for gs in order:
        assert gs <= token.position
        assert gs not in token.gaps
    missing = set(range(1, token.position)) - set(order)
    assert token.gaps == missing


@given(st.lists(st.integers(min_value=1, max_value=200), unique=True, max_size=60))
def test_advancing_never_moves_backwards(order: list[int]) -> None:
    token = Token.tail()
    for gs in order:
        nxt = token.advanced_to(gs)
        assert nxt.covers(token)
        token = nxt


@given(st.lists(st.integers(min_value=1, max_value=200), unique=True, max_size=60))
def test_delivery_order_does_not_matter_for_final_token(order: list[int]) -> None:
    assert _deliver(order) == _deliver(sorted(order))
