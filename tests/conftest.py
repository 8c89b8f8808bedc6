"""Pytest configuration and fixtures."""

import pytest

from swapgraph.engine import MatchingEngine
from swapgraph.matching.config import MatchingConfig
from swapgraph.models.intent import SwapIntent
from tests.helpers import NOW_ISO, make_intent, make_ring, prices_for


@pytest.fixture
def now_iso() -> str:
    """Fixed evaluation time shared by tests."""
    return NOW_ISO


@pytest.fixture
def engine() -> MatchingEngine:
    """An engine with default configuration."""
    return MatchingEngine(MatchingConfig())


@pytest.fixture
def three_way_ring() -> list[SwapIntent]:
    """A(offers X, wants Y), B(offers Y, wants Z), C(offers Z, wants X)."""
    return [
        make_intent("A", offers="X", wants="Y", max_cycle_length=3),
        make_intent("B", offers="Y", wants="Z", max_cycle_length=3),
        make_intent("C", offers="Z", wants="X", max_cycle_length=3),
    ]


@pytest.fixture
def three_way_prices() -> dict[str, float]:
    """$100 for each of X, Y and Z."""
    return {"X": 100.0, "Y": 100.0, "Z": 100.0}


@pytest.fixture
def overlapping_rings() -> list[SwapIntent]:
    """Two 3-cycles sharing intent B: A>B>C and B>D>E.

    A wants B's item; B wants either C's or D's item; C wants A's; D wants
    E's; E wants B's.
    """
    return [
        make_intent("A", offers="a", wants="b"),
        make_intent("B", offers="b", wants=["c", "d"]),
        make_intent("C", offers="c", wants="a"),
        make_intent("D", offers="d", wants="e"),
        make_intent("E", offers="e", wants="b"),
    ]


@pytest.fixture
def ring_of_four() -> list[SwapIntent]:
    """Four intents forming one 4-cycle."""
    return make_ring(["P", "Q", "R", "S"])


@pytest.fixture
def ring_of_four_prices(ring_of_four: list[SwapIntent]) -> dict[str, float]:
    return prices_for(ring_of_four)
