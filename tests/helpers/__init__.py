"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Times, platform and prices
- factories: Asset, intent, ring and candidate factory functions
"""

from tests.helpers.constants import (
    DEFAULT_VALUE_USD,
    FAR_FUTURE_ISO,
    NOW_ISO,
    PAST_ISO,
    PLATFORM,
    SOON_ISO,
)
from tests.helpers.factories import (
    make_asset,
    make_candidate,
    make_edge_intent,
    make_intent,
    make_ring,
    prices_for,
    specific_asset_clause,
)

__all__ = [
    # Constants
    "DEFAULT_VALUE_USD",
    "FAR_FUTURE_ISO",
    "NOW_ISO",
    "PAST_ISO",
    "PLATFORM",
    "SOON_ISO",
    # Factories
    "make_asset",
    "make_candidate",
    "make_edge_intent",
    "make_intent",
    "make_ring",
    "prices_for",
    "specific_asset_clause",
]
