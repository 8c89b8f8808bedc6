"""Asset valuation (USD) for scoring and fees.

The matcher never prices assets itself. Callers hand it a fully resolved
asset_id -> USD table; this module wraps that table and fails loudly when an
asset has no price, since an unpriced leg would silently corrupt the value
spread and fees of every proposal touching it.

Values can also be derived from the intents' own offer data, mirroring what
the marketplace service does before a run:
1. asset.estimated_value_usd
2. asset.value_usd
3. asset.metadata["estimated_value_usd"]
4. asset.metadata["value_usd"]
The first finite, non-negative value wins.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from swapgraph.models.intent import Asset, SwapIntent

logger = structlog.get_logger()


class MissingAssetValueError(LookupError):
    """Raised when an asset id has no known USD value."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Missing asset value for asset_id={asset_id}")


class AssetValuation:
    """Read-only asset_id -> USD lookup.

    Args:
        values_usd: Mapping of asset id to USD value. Copied on construction,
            so later changes to the caller's mapping do not leak into a run.
    """

    def __init__(self, values_usd: Mapping[str, float] | None = None) -> None:
        self._values: dict[str, float] = {}
        for asset_id, value in (values_usd or {}).items():
            self._values[str(asset_id)] = _coerce_value(asset_id, value)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._values

    def value_of(self, asset_id: str) -> float:
        """USD value of a single asset id.

        Raises:
            MissingAssetValueError: If the asset id is unknown
        """
        try:
            return self._values[asset_id]
        except KeyError:
            raise MissingAssetValueError(asset_id) from None

    def value_of_assets(self, assets: Iterable[Asset]) -> float:
        """Total USD value of a set of assets.

        Raises:
            MissingAssetValueError: If any asset id is unknown
        """
        return sum(self.value_of(asset.asset_id) for asset in assets)

    def as_dict(self) -> dict[str, float]:
        """Copy of the underlying table."""
        return dict(self._values)


def _coerce_value(asset_id: Any, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Asset value for asset_id={asset_id} is not a number: {value!r}") from err
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"Asset value for asset_id={asset_id} must be finite and >= 0: {value!r}")
    return number


def _value_from_asset(asset: Asset) -> float | None:
    candidates = [
        asset.estimated_value_usd,
        asset.value_usd,
        asset.metadata.get("estimated_value_usd"),
        asset.metadata.get("value_usd"),
    ]
    for candidate in candidates:
        if candidate is None or isinstance(candidate, bool):
            continue
        try:
            number = float(candidate)
        except (TypeError, ValueError):
            continue
        if math.isfinite(number) and number >= 0:
            return number
    return None


def derive_asset_values_from_intents(intents: Iterable[SwapIntent]) -> dict[str, float]:
    """Collect USD values carried on offered assets.

    Later intents win when the same asset id appears more than once.
    """
    out: dict[str, float] = {}
    for intent in intents:
        for asset in intent.offer:
            value = _value_from_asset(asset)
            if value is not None:
                out[asset.asset_id] = value
    return out


def merge_asset_values(
    intents: Iterable[SwapIntent],
    asset_values_usd: Mapping[str, float] | None,
    *,
    derive: bool = True,
) -> AssetValuation:
    """Build the valuation used by a run.

    Explicit values override values derived from the intents.

    Args:
        intents: Intents of the run
        asset_values_usd: Caller-supplied values
        derive: Whether to include values carried on the offers

    Returns:
        AssetValuation for the run
    """
    merged: dict[str, float] = derive_asset_values_from_intents(intents) if derive else {}
    derived_count = len(merged)
    merged.update(asset_values_usd or {})
    logger.debug(
        "asset_values_merged",
        derived=derived_count,
        explicit=len(asset_values_usd or {}),
        total=len(merged),
    )
    return AssetValuation(merged)


__all__ = [
    "AssetValuation",
    "MissingAssetValueError",
    "derive_asset_values_from_intents",
    "merge_asset_values",
]
