"""Winning-share scan over the vote-share collection.

The scan runs once per load. It derives a :class:`WinningRecord` per feature
and the collection-wide :class:`NormalizationRange` that opacity encoding
rescales against. Nothing is cached here; the session owns the result.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Dict, Iterable, List, Mapping, Sequence

from .errors import MalformedFeature
from .states import Category, Feature, NormalizationRange, WinningRecord, frozen_shares
from .utils import CategoryConfig, VoteShareConfig

logger = logging.getLogger(__name__)

UNITS_LAYER = "units"


@dataclass(frozen=True)
class CollectionSummary:
    records: List[WinningRecord]
    range: NormalizationRange


def coerce_number(
    properties: Mapping[str, object], attribute: str, index: int, layer: str = UNITS_LAYER
) -> float:
    """Read a numeric attribute; absent counts as 0, anything non-numeric raises."""
    value = properties.get(attribute)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, Real):
        raise MalformedFeature(layer, index, attribute, value)
    number = float(value)
    if not math.isfinite(number):
        raise MalformedFeature(layer, index, attribute, value)
    return number


def _ordered(categories: Sequence[CategoryConfig]) -> List[CategoryConfig]:
    priority = {category: position for position, category in enumerate(Category)}
    return sorted(categories, key=lambda cat: priority[Category(cat.id)])


def unit_label(properties: Mapping[str, object], name_attributes: Iterable[str]) -> str:
    parts = [str(properties[name]) for name in name_attributes if properties.get(name)]
    return " ".join(parts)


def compute_winning_record(
    feature: Feature,
    categories: Sequence[CategoryConfig],
    name_attributes: Iterable[str] = (),
) -> WinningRecord:
    shares: Dict[Category, float] = {}
    for cat in _ordered(categories):
        try:
            share = coerce_number(feature.properties, cat.share_attribute, feature.index)
        except MalformedFeature as exc:
            logger.warning("%s; defaulting to 0", exc)
            share = 0.0
        shares[Category(cat.id)] = share

    winning_share = max(shares.values()) if shares else 0.0
    # First category in priority order reaching the maximum wins ties.
    leading = next(
        (category for category, share in shares.items() if share == winning_share),
        Category.A,
    )
    return WinningRecord(
        leading_category=leading,
        winning_share=winning_share,
        shares=frozen_shares(shares),
        label=unit_label(feature.properties, name_attributes),
    )


def summarise_collection(features: Sequence[Feature], config: VoteShareConfig) -> CollectionSummary:
    empty = NormalizationRange.empty()
    lowest, highest = empty.min, empty.max
    worst = best = None
    records: List[WinningRecord] = []

    for feature in features:
        record = compute_winning_record(feature, config.categories, config.name_attributes)
        records.append(record)
        if record.winning_share < lowest:
            lowest, worst = record.winning_share, record
        if record.winning_share > highest:
            highest, best = record.winning_share, record

    if records and lowest > highest:
        lowest = highest

    if best is not None:
        logger.info(
            "highest winning share %.2f%% -> 100%% opacity @ %s", best.winning_share, best.label
        )
    if worst is not None:
        logger.info(
            "lowest winning share %.2f%% -> %.0f%% opacity @ %s",
            worst.winning_share,
            config.opacity_floor * 100,
            worst.label,
        )
    return CollectionSummary(
        records=records,
        range=NormalizationRange(min=lowest, max=highest, best=best, worst=worst),
    )


def compute_range(features: Sequence[Feature], config: VoteShareConfig) -> NormalizationRange:
    return summarise_collection(features, config).range


__all__ = [
    "CollectionSummary",
    "coerce_number",
    "compute_winning_record",
    "compute_range",
    "summarise_collection",
    "unit_label",
]
