"""Colour and opacity encoding for map features."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .states import Category, NormalizationRange, WinningRecord
from .utils import BoundaryStyleConfig, RiskGridConfig, VoteShareConfig


@dataclass
class ColorEncoder:
    vote_share: VoteShareConfig
    risk_grid: RiskGridConfig
    boundaries: BoundaryStyleConfig

    def __post_init__(self) -> None:
        self._palette: Dict[Category, str] = {
            Category(cat.id): cat.color for cat in self.vote_share.categories
        }
        self._labels: Dict[Category, str] = {
            Category(cat.id): cat.label for cat in self.vote_share.categories
        }

    def color_for(self, record: WinningRecord) -> str:
        return self._palette.get(record.leading_category, self.vote_share.neutral_color)

    def label_for(self, category: Category) -> str:
        return self._labels.get(category, str(category.value))

    def opacity_for(self, record: WinningRecord, norm_range: NormalizationRange) -> float:
        """Opacity relative to the observed range of the loaded collection.

        The strongest result in the collection is fully opaque and the weakest
        sits at the floor.
        """
        epsilon = self.vote_share.epsilon
        floor = self.vote_share.opacity_floor
        span = norm_range.span
        if span == 0 or abs(record.winning_share - norm_range.max) < epsilon:
            return 1.0
        t = (record.winning_share - norm_range.min) / span
        return float(np.clip(floor + (1.0 - floor) * t, 0.0, 1.0))

    def risk_color(self, level: object) -> str:
        try:
            key = str(int(level))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return self.vote_share.neutral_color
        return self.risk_grid.level_colors.get(key, self.vote_share.neutral_color)

    def boundary_stroke(self, name: Optional[str]) -> str:
        cfg = self.boundaries
        if name in cfg.name_colors:
            return cfg.name_colors[name]
        if name and cfg.provisional_blue_marker in name:
            return cfg.provisional_blue_color
        return cfg.default_color

    def boundary_dash(self, name: Optional[str]) -> Optional[str]:
        if name and self.boundaries.provisional_marker in name:
            return self.boundaries.provisional_dash
        return None


def hex_to_rgba(color: str, opacity: float = 1.0) -> List[int]:
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    red, green, blue = (int(value[i : i + 2], 16) for i in (0, 2, 4))
    alpha = int(round(float(np.clip(opacity, 0.0, 1.0)) * 255))
    return [red, green, blue, alpha]


__all__ = ["ColorEncoder", "hex_to_rgba"]
