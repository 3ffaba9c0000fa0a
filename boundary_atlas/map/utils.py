"""Configuration loading for the boundary atlas map."""
from __future__ import annotations

import hashlib
import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_DATA_ROOT = Path(__file__).resolve().parent.parent.parent / "data"


class ProjectionConfig(BaseModel):
    kind: str = Field("mercator", pattern="^(mercator|conic_equal_area)$")
    center: Tuple[float, float] = (121.0, 23.5)
    scale: float = Field(12000.0, gt=0)
    parallels: Tuple[float, float] = (22.0, 25.5)
    zoom_extent: Tuple[float, float] = (0.5, 50.0)


class RetryConfig(BaseModel):
    max_attempts: int = Field(20, gt=0)
    delay_seconds: float = Field(0.1, ge=0)


class LayerSource(BaseModel):
    kind: str = Field(..., pattern="^(historical|units|risk_grid)$")
    path: str


class CategoryConfig(BaseModel):
    id: str = Field(..., pattern="^(A|B|C)$")
    label: str
    share_attribute: str
    votes_attribute: str
    color: str


class VoteShareConfig(BaseModel):
    categories: List[CategoryConfig]
    name_attributes: List[str] = ["COUNTYNAME", "TOWNNAME"]
    neutral_color: str = "#9e9e9e"
    opacity_floor: float = Field(0.2, ge=0, le=1)
    epsilon: float = 1e-9


class RiskGridConfig(BaseModel):
    level_attribute: str = "level"
    count_attribute: str = "count"
    level_colors: Dict[str, str]


class BoundaryStyleConfig(BaseModel):
    name_attribute: str = "name"
    note_attribute: str = "Note"
    name_colors: Dict[str, str]
    provisional_marker: str
    provisional_blue_marker: str
    provisional_blue_color: str
    provisional_dash: str = "6,4"
    default_color: str = "#999999"
    fill: str = "#e0e0e0"
    fill_opacity: float = 0.5
    stroke_width: float = 2.0
    stroke_opacity: float = 0.95


class StyleConfig(BaseModel):
    background: str = "#f5f5f5"
    unit_stroke: str = "#ffffff"
    unit_stroke_width: float = 0.5
    unit_stroke_opacity: float = 0.8
    highlight_stroke: str = "#ff0000"
    highlight_stroke_width: float = 1.0
    tooltip_offset: Tuple[float, float] = (10.0, -10.0)


class AtlasConfig(BaseModel):
    projection: ProjectionConfig
    retry: RetryConfig
    layers: List[LayerSource]
    vote_share: VoteShareConfig
    risk_grid: RiskGridConfig
    boundaries: BoundaryStyleConfig
    style: StyleConfig
    data_root: Optional[str] = None


@dataclass
class ConfigBundle:
    projection: ProjectionConfig
    retry: RetryConfig
    layers: List[LayerSource]
    vote_share: VoteShareConfig
    risk_grid: RiskGridConfig
    boundaries: BoundaryStyleConfig
    style: StyleConfig
    data_root: Path

    def hash(self) -> str:
        hasher = hashlib.sha256()
        for payload in (
            self.projection.model_dump_json(),
            self.retry.model_dump_json(),
            json.dumps([layer.model_dump() for layer in self.layers], sort_keys=True),
            self.vote_share.model_dump_json(),
            self.risk_grid.model_dump_json(),
            self.boundaries.model_dump_json(),
            self.style.model_dump_json(),
        ):
            hasher.update(payload.encode("utf-8"))
        return hasher.hexdigest()


def _load_json(path: Path) -> Dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _resolve_data_root(configured: Optional[str]) -> Path:
    override = os.getenv("ATLAS_DATA_ROOT")
    if override:
        return Path(override)
    if configured:
        return Path(configured)
    return DEFAULT_DATA_ROOT


@lru_cache(maxsize=4)
def _load_atlas_config(directory: Path) -> AtlasConfig:
    return AtlasConfig.model_validate(_load_json(directory / "atlas_config.json"))


def load_config_bundle(config_dir: Optional[Path] = None) -> ConfigBundle:
    """Parsed config is cached per directory; the data root is resolved on every call."""
    cfg = _load_atlas_config(config_dir or CONFIG_DIR)
    return ConfigBundle(
        projection=cfg.projection,
        retry=cfg.retry,
        layers=cfg.layers,
        vote_share=cfg.vote_share,
        risk_grid=cfg.risk_grid,
        boundaries=cfg.boundaries,
        style=cfg.style,
        data_root=_resolve_data_root(cfg.data_root),
    )


__all__ = [
    "ProjectionConfig",
    "RetryConfig",
    "LayerSource",
    "CategoryConfig",
    "VoteShareConfig",
    "RiskGridConfig",
    "BoundaryStyleConfig",
    "StyleConfig",
    "ConfigBundle",
    "load_config_bundle",
]
