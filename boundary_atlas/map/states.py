"""Core value types shared by the encoding, projection and interaction modules."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

Point = Tuple[float, float]


class Category(str, Enum):
    """Leading candidate slot, in tie-break priority order."""

    A = "A"
    B = "B"
    C = "C"


class LayerKind(str, Enum):
    """Map layers in draw order."""

    BASEMAP = "basemap"
    HISTORICAL = "historical"
    UNITS = "units"
    RISK_GRID = "risk_grid"


class InteractionEvent(str, Enum):
    POINTER_ENTER = "pointer_enter"
    POINTER_MOVE = "pointer_move"
    POINTER_LEAVE = "pointer_leave"
    ZOOM_CHANGED = "zoom_changed"


@dataclass(frozen=True, eq=False)
class Feature:
    """A loaded GeoJSON feature. Identity is its position in the collection."""

    index: int
    geometry: Mapping[str, Any]
    properties: Mapping[str, Any]

    @classmethod
    def from_geojson(cls, obj: Mapping[str, Any], index: int) -> "Feature":
        return cls(
            index=index,
            geometry=MappingProxyType(dict(obj.get("geometry") or {})),
            properties=MappingProxyType(dict(obj.get("properties") or {})),
        )

    @property
    def geometry_type(self) -> Optional[str]:
        return self.geometry.get("type")


@dataclass(frozen=True)
class WinningRecord:
    leading_category: Category
    winning_share: float
    shares: Mapping[Category, float] = field(default_factory=dict)
    label: str = ""


@dataclass(frozen=True)
class NormalizationRange:
    """Observed winning-share bounds of the loaded vote-share collection."""

    min: float
    max: float
    best: Optional[WinningRecord] = None
    worst: Optional[WinningRecord] = None

    @property
    def span(self) -> float:
        return max(0.0, self.max - self.min)

    @classmethod
    def empty(cls) -> "NormalizationRange":
        return cls(min=100.0, max=0.0)


@dataclass(frozen=True)
class ZoomTransform:
    """Post-projection affine transform: ``screen = k * point + (x, y)``."""

    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def identity(cls) -> "ZoomTransform":
        return cls()

    def apply(self, point: Point) -> Point:
        return (self.x + self.k * point[0], self.y + self.k * point[1])

    def invert(self, point: Point) -> Point:
        return ((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def translate(self, dx: float, dy: float) -> "ZoomTransform":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def to_svg(self) -> str:
        return f"translate({self.x:g},{self.y:g}) scale({self.k:g})"


@dataclass
class ProjectionState:
    center: Point
    scale: float
    translate: Point
    zoom_transform: ZoomTransform = field(default_factory=ZoomTransform.identity)


@dataclass(frozen=True)
class Style:
    fill: str = "none"
    fill_opacity: float = 1.0
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    stroke_opacity: float = 1.0
    dash: Optional[str] = None
    round_joins: bool = False

    def with_stroke(self, stroke: str, width: float) -> "Style":
        return replace(self, stroke=stroke, stroke_width=width)


@dataclass(frozen=True)
class TooltipPayload:
    html: str
    text: str
    position: Point
    opacity: float = 1.0


@dataclass
class HighlightState:
    element: Optional[Any] = None
    tooltip: Optional[TooltipPayload] = None

    @property
    def active(self) -> bool:
        return self.element is not None

    def clear(self) -> None:
        self.element = None
        if self.tooltip is not None:
            self.tooltip = replace(self.tooltip, opacity=0.0)


@dataclass(frozen=True)
class MapEvent:
    """An input event for the interaction controller.

    Pointer positions are in map space (projected, before the zoom transform).
    """

    kind: InteractionEvent
    position: Optional[Point] = None
    element: Optional[Any] = None
    transform: Optional[ZoomTransform] = None


@dataclass(frozen=True)
class SurfaceReady:
    projection: Any
    path: Any
    size: Tuple[float, float]


def frozen_shares(shares: Dict[Category, float]) -> Mapping[Category, float]:
    return MappingProxyType(dict(shares))


__all__ = [
    "Point",
    "Category",
    "LayerKind",
    "InteractionEvent",
    "Feature",
    "WinningRecord",
    "NormalizationRange",
    "ZoomTransform",
    "ProjectionState",
    "Style",
    "TooltipPayload",
    "HighlightState",
    "MapEvent",
    "SurfaceReady",
    "frozen_shares",
]
