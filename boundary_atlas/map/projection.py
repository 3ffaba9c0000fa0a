"""Geographic projection and SVG path generation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np
from pyproj import CRS, Transformer
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform as transform_geometry

from .errors import InitFailure, ViewportNotReady
from .states import Point, ProjectionState
from .utils import ProjectionConfig, RetryConfig

logger = logging.getLogger(__name__)

# Web Mercator latitude limit in degrees; beyond it y diverges.
MERCATOR_MAX_LAT = 85.0511287798066

WEB_MERCATOR = "EPSG:3857"

SHAPED_TYPES = ("Polygon", "MultiPolygon", "LineString", "MultiLineString", "GeometryCollection")

Sleep = Callable[[float], Awaitable[Any]]


class Viewport(Protocol):
    def size(self) -> Tuple[float, float]: ...

    def subscribe(self, callback: Callable[[Tuple[float, float]], None]) -> None: ...


@dataclass
class StaticViewport:
    """In-process viewport whose size is set by the host."""

    width: float = 0.0
    height: float = 0.0
    _listeners: List[Callable[[Tuple[float, float]], None]] = field(default_factory=list, repr=False)

    def size(self) -> Tuple[float, float]:
        return (self.width, self.height)

    def subscribe(self, callback: Callable[[Tuple[float, float]], None]) -> None:
        self._listeners.append(callback)

    def resize(self, width: float, height: float) -> None:
        self.width, self.height = width, height
        for callback in list(self._listeners):
            callback((width, height))


def _crs_for(config: ProjectionConfig) -> str:
    if config.kind == "conic_equal_area":
        lat_1, lat_2 = config.parallels
        return (
            f"+proj=aea +lat_0=0 +lat_1={lat_1} +lat_2={lat_2} "
            f"+lon_0={config.center[0]} +R=1 +units=m +no_defs"
        )
    return WEB_MERCATOR


@lru_cache(maxsize=8)
def _transformer(crs: str) -> Tuple[Transformer, float]:
    """Lon/lat to ``crs``, plus the CRS radius that scales its output to radians."""
    target = CRS.from_user_input(crs)
    return Transformer.from_crs("EPSG:4326", target, always_xy=True), target.ellipsoid.semi_major_metre


class ProjectionEngine:
    """Fixed-centre projection; only ``translate`` follows the viewport."""

    def __init__(self, config: ProjectionConfig, translate: Point) -> None:
        self.config = config
        self.translate = (float(translate[0]), float(translate[1]))
        self._transformer, self._radius = _transformer(_crs_for(config))
        cx, cy = self._raw(np.array([config.center[0]]), np.array([config.center[1]]))
        self._center_raw = (float(cx[0]), float(cy[0]))

    @classmethod
    def for_viewport(cls, config: ProjectionConfig, width: float, height: float) -> "ProjectionEngine":
        if not width or not height or width <= 0 or height <= 0:
            raise ViewportNotReady(width, height)
        return cls(config, (width / 2.0, height / 2.0))

    @property
    def state(self) -> ProjectionState:
        return ProjectionState(
            center=tuple(self.config.center), scale=self.config.scale, translate=self.translate
        )

    def _raw(self, lon: np.ndarray, lat: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        if self.config.kind == "mercator":
            lat = np.clip(lat, -MERCATOR_MAX_LAT, MERCATOR_MAX_LAT)
        x, y = self._transformer.transform(lon, lat)
        return np.asarray(x, dtype=float) / self._radius, np.asarray(y, dtype=float) / self._radius

    def project_many(self, coords: Sequence[Sequence[float]]) -> np.ndarray:
        arr = np.asarray(coords, dtype=float)
        if arr.size == 0:
            return np.empty((0, 2))
        arr = arr.reshape(-1, arr.shape[-1])
        x, y = self._raw(arr[:, 0], arr[:, 1])
        k = self.config.scale
        tx, ty = self.translate
        return np.column_stack((tx + k * (x - self._center_raw[0]), ty - k * (y - self._center_raw[1])))

    def project(self, lon_lat: Point) -> Point:
        x, y = self.project_many([lon_lat])[0]
        return (float(x), float(y))

    def shape_for(self, geometry: Mapping[str, Any]) -> Optional[BaseGeometry]:
        """The geometry in map space (projected, before zoom), for hit-testing."""
        if geometry.get("type") not in SHAPED_TYPES:
            return None
        projected = transform_geometry(self._project_xy, shape(geometry))
        return None if projected.is_empty else projected

    def _project_xy(self, x: Sequence[float], y: Sequence[float], z: Optional[Sequence[float]] = None):
        points = self.project_many(np.column_stack((x, y)))
        return points[:, 0], points[:, 1]

    def path_for(self, geometry: Mapping[str, Any]) -> Optional[str]:
        kind = geometry.get("type")
        coords = geometry.get("coordinates") or []
        if kind == "Polygon":
            parts = [self._ring(ring) for ring in coords]
        elif kind == "MultiPolygon":
            parts = [self._ring(ring) for polygon in coords for ring in polygon]
        elif kind == "LineString":
            parts = [self._line(coords)]
        elif kind == "MultiLineString":
            parts = [self._line(line) for line in coords]
        elif kind == "GeometryCollection":
            parts = [self.path_for(child) for child in geometry.get("geometries") or []]
        else:
            return None
        data = "".join(part for part in parts if part)
        return data or None

    def _line(self, coords: Sequence[Sequence[float]]) -> str:
        if len(coords) < 2:
            return ""
        points = self.project_many(coords)
        return "M" + "L".join(_fmt_point(p) for p in points)

    def _ring(self, ring: Sequence[Sequence[float]]) -> str:
        if len(ring) > 1 and list(ring[0]) == list(ring[-1]):
            ring = ring[:-1]
        if len(ring) < 2:
            return ""
        points = self.project_many(ring)
        return "M" + "L".join(_fmt_point(p) for p in points) + "Z"


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _fmt_point(point: np.ndarray) -> str:
    return f"{_fmt(point[0])},{_fmt(point[1])}"


async def initialise_projection(
    viewport: Viewport,
    config: ProjectionConfig,
    retry: RetryConfig,
    sleep: Sleep = asyncio.sleep,
) -> ProjectionEngine:
    """Poll the viewport until it is measurable, up to ``retry.max_attempts``."""
    attempt = 0
    while attempt < retry.max_attempts:
        attempt += 1
        width, height = viewport.size()
        logger.debug("creating map projection (%d/%d)", attempt, retry.max_attempts)
        try:
            return ProjectionEngine.for_viewport(config, width, height)
        except ViewportNotReady as exc:
            logger.warning("%s, retrying in %.0fms", exc, retry.delay_seconds * 1000)
        if attempt < retry.max_attempts:
            await sleep(retry.delay_seconds)
    logger.error("map initialisation failed after %d attempts", attempt)
    raise InitFailure(attempt)


__all__ = [
    "Viewport",
    "StaticViewport",
    "ProjectionEngine",
    "initialise_projection",
]
