"""Layered scene construction.

Layers are always drawn basemap, historical boundaries, administrative units,
risk grid. Every call rebuilds the scene from its inputs, and a layer that
fails while being built is emitted empty.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from .encoding import ColorEncoder
from .errors import MalformedFeature
from .normalization import coerce_number, summarise_collection
from .projection import ProjectionEngine
from .states import Feature, LayerKind, NormalizationRange, Style, WinningRecord
from .utils import ConfigBundle

logger = logging.getLogger(__name__)

POLYGONAL_TYPES = ("Polygon", "MultiPolygon")

DRAW_ORDER: Tuple[LayerKind, ...] = (
    LayerKind.BASEMAP,
    LayerKind.HISTORICAL,
    LayerKind.UNITS,
    LayerKind.RISK_GRID,
)


@dataclass(frozen=True, eq=False)
class RenderedElement:
    layer: LayerKind
    index: int
    path: str
    style: Style
    interactive: bool = False
    emphasis: bool = False
    record: Optional[WinningRecord] = None
    properties: Mapping[str, object] = field(default_factory=dict)
    outline: Optional[BaseGeometry] = field(default=None, repr=False)
    area: Optional[PreparedGeometry] = field(default=None, repr=False)


@dataclass(frozen=True)
class RenderedLayer:
    kind: LayerKind
    elements: Tuple[RenderedElement, ...] = ()
    failed: bool = False


@dataclass(frozen=True)
class RenderedScene:
    width: float
    height: float
    layers: Tuple[RenderedLayer, ...]
    norm_range: NormalizationRange

    def layer(self, kind: LayerKind) -> Optional[RenderedLayer]:
        return next((layer for layer in self.layers if layer.kind == kind), None)

    def elements(self) -> Iterator[RenderedElement]:
        for layer in self.layers:
            yield from layer.elements

    def interactive_topmost(self) -> List[RenderedElement]:
        return [element for element in reversed(list(self.elements())) if element.interactive]

    def tuples(self) -> List[Tuple[str, int, str, float, str]]:
        return [
            (element.layer.value, element.index, element.style.fill, element.style.fill_opacity, element.path)
            for element in self.elements()
        ]


@dataclass
class MapLayers:
    """Collections to draw. ``None`` means the layer is not available."""

    historical: Optional[Sequence[Feature]] = None
    units: Optional[Sequence[Feature]] = None
    unit_records: Optional[Sequence[WinningRecord]] = None
    norm_range: Optional[NormalizationRange] = None
    risk_grid: Optional[Sequence[Feature]] = None


class _LayerBuildError(Exception):
    def __init__(self, kind: LayerKind, index: int, cause: Exception) -> None:
        self.kind = kind
        self.index = index
        self.cause = cause
        super().__init__(f"{kind.value}[{index}]: {cause}")


class RenderPipeline:
    def __init__(self, config: ConfigBundle, encoder: ColorEncoder, projection: ProjectionEngine) -> None:
        self.config = config
        self.encoder = encoder
        self.projection = projection

    def render(self, layers: MapLayers, size: Tuple[float, float]) -> RenderedScene:
        width, height = size
        norm_range = layers.norm_range
        records = layers.unit_records
        if layers.units is not None and (records is None or norm_range is None):
            summary = summarise_collection(layers.units, self.config.vote_share)
            records, norm_range = summary.records, summary.range
        norm_range = norm_range or NormalizationRange.empty()

        builders: Dict[LayerKind, Callable[[], List[RenderedElement]]] = {
            LayerKind.BASEMAP: lambda: [self._basemap(width, height)],
        }
        if layers.historical is not None:
            builders[LayerKind.HISTORICAL] = lambda: self._historical(layers.historical)
        if layers.units is not None:
            builders[LayerKind.UNITS] = lambda: self._units(layers.units, records, norm_range)
        if layers.risk_grid is not None:
            builders[LayerKind.RISK_GRID] = lambda: self._risk_grid(layers.risk_grid)

        rendered: List[RenderedLayer] = []
        for kind in DRAW_ORDER:
            build = builders.get(kind)
            if build is None:
                continue
            try:
                elements = build()
            except _LayerBuildError as exc:
                logger.error("layer %s failed at feature %d: %s", kind.value, exc.index, exc.cause)
                rendered.append(RenderedLayer(kind=kind, failed=True))
                continue
            rendered.append(RenderedLayer(kind=kind, elements=tuple(elements)))
            logger.debug("layer %s drawn with %d elements", kind.value, len(elements))
        return RenderedScene(width=width, height=height, layers=tuple(rendered), norm_range=norm_range)

    def _basemap(self, width: float, height: float) -> RenderedElement:
        return RenderedElement(
            layer=LayerKind.BASEMAP,
            index=0,
            path=f"M0,0H{width:g}V{height:g}H0Z",
            style=Style(fill=self.config.style.background),
        )

    def _each(self, kind: LayerKind, features: Sequence[Feature], build) -> List[RenderedElement]:
        elements: List[RenderedElement] = []
        for position, feature in enumerate(features):
            try:
                element = build(position, feature)
            except Exception as exc:
                raise _LayerBuildError(kind, feature.index, exc) from exc
            if element is not None:
                elements.append(element)
        return elements

    def _path(self, kind: LayerKind, feature: Feature) -> Optional[str]:
        path = self.projection.path_for(feature.geometry)
        if path is None:
            logger.debug("%s[%d] has no drawable geometry (%s)", kind.value, feature.index, feature.geometry_type)
        return path

    def _hit_shapes(self, feature: Feature) -> Tuple[Optional[BaseGeometry], Optional[PreparedGeometry]]:
        outline = self.projection.shape_for(feature.geometry)
        if outline is not None and outline.geom_type in POLYGONAL_TYPES:
            return outline, prep(outline)
        return outline, None

    def _historical(self, features: Sequence[Feature]) -> List[RenderedElement]:
        cfg = self.config.boundaries

        def build(position: int, feature: Feature) -> Optional[RenderedElement]:
            path = self._path(LayerKind.HISTORICAL, feature)
            if path is None:
                return None
            name = feature.properties.get(cfg.name_attribute)
            polygonal = feature.geometry_type in POLYGONAL_TYPES
            style = Style(
                fill=cfg.fill if polygonal else "none",
                fill_opacity=cfg.fill_opacity if polygonal else 0.0,
                stroke=self.encoder.boundary_stroke(name),
                stroke_width=cfg.stroke_width,
                stroke_opacity=cfg.stroke_opacity,
                dash=self.encoder.boundary_dash(name),
                round_joins=True,
            )
            outline, area = self._hit_shapes(feature)
            return RenderedElement(
                layer=LayerKind.HISTORICAL,
                index=feature.index,
                path=path,
                style=style,
                interactive=True,
                properties=feature.properties,
                outline=outline,
                area=area,
            )

        return self._each(LayerKind.HISTORICAL, features, build)

    def _units(
        self,
        features: Sequence[Feature],
        records: Sequence[WinningRecord],
        norm_range: NormalizationRange,
    ) -> List[RenderedElement]:
        style_cfg = self.config.style
        if len(records) != len(features):
            raise _LayerBuildError(
                LayerKind.UNITS, min(len(records), len(features)), ValueError("records out of step with features")
            )

        def build(position: int, feature: Feature) -> Optional[RenderedElement]:
            path = self._path(LayerKind.UNITS, feature)
            if path is None:
                return None
            record = records[position]
            style = Style(
                fill=self.encoder.color_for(record),
                fill_opacity=self.encoder.opacity_for(record, norm_range),
                stroke=style_cfg.unit_stroke,
                stroke_width=style_cfg.unit_stroke_width,
                stroke_opacity=style_cfg.unit_stroke_opacity,
            )
            outline, area = self._hit_shapes(feature)
            return RenderedElement(
                layer=LayerKind.UNITS,
                index=feature.index,
                path=path,
                style=style,
                interactive=True,
                emphasis=True,
                record=record,
                properties=feature.properties,
                outline=outline,
                area=area,
            )

        return self._each(LayerKind.UNITS, features, build)

    def _risk_grid(self, features: Sequence[Feature]) -> List[RenderedElement]:
        cfg = self.config.risk_grid

        def build(position: int, feature: Feature) -> Optional[RenderedElement]:
            try:
                count = coerce_number(feature.properties, cfg.count_attribute, feature.index, LayerKind.RISK_GRID.value)
            except MalformedFeature as exc:
                logger.warning("%s; treating as 0 cases", exc)
                count = 0.0
            if count <= 0:
                return None
            path = self._path(LayerKind.RISK_GRID, feature)
            if path is None:
                return None
            return RenderedElement(
                layer=LayerKind.RISK_GRID,
                index=feature.index,
                path=path,
                style=Style(fill=self.encoder.risk_color(feature.properties.get(cfg.level_attribute))),
                properties=feature.properties,
            )

        return self._each(LayerKind.RISK_GRID, features, build)


__all__ = ["DRAW_ORDER", "MapLayers", "RenderedElement", "RenderedLayer", "RenderedScene", "RenderPipeline"]
