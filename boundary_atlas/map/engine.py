"""Map session: load transaction, surface set-up and re-rendering."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from boundary_atlas.data.loader import GeoJSONLoader

from .encoding import ColorEncoder
from .errors import LoadFailure, ProjectionInitFailure, ViewportNotReady
from .interaction import InteractionController
from .normalization import CollectionSummary, summarise_collection
from .projection import ProjectionEngine, Sleep, StaticViewport, Viewport, initialise_projection
from .render import MapLayers, RenderedScene, RenderPipeline
from .states import Feature, LayerKind, NormalizationRange, SurfaceReady, WinningRecord
from .utils import ConfigBundle, load_config_bundle

logger = logging.getLogger(__name__)


class Loader(Protocol):
    async def fetch_collection(self, path: str) -> List[Feature]: ...


@dataclass(frozen=True)
class LoadedCollections:
    """Everything derived from one load call; replaced wholesale on reload."""

    historical: Optional[Sequence[Feature]] = None
    units: Optional[Sequence[Feature]] = None
    unit_summary: Optional[CollectionSummary] = None
    risk_grid: Optional[Sequence[Feature]] = None
    failures: Dict[LayerKind, LoadFailure] = field(default_factory=dict)

    def as_layers(self) -> MapLayers:
        summary = self.unit_summary
        return MapLayers(
            historical=self.historical,
            units=self.units,
            unit_records=summary.records if summary else None,
            norm_range=summary.range if summary else None,
            risk_grid=self.risk_grid,
        )


class AtlasMap:
    def __init__(
        self,
        config_bundle: ConfigBundle | None = None,
        loader: Loader | None = None,
        viewport: Viewport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config_bundle or load_config_bundle()
        self.loader = loader or GeoJSONLoader(self.config.data_root)
        self.viewport = viewport or StaticViewport()
        self.sleep = sleep
        self.encoder = ColorEncoder(self.config.vote_share, self.config.risk_grid, self.config.boundaries)
        self.controller = InteractionController(
            self.encoder,
            self.config.style,
            self.config.vote_share,
            self.config.boundaries,
            zoom_extent=tuple(self.config.projection.zoom_extent),
        )
        self.collections = LoadedCollections()
        self.projection: Optional[ProjectionEngine] = None
        self.scene: Optional[RenderedScene] = None
        self._ready_callbacks: List[Callable[[SurfaceReady], None]] = []
        self._ready_sent = False

    @property
    def norm_range(self) -> Optional[NormalizationRange]:
        summary = self.collections.unit_summary
        return summary.range if summary else None

    @property
    def records(self) -> List[WinningRecord]:
        summary = self.collections.unit_summary
        return list(summary.records) if summary else []

    def on_ready(self, callback: Callable[[SurfaceReady], None]) -> None:
        self._ready_callbacks.append(callback)

    async def load(self) -> LoadedCollections:
        fetched: Dict[LayerKind, Sequence[Feature]] = {}
        failures: Dict[LayerKind, LoadFailure] = {}
        for source in self.config.layers:
            kind = LayerKind(source.kind)
            logger.info("loading %s layer from %s", kind.value, source.path)
            try:
                fetched[kind] = await self.loader.fetch_collection(source.path)
            except LoadFailure as exc:
                logger.error("%s layer unavailable, drawing without it: %s", kind.value, exc)
                failures[kind] = exc

        units = fetched.get(LayerKind.UNITS)
        summary = summarise_collection(units, self.config.vote_share) if units is not None else None
        self.collections = LoadedCollections(
            historical=fetched.get(LayerKind.HISTORICAL),
            units=units,
            unit_summary=summary,
            risk_grid=fetched.get(LayerKind.RISK_GRID),
            failures=failures,
        )
        return self.collections

    async def start(self) -> RenderedScene:
        """Load data, wait for a measurable viewport, announce the surface, draw."""
        await self.load()
        self.projection = await initialise_projection(
            self.viewport, self.config.projection, self.config.retry, sleep=self.sleep
        )
        if not self._ready_sent:
            self.viewport.subscribe(self.resize)
            self._announce_ready()
        return self.render()

    async def reload(self) -> RenderedScene | None:
        await self.load()
        if self.projection is None:
            return None
        return self.render()

    def render(self) -> RenderedScene:
        if self.projection is None:
            raise ProjectionInitFailure("map surface is not initialised")
        pipeline = RenderPipeline(self.config, self.encoder, self.projection)
        size = self._surface_size()
        self.scene = pipeline.render(self.collections.as_layers(), size)
        self.controller.bind(self.scene)
        return self.scene

    def resize(self, size: Tuple[float, float] | None = None) -> RenderedScene | None:
        width, height = size or self.viewport.size()
        try:
            self.projection = ProjectionEngine.for_viewport(self.config.projection, width, height)
        except ViewportNotReady as exc:
            logger.warning("ignoring resize: %s", exc)
            return self.scene
        return self.render()

    def _surface_size(self) -> Tuple[float, float]:
        tx, ty = self.projection.translate
        return (tx * 2, ty * 2)

    def _announce_ready(self) -> None:
        if self._ready_sent:
            return
        self._ready_sent = True
        event = SurfaceReady(projection=self.projection, path=self.projection.path_for, size=self._surface_size())
        for callback in self._ready_callbacks:
            callback(event)


__all__ = ["AtlasMap", "LoadedCollections", "Loader"]
