"""pydeck rendition of the layered map."""
from __future__ import annotations

import math
from typing import Dict, List

import pydeck as pdk

from boundary_atlas.map.encoding import hex_to_rgba
from boundary_atlas.map.engine import AtlasMap
from boundary_atlas.map.render import RenderedLayer
from boundary_atlas.map.states import LayerKind

# deck.gl's world is 512px wide at zoom 0.
DECK_WORLD_SIZE = 512


def _feature_collection(atlas: AtlasMap, layer: RenderedLayer) -> Dict:
    sources = {
        LayerKind.HISTORICAL: atlas.collections.historical,
        LayerKind.UNITS: atlas.collections.units,
        LayerKind.RISK_GRID: atlas.collections.risk_grid,
    }[layer.kind] or []
    by_index = {feature.index: feature for feature in sources}
    features: List[Dict] = []
    for element in layer.elements:
        feature = by_index[element.index]
        style = element.style
        tooltip = atlas.controller.tooltip_for(element, (0.0, 0.0)).html if element.interactive else ""
        features.append(
            {
                "type": "Feature",
                "geometry": dict(feature.geometry),
                "properties": {
                    "fill_color": hex_to_rgba(style.fill, style.fill_opacity) if style.fill != "none" else [0, 0, 0, 0],
                    "line_color": hex_to_rgba(style.stroke, style.stroke_opacity) if style.stroke else [0, 0, 0, 0],
                    "line_width": style.stroke_width,
                    "tooltip_html": tooltip,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def deck_zoom(scale: float) -> float:
    return math.log2(2 * math.pi * scale / DECK_WORLD_SIZE)


def deck_for(atlas: AtlasMap) -> pdk.Deck:
    if atlas.scene is None:
        raise ValueError("render the atlas before building a deck")
    layers = []
    for layer in atlas.scene.layers:
        if layer.kind is LayerKind.BASEMAP or not layer.elements:
            continue
        layers.append(
            pdk.Layer(
                "GeoJsonLayer",
                _feature_collection(atlas, layer),
                id=layer.kind.value,
                stroked=layer.kind is not LayerKind.RISK_GRID,
                filled=True,
                get_fill_color="properties.fill_color",
                get_line_color="properties.line_color",
                get_line_width="properties.line_width",
                line_width_units="pixels",
                pickable=layer.kind is not LayerKind.RISK_GRID,
            )
        )
    lon, lat = atlas.config.projection.center
    return pdk.Deck(
        layers=layers,
        initial_view_state=pdk.ViewState(latitude=lat, longitude=lon, zoom=deck_zoom(atlas.config.projection.scale)),
        tooltip={"html": "{tooltip_html}"},
        map_style=None,
    )


__all__ = ["deck_for", "deck_zoom"]
