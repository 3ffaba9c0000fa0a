"""Interactive boundary atlas page."""
from __future__ import annotations

import asyncio
import logging

import streamlit as st
import streamlit.components.v1 as components

from boundary_atlas.map.engine import AtlasMap
from boundary_atlas.map.errors import InitFailure
from boundary_atlas.map.projection import StaticViewport
from boundary_atlas.map.states import LayerKind
from boundary_atlas.map.utils import load_config_bundle
from boundary_atlas.viz.charts import leading_category_bar, records_frame, winning_share_histogram
from boundary_atlas.viz.maps import deck_for
from boundary_atlas.viz.svg import scene_to_svg, tooltip_html

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Boundary Atlas", layout="wide")

st.title("🗺️ Boundary Atlas")
st.markdown(
    """
    Qianlong-era frontier lines, township vote shares in the presidential election,
    and the 1 km dengue risk grid, drawn as one layered map. Township colour shows the
    leading ticket; opacity shows how strong the win is relative to the rest of the map.
    """
)

with st.sidebar:
    st.header("Viewport")
    width = st.slider("Width (px)", 0, 1600, 960, step=40)
    height = st.slider("Height (px)", 0, 1200, 720, step=40)
    engine_mode = st.radio("Renderer", ["SVG", "pydeck"], horizontal=True)
    reload_clicked = st.button("Reload data")

atlas: AtlasMap | None = st.session_state.get("atlas")
if atlas is None or reload_clicked:
    viewport = StaticViewport(width, height)
    atlas = AtlasMap(load_config_bundle(), viewport=viewport)
    try:
        asyncio.run(atlas.start())
    except InitFailure as exc:
        st.error(f"Map could not be initialised: {exc}")
        st.stop()
    st.session_state["atlas"] = atlas
elif atlas.viewport.size() != (width, height):
    atlas.viewport.resize(width, height)

for kind, failure in atlas.collections.failures.items():
    st.warning(f"{kind.value} layer unavailable: {failure}")

controller = atlas.controller
with st.sidebar:
    st.header("Zoom")
    col1, col2, col3 = st.columns(3)
    if col1.button("＋"):
        controller.zoom_by(1.5, (width / 2, height / 2))
    if col2.button("－"):
        controller.zoom_by(1 / 1.5, (width / 2, height / 2))
    if col3.button("Reset"):
        controller.reset_view()
    st.caption(f"Scale {controller.transform.k:.2f}×")

    st.header("Inspect")
    px_x = st.number_input("Pointer x", 0.0, float(max(width, 1)), float(width / 2))
    px_y = st.number_input("Pointer y", 0.0, float(max(height, 1)), float(height / 2))
    controller.pointer_at((px_x, px_y))

if engine_mode == "SVG":
    markup = scene_to_svg(atlas.scene, controller)
    overlay = tooltip_html(controller)
    components.html(
        f'<div style="position: relative">{markup}{overlay}</div>', height=int(height) + 20, scrolling=False
    )
else:
    st.pydeck_chart(deck_for(atlas))

if controller.highlight.tooltip is not None and controller.highlight.tooltip.opacity > 0:
    st.text(controller.highlight.tooltip.text)

units = atlas.scene.layer(LayerKind.UNITS)
if units is not None and units.elements:
    df = records_frame(atlas.records, atlas.encoder, atlas.norm_range)
    left, right = st.columns(2)
    with left:
        st.plotly_chart(winning_share_histogram(df), use_container_width=True)
    with right:
        st.plotly_chart(leading_category_bar(df), use_container_width=True)
    st.subheader("Township results")
    st.dataframe(df.drop(columns=["color"]))
