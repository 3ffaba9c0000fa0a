from __future__ import annotations

import pytest

from boundary_atlas.map.encoding import ColorEncoder
from boundary_atlas.map.interaction import HoverState, InteractionController
from boundary_atlas.map.projection import ProjectionEngine
from boundary_atlas.map.render import MapLayers, RenderPipeline
from boundary_atlas.map.states import Feature, InteractionEvent, LayerKind, MapEvent, ZoomTransform

from conftest import square, unit_geojson, units


@pytest.fixture
def encoder(bundle) -> ColorEncoder:
    return ColorEncoder(bundle.vote_share, bundle.risk_grid, bundle.boundaries)


@pytest.fixture
def scene(bundle, encoder):
    projection = ProjectionEngine.for_viewport(bundle.projection, 800, 600)
    donut = unit_geojson((20, 50, 30), lon=122.5, lat=24.5)
    donut["geometry"]["coordinates"] = square(122.5, 24.5, 0.4) + square(122.5, 24.5, 0.1)
    boundary = {
        "type": "Feature",
        "properties": {"name": "紅線", "Note": "乾隆十五年番界"},
        "geometry": {"type": "LineString", "coordinates": [[120.0, 22.5], [120.0, 23.0]]},
    }
    layers = MapLayers(
        historical=[Feature.from_geojson(boundary, 0)],
        units=units((20, 50, 30)) + [Feature.from_geojson(donut, 1)],
    )
    return RenderPipeline(bundle, encoder, projection).render(layers, (800, 600))


@pytest.fixture
def controller(bundle, encoder, scene) -> InteractionController:
    ctrl = InteractionController(encoder, bundle.style, bundle.vote_share, bundle.boundaries, (0.5, 50.0))
    ctrl.bind(scene)
    return ctrl


def _unit(scene, index=0):
    return scene.layer(LayerKind.UNITS).elements[index]


def test_enter_highlights_and_opens_tooltip(controller, scene):
    element = _unit(scene)
    controller.handle(MapEvent(InteractionEvent.POINTER_ENTER, position=(400, 300), element=element))

    assert controller.state is HoverState.HOVERING
    tooltip = controller.highlight.tooltip
    assert tooltip.position == (410, 290)
    assert tooltip.opacity == 1.0
    assert "臺北市 中正區" in tooltip.text
    assert "Leading: 賴清德 蕭美琴" in tooltip.text
    assert "賴清德 蕭美琴: 50.0% (2,000 votes)" in tooltip.text
    style = controller.effective_style(element)
    assert (style.stroke, style.stroke_width) == ("#ff0000", 1.0)


def test_move_updates_position_only(controller, scene):
    element = _unit(scene)
    controller.handle(MapEvent(InteractionEvent.POINTER_ENTER, position=(400, 300), element=element))
    before = controller.highlight.tooltip
    controller.handle(MapEvent(InteractionEvent.POINTER_MOVE, position=(420, 310)))
    after = controller.highlight.tooltip
    assert after.position == (430, 300)
    assert (after.html, after.text) == (before.html, before.text)


def test_leave_reverts_style_and_hides_tooltip(controller, scene):
    element = _unit(scene)
    controller.handle(MapEvent(InteractionEvent.POINTER_ENTER, position=(400, 300), element=element))
    controller.handle(MapEvent(InteractionEvent.POINTER_LEAVE))

    assert controller.state is HoverState.IDLE
    assert controller.highlight.tooltip.opacity == 0
    assert controller.effective_style(element) == element.style


def test_move_while_idle_is_ignored(controller):
    controller.handle(MapEvent(InteractionEvent.POINTER_MOVE, position=(1, 1)))
    assert controller.highlight.tooltip is None


def test_tooltip_follows_transform_at_move_time(controller, scene):
    element = _unit(scene)
    controller.handle(MapEvent(InteractionEvent.POINTER_ENTER, position=(400, 300), element=element))
    controller.handle(MapEvent(InteractionEvent.ZOOM_CHANGED, transform=ZoomTransform(k=2.0)))
    controller.handle(MapEvent(InteractionEvent.POINTER_MOVE, position=(400, 300)))

    assert controller.highlight.tooltip.position == (810, 590)
    assert controller.state is HoverState.HOVERING


def test_zoom_scale_is_clamped_and_resettable(controller):
    controller.handle(MapEvent(InteractionEvent.ZOOM_CHANGED, transform=ZoomTransform(k=120.0, x=5, y=6)))
    assert controller.transform == ZoomTransform(k=50.0, x=5, y=6)
    controller.zoom_by(0.0001)
    assert controller.transform.k == 0.5
    assert controller.reset_view() == ZoomTransform.identity()


def test_zoom_keeps_anchor_and_leaves_styles(controller, scene):
    before = scene.tuples()
    transform = controller.zoom_by(2.0, anchor=(400, 300))
    assert transform.apply(transform.invert((400, 300))) == pytest.approx((400, 300))
    assert transform.invert((400, 300)) == pytest.approx((400, 300))
    assert scene.tuples() == before


def test_hit_test_respects_zoom(controller, scene):
    assert controller.hit_test((400, 300)) is _unit(scene)
    assert controller.hit_test((460, 300)) is None
    controller.zoom_by(2.0, anchor=(400, 300))
    assert controller.hit_test((460, 300)) is _unit(scene)


def test_hit_test_skips_holes(controller, scene, bundle):
    projection = ProjectionEngine.for_viewport(bundle.projection, 800, 600)
    centre = projection.project((122.5, 24.5))
    ring_point = projection.project((122.5 + 0.25, 24.5))
    assert controller.hit_test(centre) is None
    assert controller.hit_test(ring_point) is _unit(scene, 1)


def test_pointer_at_dispatches_enter_move_leave(controller, scene):
    assert controller.pointer_at((400, 300)) is _unit(scene)
    assert controller.state is HoverState.HOVERING
    controller.pointer_at((405, 302))
    assert controller.highlight.tooltip.position == (415, 292)
    controller.pointer_at((5, 5))
    assert controller.state is HoverState.IDLE


def test_boundary_tooltip_has_no_emphasis(controller, scene, bundle):
    projection = ProjectionEngine.for_viewport(bundle.projection, 800, 600)
    on_line = projection.project((120.0, 22.75))
    element = controller.pointer_at(on_line)
    assert element.layer is LayerKind.HISTORICAL
    assert controller.highlight.tooltip.text == "紅線\n乾隆十五年番界"
    assert controller.effective_style(element) == element.style


def test_rebinding_scene_drops_hover(controller, scene):
    controller.pointer_at((400, 300))
    controller.bind(scene)
    assert controller.state is HoverState.IDLE
