"""SVG serialisation of a rendered scene."""
from __future__ import annotations

from html import escape
from typing import List, Optional

from boundary_atlas.map.interaction import InteractionController
from boundary_atlas.map.render import RenderedElement, RenderedScene
from boundary_atlas.map.states import LayerKind, Style, ZoomTransform

CSS_CLASSES = {
    LayerKind.BASEMAP: "basemap",
    LayerKind.HISTORICAL: "historical-boundary",
    LayerKind.UNITS: "county",
    LayerKind.RISK_GRID: "risk-cell",
}


def _style_attrs(style: Style) -> str:
    attrs = [f'fill="{escape(style.fill)}"']
    if style.fill != "none" and style.fill_opacity != 1.0:
        attrs.append(f'fill-opacity="{style.fill_opacity:.4g}"')
    if style.stroke:
        attrs.append(f'stroke="{escape(style.stroke)}"')
        attrs.append(f'stroke-width="{style.stroke_width:g}"')
        if style.stroke_opacity != 1.0:
            attrs.append(f'stroke-opacity="{style.stroke_opacity:g}"')
    if style.dash:
        attrs.append(f'stroke-dasharray="{escape(style.dash)}"')
    if style.round_joins:
        attrs.append('stroke-linecap="round" stroke-linejoin="round"')
    return " ".join(attrs)


def _path(element: RenderedElement, style: Style) -> str:
    css = CSS_CLASSES[element.layer]
    return f'<path class="{css}" data-index="{element.index}" d="{element.path}" {_style_attrs(style)}/>'


def scene_to_svg(scene: RenderedScene, controller: Optional[InteractionController] = None) -> str:
    transform = controller.transform if controller else ZoomTransform.identity()
    background: List[str] = []
    body: List[str] = []
    for element in scene.elements():
        style = controller.effective_style(element) if controller else element.style
        if element.layer is LayerKind.BASEMAP:
            background.append(_path(element, style))
        else:
            body.append(_path(element, style))
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{scene.width:g}" height="{scene.height:g}" '
        f'viewBox="0 0 {scene.width:g} {scene.height:g}">'
        + "".join(background)
        + f'<g transform="{transform.to_svg()}">'
        + "".join(body)
        + "</g></svg>"
    )


def tooltip_html(controller: InteractionController) -> str:
    tooltip = controller.highlight.tooltip
    if tooltip is None:
        return ""
    x, y = tooltip.position
    return (
        f'<div class="map-tooltip" style="position: absolute; pointer-events: none; padding: 4px 8px; '
        f'left: {x:g}px; top: {y:g}px; opacity: {tooltip.opacity:g}">{tooltip.html}</div>'
    )


__all__ = ["scene_to_svg", "tooltip_html"]
