"""Hover, tooltip and pan/zoom state machine.

The controller owns the zoom transform and the transient highlight state. It
never touches feature data, colours or projected paths; zooming is a pure
affine applied after projection.
"""
from __future__ import annotations

import html
import logging
from dataclasses import replace
from enum import Enum
from typing import List, Optional, Tuple

from shapely.geometry import Point as ShapelyPoint

from .encoding import ColorEncoder
from .render import RenderedElement, RenderedScene
from .states import (
    Category,
    HighlightState,
    InteractionEvent,
    LayerKind,
    MapEvent,
    Point,
    Style,
    TooltipPayload,
    ZoomTransform,
)
from .utils import BoundaryStyleConfig, StyleConfig, VoteShareConfig

logger = logging.getLogger(__name__)

LINE_HIT_TOLERANCE_PX = 3.0


class HoverState(str, Enum):
    IDLE = "idle"
    HOVERING = "hovering"


class InteractionController:
    def __init__(
        self,
        encoder: ColorEncoder,
        style: StyleConfig,
        vote_share: VoteShareConfig,
        boundaries: BoundaryStyleConfig,
        zoom_extent: Tuple[float, float] = (0.5, 50.0),
    ) -> None:
        self.encoder = encoder
        self.style = style
        self.vote_share = vote_share
        self.boundaries = boundaries
        self.zoom_extent = zoom_extent
        self.scene: Optional[RenderedScene] = None
        self.transform = ZoomTransform.identity()
        self.highlight = HighlightState()

    @property
    def state(self) -> HoverState:
        return HoverState.HOVERING if self.highlight.active else HoverState.IDLE

    def bind(self, scene: RenderedScene) -> None:
        """Attach a freshly rendered scene; any hover on the old one is dropped."""
        if self.highlight.active:
            self._leave()
        self.scene = scene

    # Event dispatch

    def handle(self, event: MapEvent) -> None:
        if event.kind is InteractionEvent.POINTER_ENTER:
            if event.element is None or event.position is None:
                raise ValueError("pointer enter needs an element and a position")
            if self.highlight.active and self.highlight.element is not event.element:
                self._leave()
            self._enter(event.element, event.position)
        elif event.kind is InteractionEvent.POINTER_MOVE:
            if event.position is None:
                raise ValueError("pointer move needs a position")
            self._move(event.position)
        elif event.kind is InteractionEvent.POINTER_LEAVE:
            self._leave()
        elif event.kind is InteractionEvent.ZOOM_CHANGED:
            if event.transform is None:
                raise ValueError("zoom change needs a transform")
            self._zoom(event.transform)

    def _enter(self, element: RenderedElement, position: Point) -> None:
        logger.debug("hover %s[%d]", element.layer.value, element.index)
        self.highlight.element = element
        self.highlight.tooltip = self.tooltip_for(element, position)

    def _move(self, position: Point) -> None:
        tooltip = self.highlight.tooltip
        if not self.highlight.active or tooltip is None:
            return
        self.highlight.tooltip = replace(tooltip, position=self.tooltip_position(position))

    def _leave(self) -> None:
        self.highlight.clear()

    def _zoom(self, transform: ZoomTransform) -> None:
        low, high = self.zoom_extent
        k = min(max(transform.k, low), high)
        self.transform = ZoomTransform(k=k, x=transform.x, y=transform.y)
        logger.debug("zoom transform %s", self.transform.to_svg())

    # Zoom gestures

    def zoom_by(self, factor: float, anchor: Point = (0.0, 0.0)) -> ZoomTransform:
        """Scale about a screen-space anchor that stays put."""
        low, high = self.zoom_extent
        k = min(max(self.transform.k * factor, low), high)
        mx, my = self.transform.invert(anchor)
        self.handle(
            MapEvent(
                InteractionEvent.ZOOM_CHANGED,
                transform=ZoomTransform(k=k, x=anchor[0] - k * mx, y=anchor[1] - k * my),
            )
        )
        return self.transform

    def pan_by(self, dx: float, dy: float) -> ZoomTransform:
        self.handle(MapEvent(InteractionEvent.ZOOM_CHANGED, transform=self.transform.translate(dx, dy)))
        return self.transform

    def reset_view(self) -> ZoomTransform:
        self.handle(MapEvent(InteractionEvent.ZOOM_CHANGED, transform=ZoomTransform.identity()))
        return self.transform

    # Hit-testing

    def hit_test(self, screen: Point) -> Optional[RenderedElement]:
        if self.scene is None:
            return None
        point = ShapelyPoint(self.transform.invert(screen))
        for element in self.scene.interactive_topmost():
            if element.area is not None:
                if element.area.contains(point):
                    return element
            elif element.outline is not None:
                tolerance = (element.style.stroke_width / 2 + LINE_HIT_TOLERANCE_PX) / self.transform.k
                if element.outline.distance(point) <= tolerance:
                    return element
        return None

    def pointer_at(self, screen: Point) -> Optional[RenderedElement]:
        """Dispatch enter/move/leave for a pointer at a screen position."""
        hit = self.hit_test(screen)
        position = self.transform.invert(screen)
        if hit is None:
            if self.highlight.active:
                self.handle(MapEvent(InteractionEvent.POINTER_LEAVE))
        elif hit is self.highlight.element:
            self.handle(MapEvent(InteractionEvent.POINTER_MOVE, position=position))
        else:
            self.handle(MapEvent(InteractionEvent.POINTER_ENTER, position=position, element=hit))
        return hit

    # Presentation

    def tooltip_position(self, position: Point) -> Point:
        x, y = self.transform.apply(position)
        dx, dy = self.style.tooltip_offset
        return (x + dx, y + dy)

    def effective_style(self, element: RenderedElement) -> Style:
        if element.emphasis and element is self.highlight.element:
            return element.style.with_stroke(self.style.highlight_stroke, self.style.highlight_stroke_width)
        return element.style

    def tooltip_for(self, element: RenderedElement, position: Point) -> TooltipPayload:
        if element.layer is LayerKind.UNITS and element.record is not None:
            lines, html_body = self._unit_tooltip(element)
        else:
            lines, html_body = self._boundary_tooltip(element)
        return TooltipPayload(html=html_body, text="\n".join(lines), position=self.tooltip_position(position))

    def _unit_tooltip(self, element: RenderedElement) -> Tuple[List[str], str]:
        record = element.record
        confidence = element.style.fill_opacity * 100
        leading = self.encoder.label_for(record.leading_category)
        title = record.label
        lines = [title, f"Leading: {leading}", f"Opacity: {confidence:.1f}%"]
        rows = []
        for cat in self.vote_share.categories:
            share = record.shares.get(Category(cat.id), 0.0)
            votes = element.properties.get(cat.votes_attribute) or 0
            if not isinstance(votes, (int, float)) or isinstance(votes, bool):
                votes = 0
            line = f"{cat.label}: {share:.1f}% ({votes:,.0f} votes)"
            lines.append(line)
            rows.append(f'<div style="color: {cat.color}">{html.escape(line)}</div>')
        body = (
            f'<div style="font-weight: bold; margin-bottom: 4px">{html.escape(title)}</div>'
            '<div style="margin-bottom: 6px; padding: 4px; background: rgba(0,0,0,0.1); border-radius: 3px">'
            f"<strong>Leading: {html.escape(leading)}</strong><br>"
            f"<small>Opacity: {confidence:.1f}%</small></div>" + "".join(rows)
        )
        return lines, body

    def _boundary_tooltip(self, element: RenderedElement) -> Tuple[List[str], str]:
        name = str(element.properties.get(self.boundaries.name_attribute) or "")
        note = str(element.properties.get(self.boundaries.note_attribute) or "")
        body = (
            f'<div style="font-weight: bold; margin-bottom: 4px">{html.escape(name)}</div>'
            f'<div style="color: #666">{html.escape(note)}</div>'
        )
        return [line for line in (name, note) if line], body


__all__ = ["HoverState", "InteractionController", "LINE_HIT_TOLERANCE_PX"]
