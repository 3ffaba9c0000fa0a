"""Error taxonomy for loading, projecting and styling map layers."""
from __future__ import annotations

from typing import Optional


class AtlasError(Exception):
    """Base class for boundary atlas errors."""


class LoadFailure(AtlasError):
    """A feature collection could not be fetched or parsed."""

    def __init__(self, path: str, status: Optional[int] = None, reason: str = "") -> None:
        self.path = path
        self.status = status
        self.reason = reason
        detail = f"HTTP {status}" if status is not None else "unreadable"
        message = f"failed to load {path}: {detail}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ViewportNotReady(AtlasError):
    """The host container has no measurable size yet."""

    def __init__(self, width: float, height: float) -> None:
        self.width = width
        self.height = height
        super().__init__(f"viewport is {width}x{height}")


class ProjectionInitFailure(AtlasError):
    """The projection or render surface could not be set up."""


class InitFailure(ProjectionInitFailure):
    """The viewport never became measurable within the allowed attempts."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"map initialisation failed after {attempts} attempts")


class MalformedFeature(AtlasError):
    """A feature attribute is present but not numeric."""

    def __init__(self, layer: str, index: int, attribute: str, value: object) -> None:
        self.layer = layer
        self.index = index
        self.attribute = attribute
        self.value = value
        super().__init__(
            f"{layer}[{index}] attribute {attribute!r} is not numeric: {value!r}"
        )


__all__ = [
    "AtlasError",
    "LoadFailure",
    "ViewportNotReady",
    "ProjectionInitFailure",
    "InitFailure",
    "MalformedFeature",
]
