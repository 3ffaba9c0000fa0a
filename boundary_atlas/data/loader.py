"""GeoJSON feature collection loading."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from boundary_atlas.map.errors import LoadFailure
from boundary_atlas.map.states import Feature

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def parse_collection(payload: Dict[str, Any], source: str = "<memory>") -> List[Feature]:
    if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
        raise LoadFailure(source, reason="not a GeoJSON FeatureCollection")
    features: List[Feature] = []
    for index, obj in enumerate(payload["features"]):
        if not isinstance(obj, dict):
            raise LoadFailure(source, reason=f"feature {index} is not an object")
        for member in ("geometry", "properties"):
            if obj.get(member) is not None and not isinstance(obj[member], dict):
                raise LoadFailure(source, reason=f"feature {index} has a malformed {member}")
        features.append(Feature.from_geojson(obj, index))
    return features


class GeoJSONLoader:
    """Fetches collections from disk, or over HTTP for ``http(s)://`` paths."""

    def __init__(
        self,
        data_root: Optional[Path] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.data_root = data_root
        self.transport = transport
        self.timeout = timeout

    async def fetch_collection(self, path: str) -> List[Feature]:
        if path.startswith(("http://", "https://")):
            payload = await self._fetch_remote(path)
        else:
            payload = self._read_local(path)
        features = parse_collection(payload, path)
        logger.info("loaded %s (%d features)", path, len(features))
        return features

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute() and self.data_root is not None:
            candidate = self.data_root / candidate
        return candidate

    def _read_local(self, path: str) -> Dict[str, Any]:
        file_path = self._resolve(path)
        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as exc:
            raise LoadFailure(str(file_path), status=404, reason="file not found") from exc
        except json.JSONDecodeError as exc:
            raise LoadFailure(str(file_path), reason=f"invalid JSON: {exc.msg}") from exc
        except UnicodeDecodeError as exc:
            raise LoadFailure(str(file_path), reason=f"not UTF-8 text: {exc.reason}") from exc
        except OSError as exc:
            raise LoadFailure(str(file_path), reason=exc.strerror or str(exc)) from exc

    async def _fetch_remote(self, url: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.timeout, follow_redirects=True
        ) as client:
            try:
                response = await client.get(url)
            except httpx.HTTPError as exc:
                raise LoadFailure(url, reason=str(exc)) from exc
        if response.status_code != 200:
            raise LoadFailure(url, status=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise LoadFailure(url, status=response.status_code, reason="invalid JSON") from exc


__all__ = ["GeoJSONLoader", "parse_collection"]
