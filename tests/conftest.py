from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from boundary_atlas.data.loader import parse_collection
from boundary_atlas.map.errors import LoadFailure
from boundary_atlas.map.states import Feature
from boundary_atlas.map.utils import ConfigBundle, load_config_bundle

SHARE_KEYS = ("(1) 得票率 (%)", "(2) 得票率 (%)", "(3) 得票率 (%)")
VOTE_KEYS = ("(1) 柯文哲 吳欣盈", "(2) 賴清德 蕭美琴", "(3) 侯友宜 趙少康")


def square(lon: float, lat: float, half: float) -> List:
    return [[
        [lon - half, lat - half],
        [lon + half, lat - half],
        [lon + half, lat + half],
        [lon - half, lat + half],
        [lon - half, lat - half],
    ]]


def unit_geojson(shares, lon: float = 121.0, lat: float = 23.5, half: float = 0.2, votes=None, name="中正區") -> Dict:
    properties = {"COUNTYNAME": "臺北市", "TOWNNAME": name}
    for key, value in zip(SHARE_KEYS, shares):
        properties[key] = value
    for key, value in zip(VOTE_KEYS, votes or (1000, 2000, 3000)):
        properties[key] = value
    return {"type": "Feature", "properties": properties, "geometry": {"type": "Polygon", "coordinates": square(lon, lat, half)}}


def units(*share_rows) -> List[Feature]:
    return [Feature.from_geojson(unit_geojson(shares), index) for index, shares in enumerate(share_rows)]


def collection(*features: Dict) -> Dict:
    return {"type": "FeatureCollection", "features": list(features)}


class MemoryLoader:
    def __init__(self, payloads: Dict[str, Optional[Dict]]) -> None:
        self.payloads = payloads
        self.calls: List[str] = []

    async def fetch_collection(self, path: str) -> List[Feature]:
        self.calls.append(path)
        payload = self.payloads.get(path)
        if payload is None:
            raise LoadFailure(path, status=404)
        return parse_collection(payload, path)


@pytest.fixture
def bundle() -> ConfigBundle:
    return load_config_bundle()


@pytest.fixture
def layer_paths(bundle) -> Dict[str, str]:
    return {source.kind: source.path for source in bundle.layers}
