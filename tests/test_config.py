from __future__ import annotations

import asyncio
import json
import shutil

import pydantic
import pytest

from boundary_atlas.map.engine import AtlasMap
from boundary_atlas.map.projection import StaticViewport
from boundary_atlas.map.states import LayerKind
from boundary_atlas.map.utils import CONFIG_DIR, DEFAULT_DATA_ROOT, load_config_bundle


def _config_copy(tmp_path, **changes):
    raw = json.loads((CONFIG_DIR / "atlas_config.json").read_text(encoding="utf-8"))
    raw.update(changes)
    (tmp_path / "atlas_config.json").write_text(json.dumps(raw, ensure_ascii=False), encoding="utf-8")
    return tmp_path


def test_bundle_defaults(bundle):
    assert bundle.projection.center == (121.0, 23.5)
    assert bundle.retry.max_attempts == 20
    assert [cat.id for cat in bundle.vote_share.categories] == ["A", "B", "C"]
    assert bundle.data_root == DEFAULT_DATA_ROOT


def test_hash_follows_content(tmp_path, bundle):
    (tmp_path / "same").mkdir()
    (tmp_path / "other").mkdir()
    same = load_config_bundle(_config_copy(tmp_path / "same"))
    other = load_config_bundle(_config_copy(tmp_path / "other", retry={"max_attempts": 5, "delay_seconds": 0.1}))
    assert same.hash() == bundle.hash()
    assert other.hash() != bundle.hash()


def test_environment_overrides_data_root(tmp_path, monkeypatch):
    monkeypatch.setenv("ATLAS_DATA_ROOT", str(tmp_path / "elsewhere"))
    bundle = load_config_bundle(_config_copy(tmp_path))
    assert bundle.data_root == tmp_path / "elsewhere"


def test_unknown_projection_is_rejected(tmp_path):
    with pytest.raises(pydantic.ValidationError):
        load_config_bundle(_config_copy(tmp_path, projection={"kind": "orthographic"}))


def test_sample_layers_render_end_to_end(tmp_path, monkeypatch):
    shutil.copytree(DEFAULT_DATA_ROOT, tmp_path / "data")
    monkeypatch.setenv("ATLAS_DATA_ROOT", str(tmp_path / "data"))
    bundle = load_config_bundle(_config_copy(tmp_path))

    atlas = AtlasMap(bundle, viewport=StaticViewport(960, 720))
    scene = asyncio.run(atlas.start())

    assert atlas.collections.failures == {}
    assert [layer.kind for layer in scene.layers] == list(LayerKind)
    assert not any(layer.failed for layer in scene.layers)
    assert len(scene.layer(LayerKind.HISTORICAL).elements) == 3
    assert len(scene.layer(LayerKind.UNITS).elements) == 4
    assert len(scene.layer(LayerKind.RISK_GRID).elements) == 3


def test_data_root_override_is_read_on_each_load(tmp_path, monkeypatch):
    config_dir = _config_copy(tmp_path)
    monkeypatch.delenv("ATLAS_DATA_ROOT", raising=False)
    assert load_config_bundle(config_dir).data_root == DEFAULT_DATA_ROOT

    monkeypatch.setenv("ATLAS_DATA_ROOT", str(tmp_path / "later"))
    assert load_config_bundle(config_dir).data_root == tmp_path / "later"
