"""Tests for the configuration system."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from outpost.config.loader import load_config
from outpost.config.schema import DispatchConfig, OutpostConfig


def test_dispatch_defaults():
    config = DispatchConfig()
    assert config.sending_interval == 1800
    assert config.sending_interval_seconds == 1.8
    assert config.is_group is False
    assert config.self_id is None


def test_sending_interval_floor():
    with pytest.raises(ValidationError):
        DispatchConfig(sending_interval=50)
    assert DispatchConfig(sending_interval=100).sending_interval == 100


def test_env_override(monkeypatch):
    monkeypatch.setenv("OUTPOST_DISPATCH__SENDING_INTERVAL", "500")
    config = OutpostConfig()
    assert config.dispatch.sending_interval == 500


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"dispatch": {"sending_interval": 250, "is_group": True, "self_id": 12}}),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.dispatch.sending_interval == 250
    assert config.dispatch.is_group is True
    assert config.dispatch.self_id == 12


def test_load_config_missing_file_uses_defaults(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.dispatch.sending_interval == 1800
    assert config.logging.verbose is False


def test_version_is_string():
    import outpost

    assert isinstance(outpost.__version__, str)
    assert len(outpost.__version__.split(".")) == 3
