"""Tests for YAML config loading and settings resolution."""
from __future__ import annotations

import pytest
from loguru import logger

from node_annotator.core import config
from node_annotator.core.config_loader import load_settings, load_yaml, preview_yaml


def test_missing_file_uses_environment_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "WORKERS", 3)

    settings = load_settings(tmp_path / "missing.yml")

    assert settings == {
        "workers": 3,
        "base_retry_delay": config.BASE_RETRY_DELAY,
        "max_retry_delay": config.MAX_RETRY_DELAY,
        "annotation_key": config.ANNOTATION_KEY,
    }


def test_yaml_overrides_known_keys(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "workers: 8\n"
        "base_retry_delay: 0.5\n"
        "max_retry_delay: 60\n"
        "annotation_key: example.com/instance\n"
        "unknown: true\n"
    )

    settings = load_settings(path)

    assert settings["workers"] == 8
    assert settings["base_retry_delay"] == 0.5
    assert settings["max_retry_delay"] == 60.0
    assert settings["annotation_key"] == "example.com/instance"
    assert "unknown" not in settings


@pytest.mark.parametrize(
    "content",
    ["workers: 0\n", "base_retry_delay: 10\nmax_retry_delay: 1\n"],
)
def test_invalid_settings_rejected(tmp_path, content):
    path = tmp_path / "config.yml"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_settings(path)


def test_load_yaml_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("- a\n- b\n")
    assert load_yaml(path) == {}


def test_load_yaml_invalid_yaml_returns_empty(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("workers: [unclosed\n")
    assert load_yaml(path) == {}


def test_preview_of_missing_optional_file_does_not_warn(tmp_path):
    messages = []
    sink_id = logger.add(messages.append, level="WARNING")
    try:
        preview_yaml(tmp_path / "missing.yml")
    finally:
        logger.remove(sink_id)

    assert messages == []
