from __future__ import annotations

import os

import pytest

from tibetscribe.config_loader import DEFAULT_CONFIG, ConfigLoader
from tibetscribe.exceptions import ConfigurationError

REPO_CONFIG = os.path.join(os.path.dirname(__file__), os.pardir, "config.yaml")


def write(tmp_path, body: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return str(path)


def test_shipped_config_matches_defaults() -> None:
    config = ConfigLoader().load_config(REPO_CONFIG)
    assert config == DEFAULT_CONFIG


def test_missing_keys_fall_back_to_defaults(tmp_path) -> None:
    config = ConfigLoader().load_config(write(tmp_path, "quality_level: 40\ndevice: cpu\n"))
    assert config["quality_level"] == 40
    assert config["device"] == "cpu"
    assert config["transcription_model"] == "gemini-2.0-flash"


def test_empty_file_yields_defaults(tmp_path) -> None:
    assert ConfigLoader().load_config(write(tmp_path, "")) == DEFAULT_CONFIG


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        ConfigLoader().load_config(str(tmp_path / "absent.yaml"))


def test_directory_is_rejected(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(str(tmp_path))


@pytest.mark.parametrize("body", [
    "quality_level: [1, 2\n",
    "- just\n- a list\n",
])
def test_malformed_yaml_is_rejected(tmp_path, body: str) -> None:
    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(write(tmp_path, body))


@pytest.mark.parametrize("body", [
    "quality_level: 101\n",
    "quality_level: -1\n",
    "quality_level: high\n",
    "quality_level: true\n",
    "translation_backend: deepl\n",
    "device: tpu\n",
])
def test_invalid_values_are_rejected(tmp_path, body: str) -> None:
    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(write(tmp_path, body))


def test_validate_accepts_boundary_levels() -> None:
    loader = ConfigLoader()
    for level in (0, 100, 37.5, None):
        loader.validate(dict(DEFAULT_CONFIG, quality_level=level))
