"""Shared test fixtures for inkwell."""

import os
import tempfile

import pytest


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "entries_dir": os.path.join(tmp_dir, "data", "entries"),
        },
        "autosave": {"quiet_period": 0.5},
        "journal": {"extension": ".html"},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture(autouse=True)
def _clear_inkwell_env(monkeypatch):
    """Keep host INKWELL_* variables from leaking into config under test."""
    for key in list(os.environ):
        if key.startswith("INKWELL_"):
            monkeypatch.delenv(key)
