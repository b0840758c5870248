"""Fixtures for CLI tests: settings files written into tmp_path."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml


@pytest.fixture
def write_settings(tmp_path: Path) -> Callable[..., Path]:
    """Write a settings YAML and return its path.

    The database always lives under tmp_path unless overridden.
    """

    def _write(**sections: Any) -> Path:
        config: dict[str, Any] = {"database": {"url": f"sqlite:///{tmp_path / 'members.db'}", "pool_size": 4}}
        config.update(sections)
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.dump(config))
        return path

    return _write
