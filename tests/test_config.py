from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from patchfit.config import PatchConfig, default_config_data, load_config, write_config
from patchfit.errors import ConfigError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.yaml")

    assert config == PatchConfig()
    assert config.apply.fuzz == 2
    assert config.workspace.exclude == ["**/node_modules/**", "**/.git/**"]


def test_load_config_requires_file_when_asked(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml", required=True)


def test_load_config_merges_partial_document(tmp_path: Path) -> None:
    path = tmp_path / "patchfit.yaml"
    path.write_text("apply:\n  fuzz: 0\nlogging:\n  level: DEBUG\n", encoding="utf-8")

    config = load_config(path)

    assert config.apply.fuzz == 0
    assert config.apply.strict_counts is False
    assert config.logging.level == "DEBUG"
    assert config.workspace.max_candidates == 5


@pytest.mark.parametrize(
    "document",
    [
        "apply:\n  fuzz: -1\n",
        "apply:\n  fuzzy: 1\n",
        "- just\n- a list\n",
        "apply: [unclosed\n",
    ],
)
def test_load_config_rejects_invalid_documents(tmp_path: Path, document: str) -> None:
    path = tmp_path / "patchfit.yaml"
    path.write_text(document, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_write_config_round_trips_defaults(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "patchfit.yaml"

    write_config(path)

    assert yaml.safe_load(path.read_text(encoding="utf-8")) == default_config_data()
    assert load_config(path) == PatchConfig()


def test_resolve_root_is_relative_to_config_file(tmp_path: Path) -> None:
    path = tmp_path / "conf" / "patchfit.yaml"
    config = PatchConfig.model_validate({"workspace": {"root": "../project"}})

    assert config.resolve_root(path) == (tmp_path / "project").resolve()
    assert PatchConfig().resolve_root(None) == Path(".").resolve()
