"""Tests for engine configuration loading."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path

import pytest

from MasterDataNormalizer.config import default_engine_config, load_engine_config
from MasterDataNormalizer.exceptions import ConfigError


def write_config(tmp_path: Path, text: str, name: str = "engine.toml") -> Path:
    config_path = tmp_path / name
    config_path.write_text(text, encoding="utf-8")
    return config_path


def test_defaults_when_no_file(tmp_path: Path) -> None:
    config = load_engine_config(env={"MDN_CONFIG": str(tmp_path / "missing.toml")})

    assert set(config.categories) == {"state", "city"}
    state = config.category("state")
    assert state.column == "state"
    assert state.table_name == "creators"
    assert len(state.canonical_labels) == 36
    assert state.update_action == "STATE_MAPPING_UPDATE"
    assert state.auto_select_action == "STATE_MAPPING_AUTO_SELECT"
    assert state.abbreviation_table().lookup("U.P.") == "Uttar Pradesh"
    assert config.auto_select_threshold == 90
    assert config.audit_attempts == 2
    assert config.database_path is None


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_engine_config(tmp_path / "missing.toml", env={})


def test_toml_file_with_custom_category(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        """
database_path = "data/normalizer.duckdb"
auto_select_threshold = 85
commit_workers = 4
compound_separators = ["/", "&"]

[categories.state]
table_name = "profiles"
abbreviations = { "orissa" = "Odisha" }

[categories.country]
column = "country_name"
canonical_labels = ["India", "Nepal"]
abbreviations = { "in" = "India" }
""",
    )

    config = load_engine_config(config_path, env={})

    assert config.database_path == (tmp_path / "data" / "normalizer.duckdb").resolve()
    assert config.auto_select_threshold == 85
    assert config.commit_workers == 4
    assert config.compound_separators == ("/", "&")
    state = config.category("state")
    assert state.table_name == "profiles"
    assert state.abbreviation_table().lookup("Orissa") == "Odisha"
    assert state.abbreviation_table().lookup("UP") == "Uttar Pradesh"
    country = config.category("country")
    assert country.column == "country_name"
    assert tuple(country.canonical_set()) == ("India", "Nepal")
    assert country.update_action == "COUNTRY_MAPPING_UPDATE"
    assert "country" in config.canonical_sets().categories()


def test_replace_abbreviations(tmp_path: Path) -> None:
    config_path = write_config(
        tmp_path,
        json.dumps({"categories": {"city": {"abbreviations": {"blr": "Bangalore"}, "replace_abbreviations": True}}}),
        name="engine.json",
    )
    city = load_engine_config(config_path, env={}).category("city")
    assert dict(city.abbreviations) == {"blr": "Bangalore"}


def test_custom_category_requires_labels(tmp_path: Path) -> None:
    config_path = write_config(tmp_path, "[categories.country]\ncolumn = \"country\"\n")
    with pytest.raises(ConfigError, match="canonical_labels"):
        load_engine_config(config_path, env={})


def test_env_overrides(tmp_path: Path) -> None:
    config = load_engine_config(
        env={
            "MDN_CONFIG": str(tmp_path / "missing.toml"),
            "MDN_DATABASE_PATH": str(tmp_path / "db.duckdb"),
            "MDN_AUTO_SELECT_THRESHOLD": "80",
            "MDN_MATCH_WORKERS": "2",
            "MDN_STORE_TIMEOUT": "1.5",
            "MDN_AUDIT_ATTEMPTS": "3",
            "MDN_LOG_LEVEL": "debug",
        }
    )
    assert config.database_path == tmp_path / "db.duckdb"
    assert config.auto_select_threshold == 80
    assert config.match_workers == 2
    assert config.store_timeout_seconds == 1.5
    assert config.audit_attempts == 3
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("MDN_AUTO_SELECT_THRESHOLD", "120"),
        ("MDN_COMMIT_WORKERS", "0"),
        ("MDN_STORE_TIMEOUT", "soon"),
    ],
)
def test_invalid_env_values(tmp_path: Path, key: str, value: str) -> None:
    with pytest.raises(ConfigError):
        load_engine_config(env={"MDN_CONFIG": str(tmp_path / "missing.toml"), key: value})


def test_unparseable_file(tmp_path: Path) -> None:
    config_path = write_config(tmp_path, "auto_select_threshold = [", name="broken.toml")
    with pytest.raises(ConfigError):
        load_engine_config(config_path, env={})


def test_unknown_category_lists_configured_ones() -> None:
    with pytest.raises(ConfigError, match="city, state"):
        default_engine_config().category("country")


def test_engine_config_fields() -> None:
    assert {setting.name for setting in fields(default_engine_config())} == {
        "categories",
        "database_path",
        "auto_select_threshold",
        "compound_separators",
        "match_workers",
        "commit_workers",
        "store_timeout_seconds",
        "audit_attempts",
        "log_level",
    }
