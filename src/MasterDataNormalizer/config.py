"""Configuration loading for the normalization engine."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from MasterDataNormalizer.audit.models import mapping_auto_select_action, mapping_update_action
from MasterDataNormalizer.exceptions import ConfigError
from MasterDataNormalizer.matching.abbreviations import CITY_ALIASES, STATE_ABBREVIATIONS, AbbreviationTable
from MasterDataNormalizer.matching.canonical import (
    INDIAN_CITIES,
    INDIAN_STATES,
    CanonicalSet,
    CanonicalSetProvider,
)
from MasterDataNormalizer.matching.models import HIGH_CONFIDENCE

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "master_data_normalizer" / "config.toml"
DEFAULT_TABLE = "creators"

_BUILTIN_LABELS: Dict[str, tuple[str, ...]] = {"state": INDIAN_STATES, "city": INDIAN_CITIES}
_BUILTIN_ABBREVIATIONS: Dict[str, Mapping[str, str]] = {"state": STATE_ABBREVIATIONS, "city": CITY_ALIASES}


@dataclass(frozen=True)
class CategoryConfig:
    """Where one category's raw labels live and what they normalize to."""

    name: str
    column: str
    table_name: str = DEFAULT_TABLE
    canonical_labels: tuple[str, ...] = tuple()
    abbreviations: Mapping[str, str] = field(default_factory=dict)

    @property
    def update_action(self) -> str:
        return mapping_update_action(self.name)

    @property
    def auto_select_action(self) -> str:
        return mapping_auto_select_action(self.name)

    def canonical_set(self) -> CanonicalSet:
        return CanonicalSet(self.name, self.canonical_labels)

    def abbreviation_table(self) -> AbbreviationTable:
        return AbbreviationTable(self.abbreviations)


@dataclass(frozen=True)
class EngineConfig:
    """Resolved engine configuration."""

    categories: Dict[str, CategoryConfig] = field(default_factory=dict)
    database_path: Optional[Path] = None
    auto_select_threshold: int = HIGH_CONFIDENCE
    compound_separators: tuple[str, ...] = ("/",)
    match_workers: Optional[int] = None
    commit_workers: Optional[int] = None
    store_timeout_seconds: Optional[float] = None
    audit_attempts: int = 2
    log_level: str = "INFO"

    def category(self, name: str) -> CategoryConfig:
        try:
            return self.categories[name]
        except KeyError as exc:
            known = ", ".join(sorted(self.categories)) or "none"
            raise ConfigError(f"Unknown category {name!r} (configured: {known})") from exc

    def canonical_sets(self) -> CanonicalSetProvider:
        return CanonicalSetProvider({name: category.canonical_set() for name, category in self.categories.items()})


def _builtin_category(name: str) -> CategoryConfig:
    return CategoryConfig(
        name=name,
        column=name,
        canonical_labels=_BUILTIN_LABELS[name],
        abbreviations=dict(_BUILTIN_ABBREVIATIONS[name]),
    )


def default_engine_config() -> EngineConfig:
    return EngineConfig(categories={name: _builtin_category(name) for name in _BUILTIN_LABELS})


def _parse_category(name: str, data: Mapping[str, Any]) -> CategoryConfig:
    builtin = _builtin_category(name) if name in _BUILTIN_LABELS else None
    labels = data.get("canonical_labels")
    if labels is None:
        if builtin is None:
            raise ConfigError(f"Category '{name}' missing canonical_labels")
        labels = builtin.canonical_labels
    abbreviations = dict(builtin.abbreviations) if builtin else {}
    abbreviations.update({str(key): str(value) for key, value in (data.get("abbreviations") or {}).items()})
    if data.get("replace_abbreviations"):
        abbreviations = {str(key): str(value) for key, value in (data.get("abbreviations") or {}).items()}
    return CategoryConfig(
        name=name,
        column=str(data.get("column", name)),
        table_name=str(data.get("table_name", DEFAULT_TABLE)),
        canonical_labels=tuple(str(label) for label in labels),
        abbreviations=abbreviations,
    )


def _positive_int(value: Any, key: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {parsed}")
    return parsed


def _threshold(value: Any, key: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc
    if not 0 <= parsed <= 100:
        raise ConfigError(f"{key} must be between 0 and 100, got {parsed}")
    return parsed


def _timeout(value: Any, key: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {parsed}")
    return parsed


def _expand(path: Optional[str | Path], base: Optional[Path]) -> Optional[Path]:
    if path is None:
        return None
    candidate = Path(path).expanduser()
    if not candidate.is_absolute() and base is not None:
        candidate = (base / candidate).resolve()
    return candidate


def _read_file(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    content = path.read_bytes()
    try:
        if suffix == ".json":
            return json.loads(content)
        if suffix in {".toml", ".tml"}:
            return tomllib.loads(content.decode("utf-8"))
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Cannot parse config file {path}: {exc}") from exc
    raise ConfigError(f"Unsupported config format: {path.suffix}")


def _load_file_config(path: Path) -> EngineConfig:
    data = _read_file(path)
    base = default_engine_config()
    categories = dict(base.categories)
    for name, category_data in (data.get("categories") or {}).items():
        categories[name] = _parse_category(name, category_data or {})

    config = replace(base, categories=categories)
    scalar_parsers: Dict[str, Callable[[Any, str], Any]] = {
        "auto_select_threshold": _threshold,
        "match_workers": _positive_int,
        "commit_workers": _positive_int,
        "store_timeout_seconds": _timeout,
        "audit_attempts": _positive_int,
    }
    updates: Dict[str, Any] = {}
    for key, parser in scalar_parsers.items():
        if data.get(key) is not None:
            updates[key] = parser(data[key], key)
    if data.get("database_path"):
        updates["database_path"] = _expand(data["database_path"], path.parent)
    if data.get("compound_separators"):
        updates["compound_separators"] = tuple(str(sep) for sep in data["compound_separators"] if sep)
    if data.get("log_level"):
        updates["log_level"] = str(data["log_level"]).upper()
    return replace(config, **updates)


def _apply_env_overrides(config: EngineConfig, env: Mapping[str, str]) -> EngineConfig:
    database_path = env.get("MDN_DATABASE_PATH")
    threshold = env.get("MDN_AUTO_SELECT_THRESHOLD")
    match_workers = env.get("MDN_MATCH_WORKERS")
    commit_workers = env.get("MDN_COMMIT_WORKERS")
    timeout = env.get("MDN_STORE_TIMEOUT")
    audit_attempts = env.get("MDN_AUDIT_ATTEMPTS")
    log_level = env.get("MDN_LOG_LEVEL")

    updated = config
    if database_path:
        updated = replace(updated, database_path=_expand(database_path, None))
    if threshold:
        updated = replace(updated, auto_select_threshold=_threshold(threshold, "MDN_AUTO_SELECT_THRESHOLD"))
    if match_workers:
        updated = replace(updated, match_workers=_positive_int(match_workers, "MDN_MATCH_WORKERS"))
    if commit_workers:
        updated = replace(updated, commit_workers=_positive_int(commit_workers, "MDN_COMMIT_WORKERS"))
    if timeout:
        updated = replace(updated, store_timeout_seconds=_timeout(timeout, "MDN_STORE_TIMEOUT"))
    if audit_attempts:
        updated = replace(updated, audit_attempts=_positive_int(audit_attempts, "MDN_AUDIT_ATTEMPTS"))
    if log_level:
        updated = replace(updated, log_level=log_level.upper())
    return updated


def load_engine_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Load configuration from ``path`` (or the default location) and the environment.

    Missing files fall back to the built-in ``state`` and ``city`` categories.
    """

    environment = os.environ if env is None else env
    config_path = path
    if config_path is None:
        override = environment.get("MDN_CONFIG")
        config_path = Path(override).expanduser() if override else DEFAULT_CONFIG_PATH
    if config_path.exists():
        config = _load_file_config(config_path)
    elif path is not None:
        raise ConfigError(f"Config file not found: {path}")
    else:
        config = default_engine_config()
    return _apply_env_overrides(config, environment)


__all__ = [
    "CategoryConfig",
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "default_engine_config",
    "load_engine_config",
]
