"""Load WhiskerConfig from whisker.yaml / whisker.toml / pyproject.toml.

Merges file config with CLI kwargs. CLI overrides file.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from whisker._errors import ConfigError
from whisker.config import WhiskerConfig

_KNOWN_KEYS: frozenset[str] = frozenset({
    "output",
    "docs",
    "docs_output",
    "router_candidates",
    "externals",
    "watch_patterns",
    "ignore_dirs",
    "interactive",
    "debug",
})

_PATH_KEYS = ("output", "docs_output")
_TUPLE_KEYS = ("router_candidates", "externals", "watch_patterns", "ignore_dirs")


def load_config(root: Path, **overrides: object) -> WhiskerConfig:
    """Load WhiskerConfig for *root*, merging any config file found there.

    Looks for whisker.yaml, whisker.yml, whisker.toml, then a
    ``[tool.whisker]`` table in pyproject.toml. Overrides whose value is
    None are ignored so CLI defaults never mask file values.

    Raises:
        ConfigError: On unreadable files or unknown keys.

    """
    file_config = _read_whisker_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}

    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"Unknown whisker config key(s): {', '.join(unknown)}"
        raise ConfigError(msg)

    for key in _PATH_KEYS:
        if key in merged and not isinstance(merged[key], Path):
            merged[key] = Path(str(merged[key]))
    for key in _TUPLE_KEYS:
        if key in merged:
            merged[key] = _as_tuple(key, merged[key])

    return WhiskerConfig(root=root, **merged)  # type: ignore[arg-type]


def _as_tuple(key: str, value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    msg = f"Config key {key!r} must be a list of strings, got {type(value).__name__}"
    raise ConfigError(msg)


def _read_whisker_config(root: Path) -> dict[str, object]:
    """Read whisker config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("whisker.yaml", "whisker.yml"):
        path = root / name
        if path.is_file():
            return _flatten_whisker_section(_parse_yaml(path))
    toml_path = root / "whisker.toml"
    if toml_path.is_file():
        return _flatten_whisker_section(_parse_toml(toml_path))
    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        tool = _parse_toml(pyproject).get("tool")
        if isinstance(tool, dict) and isinstance(tool.get("whisker"), dict):
            return dict(tool["whisker"])
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping at the top level"
        raise ConfigError(msg)
    return data


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Failed to read {path}: {exc}"
        raise ConfigError(msg) from exc


def _flatten_whisker_section(data: dict[str, object]) -> dict[str, object]:
    """Extract whisker.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("whisker")
    if isinstance(section, dict):
        result.update(section)
    for k, v in data.items():
        if k != "whisker":
            result[k] = v
    return result
