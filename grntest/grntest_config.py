from __future__ import annotations

import shutil
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml


class ConfigError(Exception):
    pass


def detect_suitable_diff() -> Tuple[str, List[str]]:
    """Prefer cut-diff when it is installed; fall back to unified diff."""
    if shutil.which("cut-diff"):
        return "cut-diff", ["--context-lines", "10"]
    return "diff", ["-u"]


def _default_diff() -> str:
    return detect_suitable_diff()[0]


def _default_diff_options() -> List[str]:
    return detect_suitable_diff()[1]


@dataclass
class TesterConfig:
    __test__ = False

    groonga: str = "groonga"
    base_directory: Path = Path(".")
    temporary_directory: Path = Path("tmp")
    diff: str = field(default_factory=_default_diff)
    diff_options: List[str] = field(default_factory=_default_diff_options)
    first_timeout: float = 1.0
    output_type: str = "json"

    def update(self, values: Dict[str, Any]) -> "TesterConfig":
        known = {f.name for f in fields(self)}
        for raw_key, value in values.items():
            key = str(raw_key).replace("-", "_")
            if key not in known:
                raise ConfigError(f"unknown configuration key: {raw_key!r}")
            match key:
                case "base_directory" | "temporary_directory":
                    value = Path(value)
                case "diff_options":
                    value = [value] if isinstance(value, str) else [str(v) for v in value]
                case "first_timeout":
                    try:
                        value = float(value)
                    except (TypeError, ValueError):
                        raise ConfigError(f"first-timeout must be a number, got {value!r}") from None
            setattr(self, key, value)
        return self


def load_config(path, base: Optional[TesterConfig] = None) -> TesterConfig:
    """Read a YAML mapping of settings on top of `base` (or the defaults)."""
    config = base or TesterConfig()
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if data is None:
        return config
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return config.update(data)
