"""User config for extraction defaults."""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path

import click

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_PROPERTIES_FILE = ".pboproperties"


@dataclass
class Config:
    extract_dir: Path | None = None
    properties_file: str = DEFAULT_PROPERTIES_FILE
    overwrite: bool = False


def get_config_path() -> Path:
    """Return the TOML config file path via click.get_app_dir."""
    return Path(click.get_app_dir("pboreader")) / "config.toml"


def load_config() -> Config:
    """Read TOML config. Returns default Config if file missing."""
    path = get_config_path()
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise click.ClickException(f"Invalid config file {path}: {exc}") from exc

    extract_dir = data.get("extract_dir")
    return Config(
        extract_dir=Path(extract_dir) if extract_dir else None,
        properties_file=data.get("properties_file", DEFAULT_PROPERTIES_FILE),
        overwrite=bool(data.get("overwrite", False)),
    )


def _toml_string(value: str) -> str:
    """Literal string when possible so backslashes stay readable, else escaped basic string."""
    if "'" not in value and not any(ch < " " for ch in value):
        return f"'{value}'"
    # JSON escapes (\" \\ \n \uXXXX) are all valid in TOML basic strings
    return json.dumps(value)


def save_config(config: Config) -> Path:
    """Write config to TOML using literal strings for paths."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    if config.extract_dir is not None:
        lines.append(f"extract_dir = {_toml_string(str(config.extract_dir))}")
    lines.append(f"properties_file = {_toml_string(config.properties_file)}")
    lines.append(f"overwrite = {'true' if config.overwrite else 'false'}")
    lines.append("")

    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def resolve_output_dir(explicit: Path | None, archive: Path, config: Config) -> Path:
    """Resolve extract destination: --output > config extract_dir > next to archive."""
    if explicit is not None:
        return explicit
    if config.extract_dir is not None:
        return config.extract_dir / archive.stem
    return archive.parent / archive.stem
