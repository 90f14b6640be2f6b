"""Configuration: the JSON config file plus per-run options.

Config file (all keys optional)::

    {
      "path": "notes/anki.tex",
      "header_file": "header_template.tex",
      "footer_file": "footer_template.tex",
      "file_include": ["\\\\.tex$"],
      "file_exclude": ["draft"],
      "anki_connect_url": "http://localhost:8765",
      "search_query": "*"
    }

Relative paths for the template files resolve against the config directory.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .anki_connect import DEFAULT_URL
from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "anki-texsync" / "config.json"
DEFAULT_HEADER_FILE = "header_template.tex"
DEFAULT_FOOTER_FILE = "footer_template.tex"


@dataclass
class SyncConfig:
    config_dir: Path
    path: Optional[Path] = None
    header_file: Optional[Path] = None
    footer_file: Optional[Path] = None
    file_include: List[re.Pattern] = field(default_factory=list)
    file_exclude: List[re.Pattern] = field(default_factory=list)
    anki_connect_url: str = DEFAULT_URL
    search_query: str = "*"

    def is_ignored(self, path: str) -> bool:
        """A path is ignored if it fails any include regex or matches any exclude regex."""
        for pattern in self.file_include:
            if not pattern.search(path):
                logger.info(
                    "ignoring %s because it is not included (regex=%s)", path, pattern.pattern
                )
                return True
        for pattern in self.file_exclude:
            if pattern.search(path):
                logger.info(
                    "ignoring %s because it is excluded (regex=%s)", path, pattern.pattern
                )
                return True
        return False

    def template_files(self) -> Tuple[Path, Path]:
        header = self.header_file or Path(DEFAULT_HEADER_FILE)
        footer = self.footer_file or Path(DEFAULT_FOOTER_FILE)
        if not header.is_absolute():
            header = self.config_dir / header
        if not footer.is_absolute():
            footer = self.config_dir / footer
        return header, footer


@dataclass
class SyncOptions:
    """Per-run switches that affect the notes sent to the store."""
    add_generated: bool = True
    add_generation_date: Optional[str] = None

    def extra_tags(self) -> List[str]:
        tags = []
        if self.add_generated:
            tags.append("generated")
        if self.add_generation_date:
            tags.append(self.add_generation_date)
        return tags


def generation_date_tag(today: Optional[dt.date] = None) -> str:
    return (today or dt.date.today()).strftime("%Y-%m-%d")


def _compile_all(patterns: List[str], key: str) -> List[re.Pattern]:
    compiled = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error as e:
            raise ConfigError(f"Invalid regex in '{key}': {p}", [str(e)]) from e
    return compiled


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def load_config(path: str | Path | None = None) -> SyncConfig:
    """Load the JSON config file; a missing file yields the defaults."""
    path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_dir = path.parent
    if not path.is_file():
        logger.info("no config file found. You can create one at %s", path)
        return SyncConfig(config_dir=config_dir)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"while reading config file from {path}", [str(e)]) from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")

    return SyncConfig(
        config_dir=config_dir,
        path=_optional_path(data.get("path")),
        header_file=_optional_path(data.get("header_file")),
        footer_file=_optional_path(data.get("footer_file")),
        file_include=_compile_all(data.get("file_include", []), "file_include"),
        file_exclude=_compile_all(data.get("file_exclude", []), "file_exclude"),
        anki_connect_url=data.get("anki_connect_url", DEFAULT_URL),
        search_query=data.get("search_query", "*"),
    )
