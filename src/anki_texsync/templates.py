"""Document header/footer and template file scaffolding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .config import SyncConfig
from .errors import TemplateError

logger = logging.getLogger(__name__)

DEFAULT_HEADER = r"""\documentclass{article}
\usepackage{ankitex}
\usepackage{custom}

\begin{document}
"""
DEFAULT_FOOTER = r"\end{document}"

PLACEHOLDER = "\n% Add your content here\n\n"


@dataclass(frozen=True)
class Framing:
    """Exact text a document must start and end with."""
    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER


def _read_or_default(path: Path, default: str, what: str) -> str:
    if not path.is_file():
        return default
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateError(f"while reading {what} template from {path}", [str(e)]) from e


def resolve_framing(config: SyncConfig) -> Framing:
    """Header/footer from the configured template files, falling back to the defaults."""
    header_path, footer_path = config.template_files()
    return Framing(
        header=_read_or_default(header_path, DEFAULT_HEADER, "header"),
        footer=_read_or_default(footer_path, DEFAULT_FOOTER, "footer"),
    )


def create_template(path: Path, framing: Framing, config: SyncConfig, force: bool = False) -> None:
    """Write an empty document (header, placeholder, footer) to ``path``."""
    if config.is_ignored(str(path)):
        raise TemplateError("template file is excluded", [f"path: {path}"])
    if path.is_dir():
        raise TemplateError(
            f"Cannot create file {path}. There is a folder with the same name"
        )
    if path.is_file():
        if not force:
            raise TemplateError(f"file {path} already exists. Use `--force` to overwrite")
        logger.warning("overwriting file %s", path)
    path.write_text(framing.header + PLACEHOLDER + framing.footer, encoding="utf-8")


def save_templates(config: SyncConfig) -> Tuple[Path, Path]:
    """Write the default header and footer to the configured template paths."""
    header_path, footer_path = config.template_files()
    for path, text, what in (
        (header_path, DEFAULT_HEADER, "header"),
        (footer_path, DEFAULT_FOOTER, "footer"),
    ):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise TemplateError(f"while writing {what} template to {path}", [str(e)]) from e
        logger.info("wrote %s template to %s", what, path)
    return header_path, footer_path
