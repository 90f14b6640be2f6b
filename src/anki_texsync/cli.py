"""CLI entrypoint for anki-texsync.

Usage:
  anki-texsync --path notes.tex template
  anki-texsync --path notes.tex watch
  anki-texsync create
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from .anki_connect import AnkiConnectClient
from .config import SyncConfig, SyncOptions, generation_date_tag, load_config
from .deck_index import load_known_notes
from .errors import AnkiTexError
from .report import print_names, print_notes, print_summary
from .sync import Synchronizer
from .templates import create_template, resolve_framing, save_templates
from .watch import watch

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT = "anki.tex"


def configure_logging(level: str, short: bool) -> None:
    fmt = "%(levelname)s %(name)s: %(message)s" if short else "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logging.basicConfig(level=getattr(logging, level.upper()), format=fmt, force=True)


def _document_path(args: argparse.Namespace, config: SyncConfig) -> Path:
    if args.path:
        return Path(args.path)
    if config.path:
        return config.path
    return Path(DEFAULT_DOCUMENT)


def _client(config: SyncConfig) -> AnkiConnectClient:
    return AnkiConnectClient(url=config.anki_connect_url)


def _options(args: argparse.Namespace) -> SyncOptions:
    return SyncOptions(
        add_generated=args.add_generated,
        add_generation_date=generation_date_tag() if args.add_generation_date else None,
    )


def _create(args: argparse.Namespace, config: SyncConfig) -> None:
    synchronizer = Synchronizer(_client(config), _options(args), config)
    synchronizer.load()
    summaries = synchronizer.update_change(_document_path(args, config), resolve_framing(config))
    print_summary(summaries)


def _render(config: SyncConfig) -> None:
    logger.info("rendering all latex")
    if _client(config).render_all_latex():
        print("Success")
    else:
        print("Error :(")


def _sync(config: SyncConfig) -> None:
    logger.info("syncing all notes")
    _client(config).sync()
    print("Success")


def cmd_template(args: argparse.Namespace, config: SyncConfig) -> int:
    path = _document_path(args, config)
    create_template(path, resolve_framing(config), config, force=args.force)
    print(f"Wrote template: {path}")
    return 0


def cmd_save_template(args: argparse.Namespace, config: SyncConfig) -> int:
    header_path, footer_path = save_templates(config)
    print(f"Wrote header template: {header_path}")
    print(f"Wrote footer template: {footer_path}")
    return 0


def cmd_watch(args: argparse.Namespace, config: SyncConfig) -> int:
    synchronizer = Synchronizer(_client(config), _options(args), config)
    synchronizer.load()
    watch(
        synchronizer,
        _document_path(args, config),
        resolve_framing(config),
        interval=args.interval,
    )
    return 0


def cmd_create(args: argparse.Namespace, config: SyncConfig) -> int:
    _create(args, config)
    return 0


def cmd_get_decks(args: argparse.Namespace, config: SyncConfig) -> int:
    print_names("All deck names", _client(config).list_decks())
    return 0


def cmd_get_models(args: argparse.Namespace, config: SyncConfig) -> int:
    print_names("All model names", _client(config).list_models())
    return 0


def cmd_get_notes(args: argparse.Namespace, config: SyncConfig) -> int:
    print_notes(load_known_notes(_client(config), args.query))
    return 0


def cmd_render(args: argparse.Namespace, config: SyncConfig) -> int:
    _render(config)
    return 0


def cmd_sync(args: argparse.Namespace, config: SyncConfig) -> int:
    _sync(config)
    return 0


def cmd_crs(args: argparse.Namespace, config: SyncConfig) -> int:
    _create(args, config)
    _render(config)
    _sync(config)
    return 0


def cmd_create_deck(args: argparse.Namespace, config: SyncConfig) -> int:
    deck_id = _client(config).create_deck(args.name)
    print(f"Deck {args.name}: {deck_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="anki-texsync", description="Create Anki notes from a LaTeX document"
    )
    p.add_argument(
        "--path",
        "-p",
        help=f"Document or directory to read from (default: config 'path', then {DEFAULT_DOCUMENT})",
    )
    p.add_argument("--config", help="Path to config.json (defaults are used if missing)")
    p.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    p.add_argument("--short-log", action="store_true", help="Use short log output")
    p.add_argument(
        "--no-add-generated",
        dest="add_generated",
        action="store_false",
        help="Do not tag new notes with 'generated'",
    )
    p.add_argument(
        "--no-add-generation-date",
        dest="add_generation_date",
        action="store_false",
        help="Do not tag new notes with the current date (YYYY-MM-DD)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    template = sub.add_parser("template", help="Create the document from the template")
    template.add_argument("--force", "-f", action="store_true", help="Overwrite an existing file")
    template.set_defaults(func=cmd_template)

    save = sub.add_parser("save-template", help="Save the default header and footer to the config path")
    save.set_defaults(func=cmd_save_template)

    watch_p = sub.add_parser("watch", help="Watch for changes and create new notes")
    watch_p.add_argument(
        "--interval", type=float, default=0.5, help="Polling interval in seconds (default: 0.5)"
    )
    watch_p.set_defaults(func=cmd_watch)

    create = sub.add_parser("create", aliases=["c"], help="Create new notes")
    create.set_defaults(func=cmd_create)

    decks = sub.add_parser("get-decks", help="Get all deck names")
    decks.set_defaults(func=cmd_get_decks)

    models = sub.add_parser("get-models", help="Get all model names")
    models.set_defaults(func=cmd_get_models)

    notes = sub.add_parser("get-notes", help="Get all notes for the given query")
    notes.add_argument(
        "query", nargs="?", default="*", help="See https://docs.ankiweb.net/searching.html"
    )
    notes.set_defaults(func=cmd_get_notes)

    render = sub.add_parser("render", aliases=["r"], help="Render all latex")
    render.set_defaults(func=cmd_render)

    sync = sub.add_parser("sync", aliases=["s"], help="Sync all notes to AnkiWeb")
    sync.set_defaults(func=cmd_sync)

    crs = sub.add_parser("crs", help="Create, render and sync all notes")
    crs.set_defaults(func=cmd_crs)

    deck = sub.add_parser("create-deck", help="Create a deck")
    deck.add_argument("name", help="Deck name, '::' separates levels")
    deck.set_defaults(func=cmd_create_deck)

    return p


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.short_log)
    try:
        config = load_config(args.config)
        return args.func(args, config)
    except AnkiTexError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
