"""Sync orchestrator: parse, validate, diff against known notes, create.

One pass over a document:

1. fingerprint the text; an unchanged fingerprint ends the pass
2. refresh deck and model metadata from the store
3. parse the document into notes
4. validate every note (deck, model, field names); the first invalid note
   aborts the pass before anything is created
5. add the configured extra tags
6. skip notes equivalent to a known note, create the rest
7. record every created note in the Known-Note Set immediately
8. log how many notes were created
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .anki_connect import AnkiConnectClient
from .config import SyncConfig, SyncOptions
from .deck_index import KnownNotes, load_known_notes
from .errors import AnkiTexError, UnknownDeckError, UnknownFieldError, UnknownModelError
from .note import Note, with_markup
from .parse_document import parse_notes
from .scanner import DEFAULT_PATTERNS, PatternTable
from .templates import Framing

logger = logging.getLogger(__name__)


@dataclass
class ModelSchema:
    field_names: List[str]


@dataclass
class SyncSummary:
    source: str
    total: int = 0
    created: int = 0
    duplicates: int = 0  # equivalent to a known note, never sent
    store_duplicates: int = 0  # sent, but rejected by the store as a duplicate
    skipped_unchanged: bool = False


def content_fingerprint(text: str) -> str:
    return hashlib.blake2b(text.encode("utf-8"), digest_size=8).hexdigest()


class Synchronizer:
    def __init__(
        self,
        client: AnkiConnectClient,
        options: Optional[SyncOptions] = None,
        config: Optional[SyncConfig] = None,
        patterns: PatternTable = DEFAULT_PATTERNS,
    ) -> None:
        self.client = client
        self.options = options or SyncOptions()
        self.config = config
        self.patterns = patterns
        self.deck_names: List[str] = []
        self.models: Dict[str, ModelSchema] = {}
        self.known = KnownNotes()
        self.fingerprints: Dict[str, str] = {}

    def _load_models(self) -> Dict[str, ModelSchema]:
        names = self.client.list_models()
        field_lists = self.client.list_model_fields_multi(names)
        return {name: ModelSchema(list(fields)) for name, fields in zip(names, field_lists)}

    def reload_metadata(self) -> None:
        logger.debug("reloading decks and models")
        deck_names = self.client.list_decks()
        models = self._load_models()
        self.deck_names = list(deck_names)
        self.models = models

    def load(self) -> None:
        """Fetch metadata and the Known-Note Set; called once per session."""
        logger.debug("loading state")
        self.reload_metadata()
        query = self.config.search_query if self.config else "*"
        self.known = load_known_notes(self.client, query)

    def validate(self, note: Note) -> None:
        if note.deck not in self.deck_names:
            raise UnknownDeckError(
                f"create note with invalid deck name {note.deck}",
                [f"deck names: {', '.join(self.deck_names)}"],
            )
        model = self.models.get(note.model)
        if model is None:
            raise UnknownModelError(
                f"create note with invalid model name {note.model}",
                [f"model names: {', '.join(self.models)}"],
            )
        for name in note.fields:
            if name not in model.field_names:
                raise UnknownFieldError(
                    f"model {note.model} does not contain field `{name}`",
                    [f"field names: {', '.join(model.field_names)}"],
                )

    def _augment_tags(self, note: Note) -> None:
        for tag in self.options.extra_tags():
            if tag not in note.tags:
                note.tags.append(tag)

    def sync_text(
        self,
        text: str,
        source: str = "<buffer>",
        framing: Framing = Framing(),
    ) -> SyncSummary:
        """Run one pass over ``text``; ``source`` keys the change fingerprint."""
        fingerprint = content_fingerprint(text)
        if self.fingerprints.get(source) == fingerprint:
            logger.debug("nothing changed in %s", source)
            return SyncSummary(source=source, skipped_unchanged=True)

        logger.info("updating changes from %s", source)
        self.reload_metadata()
        notes = parse_notes(text, framing.header, framing.footer, self.patterns)
        for note in notes:
            self.validate(note)

        summary = SyncSummary(source=source, total=len(notes))
        for note in notes:
            self._augment_tags(note)
            outgoing = with_markup(note)
            match = self.known.find_equivalent(note) or self.known.find_equivalent(outgoing)
            if match is not None:
                logger.info(
                    "skipping duplicate note in deck %s with fields %s (stored as %s)",
                    note.deck, note.describe(), match.id,
                )
                summary.duplicates += 1
                continue

            logger.info("creating note in deck %s with fields %s", note.deck, note.describe())
            note_id = self.client.create_note(
                outgoing.deck, outgoing.model, outgoing.fields, outgoing.tags
            )
            if note_id is None:
                logger.info("Duplicate! Note in deck %s already existed", note.deck)
                summary.store_duplicates += 1
            else:
                summary.created += 1
            outgoing.id = note_id
            self.known.add(outgoing)

        self.fingerprints[source] = fingerprint
        if summary.created == 0:
            logger.info("nothing to do :)")
        else:
            logger.info("added %d new notes (of %d)", summary.created, summary.total)
        return summary

    def update_change(self, path: Path, framing: Framing = Framing()) -> List[SyncSummary]:
        """Sync a document, or every document below a directory.

        Include/exclude rules apply to file paths; directories are always walked.
        """
        if path.is_dir():
            logger.debug("%s is a directory. Updating children instead", path)
            summaries: List[SyncSummary] = []
            try:
                children = sorted(path.iterdir())
            except OSError as e:
                raise AnkiTexError(f"while listing directory {path}", [str(e)]) from e
            for child in children:
                summaries.extend(self.update_change(child, framing))
            return summaries
        if self.config is not None and self.config.is_ignored(str(path)):
            return []
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise AnkiTexError(f"while reading file {path}", [str(e)]) from e
        return [self.sync_text(text, str(path), framing)]
