"""Document framing and the note-building state machine.

A document is ``HEADER <body> FOOTER`` (after trimming surrounding
whitespace). The body is scanned for commands and the resulting token stream
drives a ``NoteBuilder``:

- ``\\deck`` / ``\\model`` overwrite the current value (last write wins)
- ``\\tag`` appends a tag; repeating a tag within one note is an error
- ``\\fields`` / ``field`` environment add a field; repeating a name is an error
- ``\\next`` completes the note (deck, model and at least one field required)
  and resets the builder, deck and model included
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .errors import (
    DuplicateFieldError,
    DuplicateTagError,
    EmptyFieldsError,
    FramingError,
    MissingDeckError,
    MissingModelError,
)
from .note import Note
from .scanner import DEFAULT_PATTERNS, CommandKind, CommandToken, PatternTable, scan_commands

logger = logging.getLogger(__name__)

_CONTEXT_CHARS = 50


def first_difference(a: str, b: str) -> Optional[int]:
    """Index of the first differing character, or None if one is a prefix of the other."""
    for i, (c, d) in enumerate(zip(a, b)):
        if c != d:
            return i
    return None


def line_at(text: str, pos: int) -> str:
    """Source line of ``text`` that contains character ``pos``."""
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    if end == -1:
        end = len(text)
    return text[start:end]


def _header_error(content: str, header: str) -> FramingError:
    err = FramingError("file does not start with required header")
    err.with_note(f"started instead with: {content[:_CONTEXT_CHARS]}")
    i = first_difference(content, header)
    if i is None:
        err.with_note(
            f"file is too short, expected min {len(header)} characters but it has {len(content)}"
        )
        return err
    err.with_note(f"they differ at char {i}: required `{header[i]}` got `{content[i]}`")
    err.with_note(f"required line `{line_at(header, i)}`")
    err.with_note(f"got line `{line_at(content, i)}`")
    return err


def strip_framing(content: str, header: str, footer: str) -> str:
    """Return the body between the required header and footer.

    Whitespace before the header and after the footer is not significant,
    in the document or in the framing itself.

    Raises:
        FramingError: If the trimmed content does not start with ``header``
            or does not end with ``footer``
    """
    content = content.strip()
    header = header.lstrip()
    footer = footer.rstrip()
    if not content.startswith(header):
        raise _header_error(content, header)
    body = content[len(header):]
    if not body.endswith(footer):
        raise FramingError(
            "file does not end with required footer",
            [f"ended instead with: {content[-_CONTEXT_CHARS:]}"],
        )
    return body[: len(body) - len(footer)]


class NoteBuilder:
    """Accumulates one note at a time from an ordered command stream."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.deck: Optional[str] = None
        self.model: Optional[str] = None
        self.tags: List[str] = []
        self.fields: Dict[str, str] = {}

    def is_empty(self) -> bool:
        return self.deck is None and self.model is None and not self.tags and not self.fields

    def apply(self, token: CommandToken) -> Optional[Note]:
        """Apply one command; returns the completed note on ``\\next``."""
        kind = token.kind
        if kind is CommandKind.SET_DECK:
            self.deck = token.args[0]
        elif kind is CommandKind.SET_MODEL:
            self.model = token.args[0]
        elif kind is CommandKind.ADD_TAG:
            tag = token.args[0]
            if tag in self.tags:
                raise DuplicateTagError(
                    f"Can't add tag {tag} multiple times",
                    [f"tags so far: {', '.join(self.tags)}"],
                )
            self.tags.append(tag)
        elif kind is CommandKind.SET_FIELD:
            name, value = token.args
            if name in self.fields:
                raise DuplicateFieldError(f"Field `{name}` was already added")
            self.fields[name] = value
        elif kind is CommandKind.END_NOTE:
            return self._complete()
        return None

    def _complete(self) -> Note:
        if self.deck is None:
            raise MissingDeckError("Select a deck before ending a note")
        if self.model is None:
            raise MissingModelError("Select a model before ending a note")
        if not self.fields:
            raise EmptyFieldsError(
                "Cannot add note without fields",
                [f"deck {self.deck}, model {self.model}"],
            )
        note = Note(deck=self.deck, model=self.model, fields=self.fields, tags=self.tags)
        self.reset()
        return note


def parse_notes(
    content: str,
    header: str,
    footer: str,
    patterns: PatternTable = DEFAULT_PATTERNS,
) -> List[Note]:
    """Parse a framed document into completed notes, in document order."""
    body = strip_framing(content, header, footer)
    builder = NoteBuilder()
    completed: List[Note] = []
    for token in scan_commands(body, patterns):
        note = builder.apply(token)
        if note is not None:
            completed.append(note)

    if not builder.is_empty():
        logger.warning("dismissing unfinished note with fields %r", builder.fields)
    if not completed:
        logger.warning("no completed notes found")
    return completed
