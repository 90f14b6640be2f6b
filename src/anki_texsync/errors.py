"""Exception taxonomy for :mod:`anki_texsync`.

Every error carries a short message plus optional context notes (what was
expected, what was found, where). ``str(err)`` renders both so the CLI and the
watch loop can report a failure as one human-readable block.
"""

from __future__ import annotations

from typing import Iterable, List


class AnkiTexError(Exception):
    """Base exception for all anki-texsync failures."""

    def __init__(self, message: str, notes: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.notes: List[str] = [n for n in notes if n]

    def with_note(self, note: str) -> "AnkiTexError":
        if note:
            self.notes.append(note)
        return self

    def __str__(self) -> str:
        if not self.notes:
            return self.message
        lines = [self.message]
        lines.extend(f"  Note: {n}" for n in self.notes)
        return "\n".join(lines)


class FramingError(AnkiTexError, ValueError):
    """The document does not start with the header or end with the footer."""


class AuthoringError(AnkiTexError, ValueError):
    """A note block in the document is structurally invalid."""


class DuplicateTagError(AuthoringError):
    pass


class DuplicateFieldError(AuthoringError):
    pass


class MissingDeckError(AuthoringError):
    pass


class MissingModelError(AuthoringError):
    pass


class EmptyFieldsError(AuthoringError):
    pass


class ValidationError(AnkiTexError, ValueError):
    """A parsed note references a deck, model or field the store does not know."""


class UnknownDeckError(ValidationError):
    pass


class UnknownModelError(ValidationError):
    pass


class UnknownFieldError(ValidationError):
    pass


class AnkiConnectError(AnkiTexError, RuntimeError):
    """Transport failure or error reported by the note store."""


class ConfigError(AnkiTexError, ValueError):
    """Configuration file could not be read or is invalid."""


class TemplateError(AnkiTexError, RuntimeError):
    """Template file could not be created."""


__all__ = [
    "AnkiTexError",
    "FramingError",
    "AuthoringError",
    "DuplicateTagError",
    "DuplicateFieldError",
    "MissingDeckError",
    "MissingModelError",
    "EmptyFieldsError",
    "ValidationError",
    "UnknownDeckError",
    "UnknownModelError",
    "UnknownFieldError",
    "AnkiConnectError",
    "ConfigError",
    "TemplateError",
]
