"""The Note record shared by the parser, the Known-Note Set and the store client."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

# Fields are sent to the store wrapped in this marker pair so that it treats
# the content as LaTeX instead of escaping it as HTML.
MARKUP_OPEN = "[latex]"
MARKUP_CLOSE = "[/latex]"


@dataclass
class Note:
    """One flashcard record.

    Attributes:
        deck: Destination deck; hierarchical segments are joined with ``::``
        model: Name of the note type (field schema)
        fields: Field name -> field text
        tags: Ordered, duplicate-free tag list
        id: Identifier assigned by the store (None for freshly parsed notes)
        question: Rendered question preview, only used in log messages
    """
    deck: str
    model: str
    fields: Dict[str, str] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    id: Optional[int] = None
    question: Optional[str] = None

    def describe(self) -> str:
        """Short label for log lines: the rendered question if known, else the fields."""
        if self.question is not None:
            return repr(self.question)
        return repr(self.fields)


def wrap_markup(text: str) -> str:
    return f"{MARKUP_OPEN}{text}{MARKUP_CLOSE}"


def strip_markup(text: str) -> str:
    return text.replace(MARKUP_OPEN, "").replace(MARKUP_CLOSE, "")


def with_markup(note: Note) -> Note:
    """Copy of ``note`` with every field value wrapped for transmission."""
    return replace(
        note,
        fields={name: wrap_markup(value) for name, value in note.fields.items()},
        tags=list(note.tags),
    )
