"""Content-based note equivalence.

Two notes are equivalent when
- deck, model and the tag sequence (order included) match exactly, and
- their non-empty fields match after canonicalization (see normalize.py),
  regardless of field order.

Identifiers and question previews never take part in the comparison.
"""

from __future__ import annotations

from typing import FrozenSet, Tuple

from .normalize import canonicalize
from .note import Note


def canonical_field_pairs(note: Note) -> FrozenSet[Tuple[str, str]]:
    return frozenset(
        (canonicalize(name), canonicalize(value))
        for name, value in note.fields.items()
        if value
    )


def equivalent(a: Note, b: Note) -> bool:
    if a.deck != b.deck or a.model != b.model or list(a.tags) != list(b.tags):
        return False
    return canonical_field_pairs(a) == canonical_field_pairs(b)


def identifier_conflict(a: Note, b: Note) -> bool:
    """True when both notes carry different ids but the same content.

    This signals an inconsistency in the store; callers decide how to report it.
    """
    if a.id is None or b.id is None or a.id == b.id:
        return False
    return equivalent(a, b)
