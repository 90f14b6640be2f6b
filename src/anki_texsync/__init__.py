"""anki-texsync: keep Anki in step with a LaTeX notes document.

The document is parsed into notes (scanner, parse_document), compared by
content against the notes already in Anki (equivalence, deck_index), and only
new notes are created through AnkiConnect (sync, anki_connect).
"""

__all__ = [
    "scanner",
    "parse_document",
    "normalize",
    "equivalence",
    "deck_index",
    "anki_connect",
    "sync",
    "watch",
    "cli",
]
