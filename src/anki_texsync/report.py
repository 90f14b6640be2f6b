"""Console output for CLI commands."""

from __future__ import annotations

from typing import Iterable, List

from .note import Note, strip_markup
from .sync import SyncSummary


def print_names(title: str, names: Iterable[str]) -> None:
    print(f"{title}: \n " + "\n ".join(names))


def print_notes(notes: Iterable[Note]) -> None:
    """Print notes with the transmission markup removed from field values."""
    count = 0
    for note in notes:
        count += 1
        print(f"In deck {note.deck} with model {note.model}")
        for name, value in note.fields.items():
            print(f"[{name}] {strip_markup(value)}")
        if note.tags:
            print(f"Tags: {', '.join(note.tags)}")
        print("-" * 80)
    print(f"fetched {count} notes in total")


def print_summary(summaries: Iterable[SyncSummary]) -> None:
    results: List[SyncSummary] = list(summaries)
    changed = [s for s in results if not s.skipped_unchanged]
    print("Sync Summary:")
    print(f"  Documents checked:   {len(results)}")
    print(f"  Documents unchanged: {len(results) - len(changed)}")
    print(f"  Candidate notes:     {sum(s.total for s in changed)}")
    print(f"  Already known:       {sum(s.duplicates for s in changed)}")
    print(f"  Rejected by Anki:    {sum(s.store_duplicates for s in changed)}")
    print(f"  Created:             {sum(s.created for s in changed)}")
