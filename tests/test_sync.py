"""Tests for the sync orchestrator."""

import logging
import re
from pathlib import Path

import pytest

from anki_texsync.config import SyncConfig, SyncOptions
from anki_texsync.deck_index import KnownNotes
from anki_texsync.errors import (
    AnkiConnectError,
    AnkiTexError,
    DuplicateTagError,
    FramingError,
    UnknownDeckError,
    UnknownFieldError,
    UnknownModelError,
)
from anki_texsync.note import Note
from anki_texsync.sync import Synchronizer, content_fingerprint
from anki_texsync.templates import Framing

FRAMING = Framing(header="HEADER", footer="FOOTER")

MATH_DOC = (
    r"HEADER \deck{Math} \model{Basic} \fields{Front}{2+2} \fields{Back}{4} \next FOOTER"
)


class FakeAnki:
    """In-memory stand-in for the AnkiConnect client."""

    def __init__(self, decks=("Math",), models=None, stored=None):
        self.decks = list(decks)
        self.models = models if models is not None else {"Basic": ["Front", "Back"]}
        self.stored = list(stored or [])
        self.created = []
        self.next_id = 1000
        self.reject_as_duplicate = False
        self.fail_on_create = None

    def list_decks(self):
        return list(self.decks)

    def list_models(self):
        return list(self.models)

    def list_model_fields_multi(self, names):
        return [self.models[n] for n in names]

    def find_notes(self, query):
        return [n["noteId"] for n in self.stored]

    def get_notes_info(self, ids):
        return [n for n in self.stored if n["noteId"] in ids]

    def get_cards_info(self, ids):
        return [
            {"cardId": n["cards"][0], "deckName": n["deck"], "question": "Q"}
            for n in self.stored
            if n["cards"][0] in ids
        ]

    def create_note(self, deck, model, fields, tags):
        if self.fail_on_create is not None and len(self.created) == self.fail_on_create:
            raise AnkiConnectError("anki returned an error: collection is not available")
        self.created.append({"deck": deck, "model": model, "fields": fields, "tags": tags})
        if self.reject_as_duplicate:
            return None
        self.next_id += 1
        return self.next_id


def plain_options():
    return SyncOptions(add_generated=False, add_generation_date=None)


@pytest.fixture
def anki():
    return FakeAnki()


@pytest.fixture
def synchronizer(anki):
    return Synchronizer(anki, plain_options())


class TestSyncText:
    """Test one pass over a document."""

    def test_creates_new_note(self, synchronizer, anki):
        summary = synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        assert summary.total == 1
        assert summary.created == 1
        assert anki.created == [{
            "deck": "Math",
            "model": "Basic",
            "fields": {"Front": "[latex]2+2[/latex]", "Back": "[latex]4[/latex]"},
            "tags": [],
        }]

    def test_created_note_joins_known_set(self, synchronizer):
        synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        assert len(synchronizer.known) == 1
        stored = list(synchronizer.known)[0]
        assert stored.id == 1001
        assert stored.fields == {"Front": "[latex]2+2[/latex]", "Back": "[latex]4[/latex]"}

    def test_known_equivalent_note_is_skipped(self, anki, caplog):
        sync = Synchronizer(anki, plain_options())
        sync.known = KnownNotes([
            Note(deck="Math", model="Basic", fields={"Front": "2 + 2", "Back": "4"}, id=7)
        ])
        with caplog.at_level(logging.INFO):
            summary = sync.sync_text(MATH_DOC, framing=FRAMING)
        assert anki.created == []
        assert summary.duplicates == 1
        assert "skipping duplicate note" in caplog.text

    def test_known_wrapped_note_is_skipped(self, anki):
        """Notes loaded from Anki carry the markup wrapper; they still match."""
        sync = Synchronizer(anki, plain_options())
        sync.known = KnownNotes([
            Note(
                deck="Math",
                model="Basic",
                fields={"Front": "[latex]2+2[/latex]", "Back": "[latex]4[/latex]"},
                id=7,
            )
        ])
        sync.sync_text(MATH_DOC, framing=FRAMING)
        assert anki.created == []

    def test_duplicate_within_document(self, synchronizer, anki):
        text = (
            "HEADER"
            r"\deck{Math}\model{Basic}\fields{Front}{x}\next"
            r"\deck{Math}\model{Basic}\fields{Front}{ x }\next"
            "FOOTER"
        )
        summary = synchronizer.sync_text(text, framing=FRAMING)
        assert len(anki.created) == 1
        assert summary.created == 1
        assert summary.duplicates == 1

    def test_unknown_deck_aborts(self, synchronizer, anki):
        text = MATH_DOC.replace(r"\deck{Math}", r"\deck{Unknown}")
        with pytest.raises(UnknownDeckError):
            synchronizer.sync_text(text, framing=FRAMING)
        assert anki.created == []
        assert len(synchronizer.known) == 0

    def test_unknown_model_aborts(self, synchronizer, anki):
        text = MATH_DOC.replace(r"\model{Basic}", r"\model{Cloze}")
        with pytest.raises(UnknownModelError):
            synchronizer.sync_text(text, framing=FRAMING)
        assert anki.created == []

    def test_unknown_field_aborts(self, synchronizer, anki):
        text = MATH_DOC.replace(r"\fields{Back}", r"\fields{Answer}")
        with pytest.raises(UnknownFieldError) as exc:
            synchronizer.sync_text(text, framing=FRAMING)
        assert any("Front, Back" in n for n in exc.value.notes)

    def test_invalid_later_note_blocks_earlier_ones(self, synchronizer, anki):
        text = MATH_DOC.replace(
            "FOOTER", r"\deck{Nope}\model{Basic}\fields{Front}{y}\next FOOTER"
        )
        with pytest.raises(UnknownDeckError):
            synchronizer.sync_text(text, framing=FRAMING)
        assert anki.created == []

    def test_authoring_error_propagates(self, synchronizer, anki):
        text = MATH_DOC.replace(r"\next", r"\tag{a}\tag{a}\next")
        with pytest.raises(DuplicateTagError):
            synchronizer.sync_text(text, framing=FRAMING)
        assert anki.created == []

    def test_framing_error(self, synchronizer):
        with pytest.raises(FramingError):
            synchronizer.sync_text(MATH_DOC.replace("HEADER", "HEAD"), framing=FRAMING)

    def test_unchanged_text_short_circuits(self, synchronizer, anki):
        synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        anki.decks = []  # a refresh would now fail validation
        summary = synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        assert summary.skipped_unchanged
        assert len(anki.created) == 1

    def test_failed_pass_is_retried(self, synchronizer, anki):
        text = MATH_DOC.replace(r"\deck{Math}", r"\deck{Later}")
        with pytest.raises(UnknownDeckError):
            synchronizer.sync_text(text, framing=FRAMING)
        anki.decks.append("Later")
        summary = synchronizer.sync_text(text, framing=FRAMING)
        assert not summary.skipped_unchanged
        assert summary.created == 1

    def test_metadata_refreshed_each_pass(self, synchronizer, anki):
        synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        anki.decks.append("New")
        synchronizer.sync_text(MATH_DOC + " ", framing=FRAMING)
        assert "New" in synchronizer.deck_names

    def test_store_side_duplicate(self, synchronizer, anki, caplog):
        anki.reject_as_duplicate = True
        with caplog.at_level(logging.INFO):
            summary = synchronizer.sync_text(MATH_DOC, framing=FRAMING)
        assert summary.created == 0
        assert summary.store_duplicates == 1
        assert "already existed" in caplog.text
        assert "nothing to do" in caplog.text

    def test_store_failure_keeps_created_notes(self, synchronizer, anki):
        text = (
            "HEADER"
            r"\deck{Math}\model{Basic}\fields{Front}{one}\next"
            r"\deck{Math}\model{Basic}\fields{Front}{two}\next"
            "FOOTER"
        )
        anki.fail_on_create = 1
        with pytest.raises(AnkiConnectError):
            synchronizer.sync_text(text, framing=FRAMING)
        assert len(synchronizer.known) == 1
        anki.fail_on_create = None
        summary = synchronizer.sync_text(text, framing=FRAMING)
        assert summary.created == 1
        assert summary.duplicates == 1


class TestTagAugmentation:
    def test_generated_and_date_tags(self, anki):
        sync = Synchronizer(anki, SyncOptions(add_generated=True, add_generation_date="2026-10-18"))
        sync.sync_text(MATH_DOC.replace(r"\next", r"\tag{arith}\next"), framing=FRAMING)
        assert anki.created[0]["tags"] == ["arith", "generated", "2026-10-18"]

    def test_existing_tag_not_repeated(self, anki):
        sync = Synchronizer(anki, SyncOptions(add_generated=True))
        sync.sync_text(MATH_DOC.replace(r"\next", r"\tag{generated}\next"), framing=FRAMING)
        assert anki.created[0]["tags"] == ["generated"]


class TestLoad:
    def test_load_fetches_state(self):
        anki = FakeAnki(stored=[{
            "noteId": 5,
            "modelName": "Basic",
            "deck": "Math",
            "fields": {
                "Front": {"value": "[latex]2+2[/latex]", "order": 0},
                "Back": {"value": "[latex]4[/latex]", "order": 1},
            },
            "tags": [],
            "cards": [50],
        }])
        sync = Synchronizer(anki, plain_options())
        sync.load()
        assert sync.deck_names == ["Math"]
        assert sync.models["Basic"].field_names == ["Front", "Back"]
        assert len(sync.known) == 1
        sync.sync_text(MATH_DOC, framing=FRAMING)
        assert anki.created == []


class TestUpdateChange:
    """Test the file system entry point."""

    def test_file(self, tmp_path, synchronizer, anki):
        doc = tmp_path / "anki.tex"
        doc.write_text(MATH_DOC, encoding="utf-8")
        summaries = synchronizer.update_change(doc, FRAMING)
        assert [s.source for s in summaries] == [str(doc)]
        assert len(anki.created) == 1

    def test_directory_walk(self, tmp_path, anki):
        (tmp_path / "a.tex").write_text(MATH_DOC, encoding="utf-8")
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "b.tex").write_text(MATH_DOC.replace("2+2", "3+3"), encoding="utf-8")
        (tmp_path / "notes.txt").write_text("not a document", encoding="utf-8")
        config = SyncConfig(config_dir=tmp_path, file_include=[re.compile(r"\.tex$")])
        sync = Synchronizer(anki, plain_options(), config)
        summaries = sync.update_change(tmp_path, FRAMING)
        assert len(summaries) == 2
        assert len(anki.created) == 2

    def test_ignored_path(self, tmp_path, anki):
        doc = tmp_path / "draft.tex"
        doc.write_text(MATH_DOC, encoding="utf-8")
        config = SyncConfig(config_dir=tmp_path, file_exclude=[re.compile("draft")])
        sync = Synchronizer(anki, plain_options(), config)
        assert sync.update_change(doc, FRAMING) == []
        assert anki.created == []

    def test_unchanged_file_skipped(self, tmp_path, synchronizer, anki):
        doc = tmp_path / "anki.tex"
        doc.write_text(MATH_DOC, encoding="utf-8")
        synchronizer.update_change(doc, FRAMING)
        summaries = synchronizer.update_change(doc, FRAMING)
        assert summaries[0].skipped_unchanged

    def test_unreadable_directory(self, tmp_path, synchronizer, monkeypatch):
        """Listing failures surface as sync errors, not raw OSError."""
        def denied(self):
            raise PermissionError(13, "Permission denied", str(self))

        monkeypatch.setattr(Path, "iterdir", denied)
        with pytest.raises(AnkiTexError) as exc:
            synchronizer.update_change(tmp_path, FRAMING)
        assert exc.value.message == f"while listing directory {tmp_path}"
        assert any("Permission denied" in n for n in exc.value.notes)


def test_fingerprint_changes_with_content():
    assert content_fingerprint("a") == content_fingerprint("a")
    assert content_fingerprint("a") != content_fingerprint("b")
