"""Known-Note Set: the notes believed to exist in the store.

Reconstructed from the store at startup (``load_known_notes``), then extended
in memory after every successful creation so the same content is never
proposed twice in one run.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from .equivalence import equivalent, identifier_conflict
from .errors import AnkiConnectError
from .note import Note

if TYPE_CHECKING:
    from .anki_connect import AnkiConnectClient

logger = logging.getLogger(__name__)


class KnownNotes:
    def __init__(self, notes: Optional[List[Note]] = None) -> None:
        self.notes: List[Note] = []
        for note in notes or []:
            self.add(note)

    def __len__(self) -> int:
        return len(self.notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(self.notes)

    def find_equivalent(self, note: Note) -> Optional[Note]:
        for known in self.notes:
            if equivalent(note, known):
                return known
        return None

    def add(self, note: Note) -> None:
        for known in self.notes:
            if identifier_conflict(note, known):
                logger.error(
                    "Id differs %s != %s but contents are the same "
                    "(deck %s, model %s, fields %r, tags %r)",
                    note.id, known.id, note.deck, note.model, note.fields, note.tags,
                )
                break
        self.notes.append(note)


def load_known_notes(client: "AnkiConnectClient", query: str = "*") -> KnownNotes:
    """Rebuild the notes matching ``query`` from the store.

    Deck and question preview come from the note's cards, so cards are
    fetched for every note; all cards of one note must share a deck.
    """
    ids = client.find_notes(query)
    logger.info("getting %d notes", len(ids))
    infos = client.get_notes_info(ids)
    card_ids = [card_id for info in infos for card_id in info.get("cards", [])]
    cards = client.get_cards_info(card_ids)
    if len(cards) != len(card_ids):
        raise AnkiConnectError(
            "card info does not match requested cards",
            [f"requested {len(card_ids)} cards, got {len(cards)}"],
        )
    by_id: Dict[int, dict] = {card["cardId"]: card for card in cards}

    known = KnownNotes()
    for info in infos:
        deck: Optional[str] = None
        question: Optional[str] = None
        for card_id in info.get("cards", []):
            card = by_id[card_id]
            if deck is not None and card["deckName"] != deck:
                raise AnkiConnectError(
                    f"cards of note {info['noteId']} are spread over several decks",
                    [f"{deck} != {card['deckName']}"],
                )
            deck = card["deckName"]
            question = card.get("question")
        if deck is None:
            logger.warning("skipping note %s without cards", info["noteId"])
            continue
        known.add(
            Note(
                id=info["noteId"],
                deck=deck,
                model=info["modelName"],
                fields={name: f["value"] for name, f in info["fields"].items()},
                tags=list(info.get("tags", [])),
                question=question,
            )
        )
    return known
