"""Blocking client for the AnkiConnect add-on HTTP API.

See https://foosoft.net/projects/anki-connect/ for the action reference.
Every call is a single POST round-trip; failures raise ``AnkiConnectError``
and are never retried here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .errors import AnkiConnectError

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8765"
API_VERSION = 6

_DUPLICATE_SUFFIX = "cannot create note because it is a duplicate"
_RENDER_ERROR_PREFIX = "Can't render note with id "


def _unwrap(reply: Any, action: str) -> Any:
    if not isinstance(reply, dict) or "error" not in reply or "result" not in reply:
        raise AnkiConnectError(
            f"unexpected reply to {action}",
            [f"body: {reply!r}"],
        )
    if reply["error"] is not None:
        raise AnkiConnectError(f"anki returned an error: {reply['error']}")
    return reply["result"]


class AnkiConnectClient:
    def __init__(
        self,
        url: str = DEFAULT_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, action: str, params: Dict[str, Any]) -> Any:
        payload = {"action": action, "version": API_VERSION, "params": params}
        logger.debug("requesting action %s", action)
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise AnkiConnectError(
                f"could not reach AnkiConnect at {self.url}",
                [str(e), "is Anki running with the AnkiConnect add-on installed?"],
            ) from e
        logger.debug("got response with status %s", response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise AnkiConnectError(
                f"invalid JSON reply to {action}",
                [f"body: {response.text}"],
            ) from e

    def request(self, action: str, **params: Any) -> Any:
        return _unwrap(self._post(action, params), action)

    def request_multi(self, action: str, params_list: Iterable[Dict[str, Any]]) -> List[Any]:
        """Run ``action`` once per params dict in a single ``multi`` round-trip."""
        actions = [
            {"action": action, "version": API_VERSION, "params": params}
            for params in params_list
        ]
        replies = self.request("multi", actions=actions)
        return [_unwrap(reply, action) for reply in replies]

    def list_decks(self) -> List[str]:
        return self.request("deckNames")

    def list_models(self) -> List[str]:
        return self.request("modelNames")

    def list_model_fields(self, model_name: str) -> List[str]:
        return self.request("modelFieldNames", modelName=model_name)

    def list_model_fields_multi(self, model_names: Iterable[str]) -> List[List[str]]:
        return self.request_multi(
            "modelFieldNames", [{"modelName": name} for name in model_names]
        )

    def find_notes(self, query: str) -> List[int]:
        """Note ids matching an Anki search query (https://docs.ankiweb.net/searching.html)."""
        return self.request("findNotes", query=query)

    def get_notes_info(self, ids: List[int]) -> List[Dict[str, Any]]:
        return self.request("notesInfo", notes=list(ids))

    def get_cards_info(self, ids: List[int]) -> List[Dict[str, Any]]:
        return self.request("cardsInfo", cards=list(ids))

    def create_deck(self, name: str) -> Optional[int]:
        return self.request("createDeck", deck=name)

    def create_note(
        self,
        deck: str,
        model: str,
        fields: Dict[str, str],
        tags: List[str],
    ) -> Optional[int]:
        """Create one note.

        Returns:
            The new note id, or None when the store rejected it as a duplicate
        """
        note = {
            "deckName": deck,
            "modelName": model,
            "fields": dict(fields),
            "tags": list(tags),
        }
        try:
            return self.request("addNote", note=note)
        except AnkiConnectError as e:
            if e.message.endswith(_DUPLICATE_SUFFIX):
                return None
            raise

    def render_all_latex(self) -> bool:
        try:
            return bool(self.request("renderAllLatex"))
        except AnkiConnectError as e:
            note_id = _failed_render_note_id(e.message)
            if note_id is None:
                raise
            try:
                info = self.get_notes_info([note_id])
            except AnkiConnectError:
                logger.debug("can't request note info for note %s", note_id)
                raise e
            if info:
                fields = sorted(info[0]["fields"].items(), key=lambda kv: kv[1]["order"])
                listing = "\n".join(f"{name}: {f['value']}" for name, f in fields)
                e.with_note(f"fields of note: {listing}")
            raise

    def sync(self) -> None:
        self.request("sync")


def _failed_render_note_id(message: str) -> Optional[int]:
    _, sep, rest = message.partition(_RENDER_ERROR_PREFIX)
    if not sep:
        return None
    number, sep, _ = rest.partition(":")
    if not sep:
        return None
    try:
        return int(number)
    except ValueError:
        return None
