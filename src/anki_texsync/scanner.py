"""Command scanner for the note markup.

Recognizes the closed command vocabulary inside an otherwise opaque text
stream and reports each occurrence as a ``CommandToken``:

- ``\\deck{NAME}``                              -> SET_DECK (NAME,)
- ``\\model{NAME}``                             -> SET_MODEL (NAME,)
- ``\\tag{TAG}``                                -> ADD_TAG (TAG,)
- ``\\fields{NAME}{VALUE}``                     -> SET_FIELD (NAME, VALUE)
- ``\\begin{field}{NAME} ... \\end{field}``      -> SET_FIELD (NAME, VALUE)
- ``\\next``                                    -> END_NOTE ()

Tokens of all kinds are merged into one stream ordered by start position.
Tokens starting at the same position keep pattern-table order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class CommandKind(str, Enum):
    SET_DECK = "deck"
    SET_MODEL = "model"
    ADD_TAG = "tag"
    SET_FIELD = "field"
    END_NOTE = "next"


@dataclass(frozen=True)
class CommandPattern:
    kind: CommandKind
    regex: re.Pattern


@dataclass(frozen=True)
class CommandToken:
    position: int
    kind: CommandKind
    args: Tuple[str, ...] = ()


PatternTable = Tuple[CommandPattern, ...]


def build_pattern_table() -> PatternTable:
    """Compile the command vocabulary.

    Arguments are any run of characters other than ``}``; the block field body
    may span lines and stops at the nearest ``\\end{field}``.
    """
    return (
        CommandPattern(CommandKind.END_NOTE, re.compile(r"\\next")),
        CommandPattern(CommandKind.SET_DECK, re.compile(r"\\deck\{([^}]*)\}")),
        CommandPattern(CommandKind.SET_MODEL, re.compile(r"\\model\{([^}]*)\}")),
        CommandPattern(CommandKind.ADD_TAG, re.compile(r"\\tag\{([^}]*)\}")),
        CommandPattern(CommandKind.SET_FIELD, re.compile(r"\\fields\{([^}]*)\}\{([^}]*)\}")),
        CommandPattern(
            CommandKind.SET_FIELD,
            re.compile(r"\\begin\{field\}\{([^}]*)\}([\s\S]*?)\\end\{field\}"),
        ),
    )


DEFAULT_PATTERNS: PatternTable = build_pattern_table()


def scan_commands(text: str, patterns: PatternTable = DEFAULT_PATTERNS) -> List[CommandToken]:
    """Return every command occurrence in ``text`` sorted by start position.

    An unterminated block field simply does not match; it produces no token.
    """
    tokens: List[CommandToken] = []
    for pattern in patterns:
        for m in pattern.regex.finditer(text):
            tokens.append(CommandToken(m.start(), pattern.kind, m.groups()))
    # sort() is stable, so equal positions keep table order
    tokens.sort(key=lambda t: t.position)
    return tokens
