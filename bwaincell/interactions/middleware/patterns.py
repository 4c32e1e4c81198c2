"""Named input-rejection heuristics.

Best-effort pattern matching, not a SQL or HTML grammar: prose that
genuinely quotes ``DROP TABLE`` is rejected, and obfuscated payloads may
slip through. Persistence must still use parameterized queries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

SQL = "sql"
SCRIPT = "script"


@dataclass(frozen=True)
class InputPattern:
    """A named rejection rule for free-text input."""

    name: str
    category: str
    regex: str
    _compiled: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.regex, re.IGNORECASE))

    def matches(self, text: str) -> bool:
        return self._compiled.search(text) is not None


_STATEMENT = r"(?:select|insert|update|delete|drop|truncate|alter|create|exec(?:ute)?|union)"

INPUT_PATTERNS: Tuple[InputPattern, ...] = (
    # ── SQL ──
    InputPattern(
        "sql_select_from",
        SQL,
        r"\bselect\s+(?:\*|(?:distinct\s+)?[\w.]+(?:\s*,\s*[\w.]+)*)\s+from\s+\w+",
    ),
    InputPattern(
        "sql_ddl",
        SQL,
        r"\b(?:drop|truncate|alter|create)\s+(?:table|database|schema|index|view)\b",
    ),
    InputPattern("sql_delete_from", SQL, r"\bdelete\s+from\s+\w+"),
    InputPattern("sql_insert_into", SQL, r"\binsert\s+into\s+\w+"),
    InputPattern("sql_update_set", SQL, r"\bupdate\s+\w+\s+set\s+\w+\s*="),
    InputPattern("sql_union_select", SQL, r"\bunion\s+(?:all\s+)?select\b"),
    InputPattern("sql_stacked_statement", SQL, r";\s*" + _STATEMENT + r"\b"),
    InputPattern(
        "sql_terminated_statement",
        SQL,
        r"\b(?:select|insert|update|delete|drop|truncate|alter)\s+[\w.*]+\s*;",
    ),
    InputPattern("sql_quote_tautology", SQL, r"'\s*or\s+'?\w+'?\s*=\s*'?\w+"),
    InputPattern("sql_quote_comment", SQL, r"'\s*(?:--|#|/\*)"),
    InputPattern("sql_exec_procedure", SQL, r"\bexec(?:ute)?\s+(?:xp|sp)_\w+"),
    # ── Script / HTML ──
    InputPattern("script_open_tag", SCRIPT, r"<\s*script\b"),
    InputPattern("script_close_tag", SCRIPT, r"<\s*/\s*script\s*>"),
    InputPattern("html_event_handler", SCRIPT, r"<[a-z][\w-]*[\s/][^>]*?\bon[a-z]+\s*="),
    InputPattern("html_embed_tag", SCRIPT, r"<\s*(?:iframe|object|embed)\b"),
    InputPattern("javascript_uri", SCRIPT, r"\bjavascript\s*:"),
)


def first_match(text: str, *, include_script: bool = True) -> Optional[InputPattern]:
    """Return the first pattern in :data:`INPUT_PATTERNS` matching *text*."""
    for pattern in INPUT_PATTERNS:
        if pattern.category == SCRIPT and not include_script:
            continue
        if pattern.matches(text):
            return pattern
    return None
