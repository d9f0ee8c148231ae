"""Plain-text cleanup that leaves $$...$$ math spans untouched."""
from __future__ import annotations

import re
import unicodedata

MATH_SPAN = re.compile(r"\$\$.*?\$\$", re.DOTALL)

MARKDOWN_CHARS = frozenset("*`#~")
ZERO_WIDTH_CHARS = frozenset("\u200b\u200c\u200d\ufeff")
_WHITESPACE_RUN = re.compile(r"\s+")


def _clean_prose(text: str) -> str:
    kept: list[str] = []
    for ch in text:
        if ch in MARKDOWN_CHARS or ch in ZERO_WIDTH_CHARS:
            continue
        if ch.isspace():
            kept.append(" ")
        elif unicodedata.category(ch) == "Cc":
            continue
        else:
            kept.append(ch)
    return _WHITESPACE_RUN.sub(" ", "".join(kept))


def sanitize(text: str) -> str:
    """Strip markdown, invisible and control characters and collapse whitespace.

    Math spans delimited by ``$$`` are located in one left-to-right pass, the
    prose between them is cleaned, and each span is put back at its original
    position character for character.
    """
    pieces: list[str] = []
    cursor = 0
    for match in MATH_SPAN.finditer(text):
        pieces.append(_clean_prose(text[cursor:match.start()]))
        pieces.append(match.group(0))
        cursor = match.end()
    pieces.append(_clean_prose(text[cursor:]))
    return "".join(pieces).strip()


def math_spans(text: str) -> list[str]:
    return MATH_SPAN.findall(text)
