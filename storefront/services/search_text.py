from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path

from constants import HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN


BUNDLED_TRANSLIT_TABLE = Path(__file__).resolve().parent.parent / "data" / "translit_table.json"
ALPHABETIC_PATTERN = re.compile(r"^[A-Za-z]+$")
LIKE_ESCAPE = "\\"

_active_table_path: Path = BUNDLED_TRANSLIT_TABLE


@lru_cache(maxsize=4)
def load_translit_table(path: str | Path = BUNDLED_TRANSLIT_TABLE) -> dict[str, str]:
    """Read a character -> syllable map from a JSON object file."""
    with open(path, encoding="utf-8") as handle:
        raw = json.load(handle)
    if not isinstance(raw, dict):
        raise ValueError(f"Transliteration table {path} must be a JSON object")
    table = {}
    for char, syllable in raw.items():
        if len(char) != 1 or not syllable:
            continue
        table[char] = str(syllable).strip().lower()
    return table


def configure_translit_table(path: str | Path | None, logger=None) -> dict[str, str]:
    """Switch the active table; an unreadable file keeps the bundled one."""
    global _active_table_path
    if not path:
        _active_table_path = BUNDLED_TRANSLIT_TABLE
        return load_translit_table(_active_table_path)
    try:
        table = load_translit_table(Path(path))
    except (OSError, ValueError) as exc:
        if logger is not None:
            logger.warning("Transliteration table %s could not be loaded: %s", path, exc)
        _active_table_path = BUNDLED_TRANSLIT_TABLE
        return load_translit_table(_active_table_path)
    _active_table_path = Path(path)
    return table


def translit_table() -> dict[str, str]:
    return load_translit_table(_active_table_path)


def _is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def transliterate(text: str | None, table: dict[str, str] | None = None) -> str:
    if not text:
        return ""
    table = translit_table() if table is None else table
    parts = []
    for char in text:
        syllable = table.get(char)
        if syllable:
            parts.append(syllable + " ")
        elif _is_ascii_alnum(char):
            parts.append(char.lower())
    return "".join(parts).strip()


def transliteration_initials(text: str | None, table: dict[str, str] | None = None) -> str:
    if not text:
        return ""
    table = translit_table() if table is None else table
    initials = []
    for char in text:
        syllable = table.get(char)
        if syllable:
            initials.append(syllable[0])
        elif _is_ascii_alnum(char):
            initials.append(char.lower())
    return "".join(initials)


def ngrams(text: str | None, n: int = 2) -> set[str]:
    lowered = (text or "").lower()
    if len(lowered) < n:
        return {lowered}
    grams = {lowered[idx : idx + n] for idx in range(len(lowered) - n + 1)}
    grams.add(lowered)
    return grams


def search_tokens(text: str | None, table: dict[str, str] | None = None) -> str:
    if not text:
        return ""
    tokens: dict[str, None] = {}

    def add(token):
        if token and token.strip():
            tokens.setdefault(token, None)

    words = text.split()
    if not words:
        return ""
    add(" ".join(words).lower())
    # Grams are taken per word so none spans whitespace.
    for n in (2, 3):
        for word in words:
            for gram in sorted(ngrams(word, n)):
                add(gram)
    phonetic = transliterate(text, table)
    if phonetic:
        add(phonetic.replace(" ", ""))
        for piece in phonetic.split(" "):
            add(piece)
    add(transliteration_initials(text, table))
    return " ".join(tokens)


def is_alphabetic(query: str | None) -> bool:
    return bool(query) and bool(ALPHABETIC_PATTERN.match(query))


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


def prefix_pattern(value: str) -> str:
    return f"{escape_like(value)}%"


def suffix_pattern(value: str) -> str:
    return f"%{escape_like(value)}"


def wildcard_pattern(value: str) -> str:
    """``abc`` -> ``%a%b%c%``: the characters in order, anything in between."""
    return "%" + "%".join(escape_like(char) for char in value) + "%"


def query_bigrams(value: str) -> list[str]:
    grams = []
    for idx in range(len(value) - 1):
        gram = value[idx : idx + 2]
        if gram not in grams:
            grams.append(gram)
    return grams


def highlight_match(text: str | None, query: str | None) -> str | None:
    if not text or not query:
        return text
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    return pattern.sub(lambda match: f"{HIGHLIGHT_OPEN}{match.group(0)}{HIGHLIGHT_CLOSE}", text)
