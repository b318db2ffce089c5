"""Brand-name aliasing onto a small controlled vocabulary."""

from __future__ import annotations

import re

INDEPENDENT_BRAND = "Independent"

BRAND_ALIASES = {
    "7-ELEVEN": "7-Eleven",
    "7 ELEVEN": "7-Eleven",
    "7ELEVEN": "7-Eleven",
    "SEVEN ELEVEN": "7-Eleven",
    "SEVEN-ELEVEN": "7-Eleven",
    "BP": "BP",
    "BP AUSTRALIA": "BP",
    "BP CONNECT": "BP",
    "BP EXPRESS": "BP",
    "SHELL": "Shell",
    "SHELL COLES EXPRESS": "Shell",
    "VIVA ENERGY": "Shell",
    "COLES EXPRESS": "Coles Express",
    "REDDY EXPRESS": "Coles Express",
    "CALTEX": "Caltex",
    "CALTEX WOOLWORTHS": "Caltex",
    "AMPOL": "Ampol",
    "AMPOL FOODARY": "Ampol",
    "EG AMPOL": "Ampol",
    "EG FUELCO": "Ampol",
    "MOBIL": "Mobil",
    "UNITED": "United",
    "UNITED PETROLEUM": "United",
    "LIBERTY": "Liberty",
    "LIBERTY OIL": "Liberty",
    "METRO": "Metro",
    "METRO PETROLEUM": "Metro",
    "PUMA": "Puma",
    "PUMA ENERGY": "Puma",
    "VIBE": "Vibe",
    "APCO": "Apco",
    "INDEPENDENT": INDEPENDENT_BRAND,
}

_WHITESPACE_RE = re.compile(r"\s+")


def _with_canonical_keys(aliases: dict[str, str]) -> dict[str, str]:
    # Every canonical name must resolve to itself for aliasing to be idempotent.
    table = dict(aliases)
    for canonical in set(aliases.values()):
        table.setdefault(canonical.upper(), canonical)
    return table


_ALIAS_TABLE = _with_canonical_keys(BRAND_ALIASES)
_PARTIAL_PATTERNS = [
    (re.compile(rf"(?<![A-Z0-9]){re.escape(key)}(?![A-Z0-9])"), canonical)
    for key, canonical in sorted(_ALIAS_TABLE.items(), key=lambda item: (-len(item[0]), item[0]))
]


def _title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split(" "))


def normalise_brand(raw: str | None) -> str:
    """
    Map a raw brand or owner string onto the controlled vocabulary.

    Exact alias match first, then the longest alias appearing as a whole word,
    then the raw string title-cased. ``normalise_brand`` is idempotent.
    """
    if raw is None:
        return INDEPENDENT_BRAND
    cleaned = _WHITESPACE_RE.sub(" ", str(raw)).strip()
    if not cleaned:
        return INDEPENDENT_BRAND

    key = cleaned.upper()
    exact = _ALIAS_TABLE.get(key)
    if exact is not None:
        return exact

    for pattern, canonical in _PARTIAL_PATTERNS:
        if pattern.search(key):
            return canonical

    return _title_case(cleaned)
