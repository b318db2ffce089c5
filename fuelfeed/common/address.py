"""Australian street address parsing and suburb capitalisation."""

from __future__ import annotations

import re
from dataclasses import dataclass

from fuelfeed.common.constants import AUSTRALIAN_STATES

_STATE_ALTERNATION = "|".join(AUSTRALIAN_STATES)
_LOCALITY_RE = re.compile(
    rf"^(?P<suburb>.*?)\s*\b(?P<state>{_STATE_ALTERNATION})?\b\s*(?P<postcode>\d{{4}})?$",
    re.IGNORECASE,
)
_POSTCODE_RE = re.compile(r"^\d{4}$")

_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_PUNCTUATION = " \t.,;:-/"
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([,.;:])")

# Checked in order; first match wins.
_SUBURB_PREFIXES = (
    ("SAINT ", "St "),
    ("ST. ", "St "),
    ("ST ", "St "),
    ("MOUNT ", "Mt "),
    ("MT. ", "Mt "),
    ("MT ", "Mt "),
    ("PT. ", "Port "),
    ("PT ", "Port "),
)


@dataclass(frozen=True)
class ParsedAddress:
    street: str | None
    suburb: str | None
    region: str
    postcode: str | None
    has_state: bool = False


def clean_segment(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", value)
    cleaned = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", cleaned)
    cleaned = cleaned.strip(_EDGE_PUNCTUATION)
    return cleaned or None


def _split_locality(segment: str) -> tuple[str | None, str | None, str | None]:
    match = _LOCALITY_RE.match(segment)
    if match is None:
        return clean_segment(segment), None, None
    state = match.group("state")
    postcode = match.group("postcode")
    suburb = clean_segment(match.group("suburb"))
    return suburb, state.upper() if state else None, postcode


def parse_address(text: str | None, default_region: str) -> ParsedAddress:
    """
    Split a free-text address into street, suburb, region and postcode.

    The last comma-separated segment carries the locality, e.g.
    ``"12 High St, Preston VIC 3072"``. When no state abbreviation is present
    the region falls back to ``default_region``.
    """
    cleaned = clean_segment(text)
    if cleaned is None:
        return ParsedAddress(street=None, suburb=None, region=default_region, postcode=None)

    parts = [part for part in (clean_segment(p) for p in cleaned.split(",")) if part]
    if len(parts) == 1:
        suburb, state, postcode = _split_locality(parts[0])
        if state is None and postcode is None:
            return ParsedAddress(street=parts[0], suburb=None, region=default_region, postcode=None)
        return ParsedAddress(
            street=None,
            suburb=suburb,
            region=state or default_region,
            postcode=postcode,
            has_state=state is not None,
        )

    street = ", ".join(parts[:-1])
    suburb, state, postcode = _split_locality(parts[-1])
    if suburb is None and len(parts) >= 3:
        # "12 High St, Preston, VIC 3072": the suburb has its own segment.
        street = ", ".join(parts[:-2])
        suburb = parts[-2]
    return ParsedAddress(
        street=street,
        suburb=suburb,
        region=state or default_region,
        postcode=postcode,
        has_state=state is not None,
    )


def normalise_postcode(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) == 3 and text.isdigit():
        # NT postcodes lose their leading zero when stored as numbers.
        text = f"0{text}"
    return text if _POSTCODE_RE.match(text) else None


def _capitalise_word(word: str) -> str:
    if not word:
        return word
    upper = word.upper()
    if upper.startswith("O'") and len(word) > 2:
        return "O'" + word[2:].capitalize()
    if upper.startswith("MC") and len(word) > 2:
        return "Mc" + word[2:].capitalize()
    return word.capitalize()


def _title_word(word: str) -> str:
    return "-".join(_capitalise_word(part) for part in word.split("-"))


def normalise_suburb(name: str | None) -> str | None:
    cleaned = clean_segment(name)
    if cleaned is None:
        return None

    upper = cleaned.upper() + " "
    prefix_out = ""
    for prefix, replacement in _SUBURB_PREFIXES:
        if upper.startswith(prefix):
            prefix_out = replacement
            cleaned = cleaned[len(prefix):].strip()
            break

    words = [_title_word(word) for word in cleaned.split(" ") if word]
    return (prefix_out + " ".join(words)).strip() or None
