import pytest

from fuelfeed.common.brands import BRAND_ALIASES, INDEPENDENT_BRAND, normalise_brand


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("BP AUSTRALIA", "BP"),
        ("bp connect", "BP"),
        ("7 Eleven", "7-Eleven"),
        ("Viva Energy", "Shell"),
        ("EG Ampol", "Ampol"),
        ("  united   petroleum ", "United"),
        ("Coles Express", "Coles Express"),
        ("BP Truckstop Laverton", "BP"),
        ("SHEL", "Shel"),
        ("local servo", "Local Servo"),
        (None, INDEPENDENT_BRAND),
        ("   ", INDEPENDENT_BRAND),
    ],
)
def test_normalise_brand(raw, expected):
    assert normalise_brand(raw) == expected


def test_partial_match_prefers_longest_alias():
    assert normalise_brand("SHELL COLES EXPRESS NORTHCOTE") == "Shell"


def test_partial_match_requires_whole_words():
    assert normalise_brand("BPX FUELS") == "Bpx Fuels"


@pytest.mark.parametrize(
    "raw",
    [*BRAND_ALIASES, *set(BRAND_ALIASES.values()), "SHEL", "mixed Case brand", "Bpx Fuels", "", None],
)
def test_normalise_brand_is_idempotent(raw):
    once = normalise_brand(raw)
    assert normalise_brand(once) == once
