from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"

CARD_KEYS = {
    ("hSD01-001", "_OSR"),
    ("hBP02-084", "_02_U"),
    ("hSD01-016", "_OSR"),
    ("hBP01-010", "_C"),
    ("hY01-001", "_C"),
}


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def heading_html():
    return read_fixture("heading_deck.html")


@pytest.fixture
def flat_html():
    return read_fixture("flat_deck.html")


@pytest.fixture
def raw_html():
    return read_fixture("raw_deck.html")


@pytest.fixture
def empty_html():
    return read_fixture("empty_page.html")


@pytest.fixture
def expected_card_keys():
    return set(CARD_KEYS)
