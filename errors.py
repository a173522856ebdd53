# errors.py
# Error taxonomy shared by the decklog scraper and the API

from typing import List, Tuple


class DecklogError(Exception):
    """Base class for everything the scraper raises on purpose."""


class NoMatch(DecklogError, ValueError):
    """A filename does not carry a card id; the card is skipped."""

    def __init__(self, filename: str):
        super().__init__(f"No card id in {filename!r}")
        self.filename = filename


class InvalidDeckCode(DecklogError, ValueError):
    def __init__(self, code: str):
        super().__init__(f"Invalid deck code: {code!r}")
        self.code = code


class NavigationError(DecklogError):
    """One candidate URL could not be opened."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class NavigationTimeout(NavigationError):
    pass


class EmptyExtraction(DecklogError):
    """Every extraction tier came back without a single card."""

    def __init__(self, source: str = ""):
        super().__init__(f"No cards found on {source or 'page'}")
        self.source = source


class AllSourcesExhausted(DecklogError):
    def __init__(self, code: str, attempts: List[Tuple[str, str]]):
        super().__init__(f"Could not read deck {code!r} from any decklog page ({len(attempts)} tried)")
        self.code = code
        self.attempts = attempts
