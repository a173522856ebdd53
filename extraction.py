# extraction.py
# Deck extraction cascade: heading-anchored -> flat selector -> raw markup regex

import logging
import re
from functools import cached_property
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from card_tokens import CardToken, DeckExtractionResult, Strategy, parse_card_filename
from errors import EmptyExtraction, NoMatch
from sections import SECTION_RESULT_FIELDS, SectionLocator

# ------------ Config -------------
# Lazy-loaded art usually sits in data-src while src holds a placeholder.
IMAGE_SOURCE_ATTRIBUTES = ("data-src", "data-original", "data-lazy-src", "src")

# Structural signatures the decklog pages have used for card art.
CARD_IMAGE_SELECTORS = (
    ".card-view-item",
    ".decklist img[title]",
    ".decklist .card > img",
    "img[src*='/cardlist/']",
    "img[data-src*='/cardlist/']",
)
CARD_IMAGE_MARKER = ", ".join(CARD_IMAGE_SELECTORS)

CARD_WRAPPER_CLASSES = ("card-container", "card-item", "card")
COUNT_SELECTOR = ".card-controller-inner .num, .num, .count, .card__num"

# .../cardlist/hBP02/hBP02-084_02_U.png, also with JSON-escaped slashes
CARD_IMAGE_URL_PATTERN = re.compile(
    r"cardlist\\?/[A-Za-z0-9_-]+\\?/([A-Za-z]+\d*-\d{3}(?:_[A-Za-z0-9]+)*)\.png",
    re.IGNORECASE,
)


# ------------ DOM helpers -------------
def card_key_from_image(image: Tag) -> Optional[Tuple[str, str]]:
    for attribute in IMAGE_SOURCE_ATTRIBUTES:
        source = image.get(attribute)
        if not source or source.startswith("data:"):
            continue
        try:
            return parse_card_filename(source)
        except NoMatch:
            logging.debug("Skipping %s=%s (no card id)", attribute, source)
    return None


def is_card_image(image: Tag) -> bool:
    return card_key_from_image(image) is not None


def _closest_with_class(element: Tag, class_names: Sequence[str]) -> Optional[Tag]:
    for candidate in [element, *element.parents]:
        if not isinstance(candidate, Tag) or isinstance(candidate, BeautifulSoup):
            continue
        if any(name in (candidate.get("class") or []) for name in class_names):
            return candidate
    return None


def read_copy_count(image: Tag) -> int:
    """Copy count from the counter next to a card, 1 when there is none."""
    wrapper = _closest_with_class(image, CARD_WRAPPER_CLASSES) or image.parent
    if wrapper is None or isinstance(wrapper, BeautifulSoup):
        return 1
    counters = wrapper.select(COUNT_SELECTOR)
    # several counters means the wrapper spans more than one card
    if len(counters) != 1:
        return 1
    number_match = re.search(r"\d+", counters[0].get_text(" ", strip=True))
    if not number_match:
        return 1
    count = int(number_match.group(0))
    return count if count > 0 else 1


class SectionCollector:
    """Merges repeated sightings of one printing into a single token."""

    def __init__(self):
        self._tokens: Dict[Tuple[str, str], CardToken] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def add_sighting(self, card_id: str, version: str, count: int = 1) -> None:
        token = self._tokens.get((card_id, version))
        if token is None:
            self._tokens[(card_id, version)] = CardToken(card_id, version, count)
        elif count > token.count:
            token.count = count

    def add_occurrence(self, card_id: str, version: str) -> None:
        token = self._tokens.get((card_id, version))
        if token is None:
            self._tokens[(card_id, version)] = CardToken(card_id, version, 1)
        else:
            token.count += 1

    def add_image(self, image: Tag) -> bool:
        key = card_key_from_image(image)
        if key is None:
            return False
        self.add_sighting(key[0], key[1], read_copy_count(image))
        return True

    def tokens(self) -> List[CardToken]:
        return list(self._tokens.values())


class DeckDocument:
    """One HTML snapshot of a decklog page, parsed on first use."""

    def __init__(self, html: str, source_url: str = ""):
        self.html = html or ""
        self.source_url = source_url

    @property
    def label(self) -> str:
        return self.source_url or "page"

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")


# ------------ Tiers -------------
class HeadingTier:
    strategy = Strategy.HEADING

    def __init__(self, locator: Optional[SectionLocator] = None):
        self.locator = locator or SectionLocator(is_card_image)

    def extract(self, document: DeckDocument) -> DeckExtractionResult:
        result = DeckExtractionResult(strategy_used=self.strategy)
        located = self.locator.locate(document.soup)
        headings = [heading for heading in located.values() if heading is not None]
        for section, heading in located.items():
            if heading is None:
                logging.debug("No heading found for section %s on %s", section, document.label)
                continue
            collector = SectionCollector()
            for image in self.locator.candidate_images(heading, headings):
                collector.add_image(image)
            logging.debug(
                "Heading %r -> %d cards on %s", heading.get_text(strip=True), len(collector), document.label
            )
            setattr(result, SECTION_RESULT_FIELDS[section], collector.tokens())
        return result


class SelectorTier:
    strategy = Strategy.SELECTOR

    def __init__(self, selectors: Iterable[str] = CARD_IMAGE_SELECTORS):
        self.selectors = tuple(selectors)

    def card_images(self, soup: BeautifulSoup) -> List[Tag]:
        images: List[Tag] = []
        seen = set()
        for element in soup.select(", ".join(self.selectors)):
            if element.name == "img":
                image = element
            else:
                # wrappers can hold rarity / attribute icons ahead of the card art
                image = next((img for img in element.find_all("img") if is_card_image(img)), None)
            if image is None or id(image) in seen:
                continue
            seen.add(id(image))
            images.append(image)
        return images

    def extract(self, document: DeckDocument) -> DeckExtractionResult:
        collector = SectionCollector()
        for image in self.card_images(document.soup):
            collector.add_image(image)
        logging.debug("Selectors matched %d cards on %s", len(collector), document.label)
        # no section attribution at this tier
        return DeckExtractionResult(deck=collector.tokens(), strategy_used=self.strategy)


class RegexFallbackTier:
    strategy = Strategy.REGEX_FALLBACK

    def __init__(self, pattern: "re.Pattern[str]" = CARD_IMAGE_URL_PATTERN):
        self.pattern = pattern

    def extract(self, document: DeckDocument) -> DeckExtractionResult:
        collector = SectionCollector()
        for match in self.pattern.finditer(document.html):
            try:
                card_id, version = parse_card_filename(match.group(1))
            except NoMatch:
                continue
            collector.add_occurrence(card_id, version)
        return DeckExtractionResult(deck=collector.tokens(), strategy_used=self.strategy)


def default_tiers() -> list:
    return [HeadingTier(), SelectorTier(), RegexFallbackTier()]


class ExtractionCascade:
    """Runs the tiers in order and keeps the first one that finds any card.

    Results from different tiers are never merged. Raises
    :class:`EmptyExtraction` when no tier finds anything.
    """

    def __init__(self, tiers: Optional[list] = None):
        self.tiers = tiers if tiers is not None else default_tiers()

    def run(self, html: str, source_url: str = "") -> DeckExtractionResult:
        document = DeckDocument(html, source_url)
        for tier in self.tiers:
            try:
                result = tier.extract(document)
            except Exception as e:
                logging.warning("Tier %s failed on %s: %s", tier.strategy.value, document.label, e)
                continue
            counts = {name: len(tokens) for name, tokens in result.sections().items()}
            if result.total_cards() > 0:
                logging.info("Extracted via %s from %s: %s", tier.strategy.value, document.label, counts)
                return result
            logging.info("Tier %s found no cards on %s", tier.strategy.value, document.label)
        raise EmptyExtraction(source_url)
