# sections.py
# Multilingual section headings and the card neighbourhood around them

import re
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

# ------------ Config -------------
# Keys are the logical sections; "main" lands in the result's "deck" list.
SECTION_KEYWORDS: Dict[str, Sequence[str]] = {
    "oshi": ("推しホロメン", "推し", "oshi holomem", "oshi"),
    "main": ("メインデッキ", "メイン", "main deck"),
    "energy": ("エールデッキ", "“エール” deck", "エール", "cheer deck", "yell", "energy"),
}

SECTION_RESULT_FIELDS = {"oshi": "oshi", "main": "deck", "energy": "energy"}

HEADING_SELECTOR = "h1, h2, h3, h4, h5, h6, [role='heading'], .deck-title, .section-title"
SIBLING_SCAN_LIMIT = 4

QUOTE_CHARACTERS = "\"'`“”„‘’‚「」『』＂＇«»"
_QUOTE_PATTERN = re.compile("[" + re.escape(QUOTE_CHARACTERS) + "]")


def normalize_heading_text(text: str) -> str:
    text = _QUOTE_PATTERN.sub("", text or "")
    return re.sub(r"\s+", " ", text).strip().lower()


def classify_headings(
    headings: Iterable[Tag],
    keywords: Dict[str, Sequence[str]] = SECTION_KEYWORDS,
) -> Dict[str, Optional[Tag]]:
    """Pick, per section, the first heading (document order) naming it.

    Sections are matched independently, so any of them may come back as
    ``None``.
    """
    normalized_keywords = {
        section: [normalize_heading_text(variant) for variant in variants if normalize_heading_text(variant)]
        for section, variants in keywords.items()
    }
    matches: Dict[str, Optional[Tag]] = {section: None for section in keywords}
    for heading in headings:
        heading_text = normalize_heading_text(heading.get_text(" ", strip=True))
        if not heading_text:
            continue
        for section, variants in normalized_keywords.items():
            if matches[section] is None and any(variant in heading_text for variant in variants):
                matches[section] = heading
    return matches


class SectionLocator:
    """Finds the card image elements sitting next to each section heading.

    The search around a heading is bounded: its following siblings up to the
    next section heading, then its parent, then the parent's next sibling.
    A neighbourhood holding another section's heading is skipped. The first
    neighbourhood holding any card image wins.
    """

    def __init__(
        self,
        image_filter: Callable[[Tag], bool],
        keywords: Dict[str, Sequence[str]] = SECTION_KEYWORDS,
        heading_selector: str = HEADING_SELECTOR,
        sibling_limit: int = SIBLING_SCAN_LIMIT,
    ):
        self.image_filter = image_filter
        self.keywords = keywords
        self.heading_selector = heading_selector
        self.sibling_limit = sibling_limit

    def headings(self, soup: BeautifulSoup) -> List[Tag]:
        return soup.select(self.heading_selector)

    def locate(self, soup: BeautifulSoup) -> Dict[str, Optional[Tag]]:
        return classify_headings(self.headings(soup), self.keywords)

    def neighbourhoods(self, heading: Tag, boundaries: Iterable[Tag] = ()) -> Iterator[Tag]:
        others = [boundary for boundary in boundaries if boundary is not None and boundary is not heading]

        def holds_other_heading(tag: Tag) -> bool:
            return any(other is tag or any(parent is tag for parent in other.parents) for other in others)

        for sibling in heading.find_next_siblings(limit=self.sibling_limit):
            if holds_other_heading(sibling):
                break
            yield sibling
        parent = heading.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return
        if not holds_other_heading(parent):
            yield parent
        parent_sibling = parent.find_next_sibling()
        if parent_sibling is not None and not holds_other_heading(parent_sibling):
            yield parent_sibling

    def candidate_images(self, heading: Tag, boundaries: Iterable[Tag] = ()) -> Iterator[Tag]:
        for neighbourhood in self.neighbourhoods(heading, boundaries):
            images = [neighbourhood] if neighbourhood.name == "img" else neighbourhood.find_all("img")
            card_images = [image for image in images if self.image_filter(image)]
            if card_images:
                yield from card_images
                return
