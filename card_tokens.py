# card_tokens.py
# Card image filename parsing and the deck data model

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from errors import NoMatch

# ------------ Config -------------
CARD_IMAGE_BASE_URL = os.environ.get(
    "CARD_IMAGE_BASE_URL",
    "https://hololive-official-cardgame.com/wp-content/images/cardlist",
)

DEFAULT_VERSION = "_C"

# hBP02-084, hSD01-016, hY01-001 ...
CARD_ID_PATTERN = re.compile(r"^([A-Za-z]+\d*-\d{3})")
VERSION_PATTERN = re.compile(r"^(?:_[A-Za-z0-9]+)*$")
FILE_EXTENSION_PATTERN = re.compile(r"\.[A-Za-z0-9]{1,5}$")


class Strategy(str, Enum):
    HEADING = "heading"
    SELECTOR = "selector"
    REGEX_FALLBACK = "regexFallback"


@dataclass
class CardToken:
    id: str
    version: str = DEFAULT_VERSION
    count: int = 1

    @property
    def key(self) -> Tuple[str, str]:
        return self.id, self.version

    @property
    def filename(self) -> str:
        return f"{self.id}{self.version}.png"

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "version": self.version, "count": self.count}


@dataclass
class DeckExtractionResult:
    oshi: List[CardToken] = field(default_factory=list)
    deck: List[CardToken] = field(default_factory=list)
    energy: List[CardToken] = field(default_factory=list)
    strategy_used: Optional[Strategy] = None

    def sections(self) -> Dict[str, List[CardToken]]:
        return {"oshi": self.oshi, "deck": self.deck, "energy": self.energy}

    def total_cards(self) -> int:
        return len(self.oshi) + len(self.deck) + len(self.energy)

    def to_dict(self, include_strategy: bool = False) -> Dict[str, object]:
        payload: Dict[str, object] = {
            name: [token.to_dict() for token in tokens]
            for name, tokens in self.sections().items()
        }
        if include_strategy and self.strategy_used is not None:
            payload["strategyUsed"] = self.strategy_used.value
        return payload


# ------------ Parsing -------------
def filename_core(filename: str) -> str:
    """Reduce a src / URL / filename to its bare stem, e.g. ``hBP02-084_02_U``."""
    path = urlparse((filename or "").strip()).path
    name = unquote(path.rstrip("/").rsplit("/", 1)[-1])
    return FILE_EXTENSION_PATTERN.sub("", name)


def parse_card_filename(filename: str) -> Tuple[str, str]:
    """Split a card image filename into ``(id, version)``.

    ``"hBP02-084_02_U.png"`` gives ``("hBP02-084", "_02_U")`` and a bare
    ``"hBP02-084.png"`` gives the default ``"_C"`` version. Raises
    :class:`NoMatch` when there is no card id at the start of the name or the
    leftover is not an underscore suffix.
    """
    core = filename_core(filename)
    id_match = CARD_ID_PATTERN.match(core)
    if not id_match:
        raise NoMatch(filename)
    card_id = id_match.group(1)
    version = core[id_match.end():]
    if not VERSION_PATTERN.match(version):
        raise NoMatch(filename)
    return card_id, version or DEFAULT_VERSION


def card_set_code(card_id: str) -> str:
    return card_id.split("-", 1)[0]


def card_image_url(card_id: str, version: str = DEFAULT_VERSION) -> str:
    return f"{CARD_IMAGE_BASE_URL.rstrip('/')}/{card_set_code(card_id)}/{card_id}{version}.png"
