# scraper.py
# Decklog deck scraper: tries each regional decklog mirror until one yields cards

import argparse
import asyncio
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from playwright.async_api import Error as PlaywrightError, Page

from card_tokens import DeckExtractionResult
from errors import AllSourcesExhausted, EmptyExtraction, InvalidDeckCode, NavigationError
from extraction import ExtractionCascade
from navigator import DecklogSession
from page_loader import prepare_page

# ------------ Config -------------
# International mirror first, then the Japanese site.
DECKLOG_URL_TEMPLATES = (
    "https://decklog-en.bushiroad.com/ja/view/{code}",
    "https://decklog.bushiroad.com/view/{code}",
)

DECK_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,32}$")
LOGS_DIR = Path("output/logs")

RECOVERABLE_ERRORS = (NavigationError, EmptyExtraction, PlaywrightError)


# ------------ Logging -------------
def setup_logging() -> Path:
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_file_path = LOGS_DIR / f"run-{timestamp}.log"

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logging.info("Logging to %s", log_file_path)
    return log_file_path


# ------------ Scraping -------------
def validate_deck_code(code: str) -> str:
    code = (code or "").strip()
    if not DECK_CODE_PATTERN.match(code):
        raise InvalidDeckCode(code)
    return code


def candidate_urls(code: str, url_templates: Tuple[str, ...] = DECKLOG_URL_TEMPLATES) -> List[str]:
    code = validate_deck_code(code)
    return [template.format(code=code) for template in url_templates]


class DecklogScraper:
    """Reads one deck from the first decklog mirror that renders it.

    Mirrors are tried one after another, never in parallel. Each attempt
    gets its own browser session, closed before the next mirror is tried.
    """

    def __init__(
        self,
        url_templates: Tuple[str, ...] = DECKLOG_URL_TEMPLATES,
        session_factory: Callable[[], DecklogSession] = DecklogSession,
        cascade: Optional[ExtractionCascade] = None,
        page_loader: Callable[[Page], Awaitable[None]] = prepare_page,
    ):
        self.url_templates = tuple(url_templates)
        self.session_factory = session_factory
        self.cascade = cascade or ExtractionCascade()
        self.page_loader = page_loader

    async def read_page(self, url: str) -> str:
        async with self.session_factory() as session:
            page = await session.open(url)
            await self.page_loader(page)
            return await page.content()

    async def fetch(self, code: str) -> DeckExtractionResult:
        urls = candidate_urls(code, self.url_templates)
        failures: List[Tuple[str, str]] = []

        for url in urls:
            try:
                html = await self.read_page(url)
                result = self.cascade.run(html, source_url=url)
            except RECOVERABLE_ERRORS as e:
                logging.warning("Attempt %s failed: %s", url, e)
                failures.append((url, str(e)))
                continue

            logging.info(
                "Deck %s read from %s via %s (oshi=%d, deck=%d, energy=%d)",
                code, url, result.strategy_used.value,
                len(result.oshi), len(result.deck), len(result.energy),
            )
            return result

        logging.error("No decklog page yielded deck %s (%d attempts)", code, len(failures))
        raise AllSourcesExhausted(code, failures)


async def fetch_decklog_data(code: str, headless: Optional[bool] = None) -> DeckExtractionResult:
    if headless is None:
        scraper = DecklogScraper()
    else:
        scraper = DecklogScraper(session_factory=lambda: DecklogSession(headless=headless))
    return await scraper.fetch(code)


# ------------ Main -------------
def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Read a hololive OCG deck from decklog.")
    parser.add_argument("code", help="decklog deck code")
    parser.add_argument("--headful", action="store_true", help="show the browser window (default: DECKLOG_HEADLESS)")
    parser.add_argument("--output", type=Path, help="write the deck JSON to this file")
    args = parser.parse_args(argv)

    log_file_path = setup_logging()
    try:
        result = asyncio.run(fetch_decklog_data(args.code, headless=False if args.headful else None))
    except InvalidDeckCode as e:
        logging.error("%s", e)
        return 2
    except AllSourcesExhausted as e:
        for url, reason in e.attempts:
            logging.error("  %s -> %s", url, reason)
        logging.error("%s (log: %s)", e, log_file_path)
        return 1

    payload = json.dumps(result.to_dict(include_strategy=True), ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logging.info("Wrote %s", args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
