# page_loader.py
# Best-effort page preparation: cookie consent, lazy-load scrolling, settle waits

import logging

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PWTimeoutError

from extraction import CARD_IMAGE_MARKER

# ------------ Config -------------
CONSENT_SELECTORS = (
    "#onetrust-accept-btn-handler",
    '[aria-label="Agree"]',
    'button:has-text("同意する")',
    'button:has-text("同意")',
    '[role="button"]:has-text("同意")',
    # :has-text is a case-insensitive substring match, so short Latin
    # phrases must match the whole label ("OK" is inside "Facebook")
    'button:text-is("AGREE")',
    'button:text-is("Agree")',
    'button:text-is("OK")',
)
CONSENT_CLICK_TIMEOUT_MS = 2_000
CONSENT_SETTLE_MS = 800

SCROLL_STEP_PX = 600
SCROLL_INTERVAL_MS = 250
SCROLL_MAX_STEPS = 40
SCROLL_SETTLE_MS = 1_000

CARD_MARKER_TIMEOUT_MS = 5_000
NETWORK_IDLE_TIMEOUT_MS = 10_000

SCROLL_POSITION_SCRIPT = "() => [window.scrollY + window.innerHeight, document.body.scrollHeight]"


async def dismiss_consent(page: Page) -> bool:
    """Click the first visible consent button, if the page shows one."""
    for selector in CONSENT_SELECTORS:
        try:
            button = page.locator(selector).first
            if not await button.is_visible():
                continue
            await button.click(timeout=CONSENT_CLICK_TIMEOUT_MS)
            logging.info("Dismissed consent overlay via %s", selector)
            await page.wait_for_timeout(CONSENT_SETTLE_MS)
            return True
        except PlaywrightError as e:
            logging.debug("Consent button %s not usable: %s", selector, e)
    logging.debug("No consent overlay found")
    return False


async def auto_scroll(page: Page, step: int = SCROLL_STEP_PX, max_steps: int = SCROLL_MAX_STEPS) -> int:
    """Scroll down in steps until the bottom (or the step cap) is reached."""
    steps_taken = 0
    try:
        for steps_taken in range(1, max_steps + 1):
            await page.evaluate("step => window.scrollBy(0, step)", step)
            await page.wait_for_timeout(SCROLL_INTERVAL_MS)
            position, height = await page.evaluate(SCROLL_POSITION_SCRIPT)
            if position >= height:
                break
        else:
            logging.debug("Scroll cap of %d steps reached", max_steps)
    except PlaywrightError as e:
        logging.warning("Auto-scroll stopped after %d steps: %s", steps_taken, e)
    return steps_taken


async def wait_for_cards(page: Page) -> bool:
    """Wait for a card image to show up, else for the network to go quiet."""
    try:
        await page.wait_for_selector(CARD_IMAGE_MARKER, state="attached", timeout=CARD_MARKER_TIMEOUT_MS)
        return True
    except PWTimeoutError:
        logging.debug("No card marker after %dms, waiting for network idle", CARD_MARKER_TIMEOUT_MS)
    except PlaywrightError as e:
        logging.debug("Card marker wait failed: %s", e)

    try:
        await page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
    except PlaywrightError as e:
        logging.debug("Network idle wait gave up: %s", e)
    return False


async def prepare_page(page: Page) -> None:
    await dismiss_consent(page)
    steps = await auto_scroll(page)
    logging.debug("Scrolled %d steps", steps)
    try:
        await page.wait_for_timeout(SCROLL_SETTLE_MS)
    except PlaywrightError as e:
        logging.debug("Settle wait failed: %s", e)
    await wait_for_cards(page)
