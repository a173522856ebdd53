import asyncio
import re

from playwright.async_api import Error as PlaywrightError, TimeoutError as PWTimeoutError

import page_loader
from page_loader import auto_scroll, dismiss_consent, prepare_page, wait_for_cards

TEXT_SELECTOR = re.compile(r'^(?P<target>.*?):(?P<kind>has-text|text-is)\("(?P<text>.*)"\)$')


def _label_matches(kind, wanted, label):
    label = " ".join(label.split())
    if kind == "has-text":
        return wanted.lower() in label.lower()
    return wanted == label


class FakeLocator:
    """Resolves ``:has-text`` / ``:text-is`` against the page's visible button labels."""

    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    def _matching_label(self):
        match = TEXT_SELECTOR.match(self.selector)
        if not match:
            return None
        for label in self.page.buttons:
            if _label_matches(match.group("kind"), match.group("text"), label):
                return label
        return None

    async def is_visible(self):
        if self.selector in self.page.broken_selectors:
            raise PlaywrightError("detached")
        return self.selector in self.page.visible_selectors or self._matching_label() is not None

    async def click(self, timeout=None):
        self.page.clicked.append(self._matching_label() or self.selector)


class FakePage:
    def __init__(self, height=2000, viewport=900, buttons=(), visible_selectors=(), broken_selectors=(),
                 marker_present=True, scroll_error=None):
        self.height = height
        self.viewport = viewport
        self.scroll_y = 0
        self.buttons = list(buttons)
        self.visible_selectors = set(visible_selectors)
        self.broken_selectors = set(broken_selectors)
        self.marker_present = marker_present
        self.scroll_error = scroll_error
        self.clicked = []
        self.timeouts = []
        self.load_states = []

    def locator(self, selector):
        return FakeLocator(self, selector)

    async def evaluate(self, script, arg=None):
        if self.scroll_error is not None:
            raise self.scroll_error
        if arg is not None:
            self.scroll_y += arg
            return None
        return [self.scroll_y + self.viewport, self.height]

    async def wait_for_timeout(self, timeout):
        self.timeouts.append(timeout)

    async def wait_for_selector(self, selector, state=None, timeout=None):
        if self.marker_present:
            return object()
        raise PWTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_load_state(self, state, timeout=None):
        self.load_states.append(state)


def test_dismiss_consent_clicks_first_matching_button():
    page = FakePage(buttons=["OK", "すべてに同意"])
    assert asyncio.run(dismiss_consent(page)) is True
    assert page.clicked == ["すべてに同意"]
    assert page_loader.CONSENT_SETTLE_MS in page.timeouts


def test_dismiss_consent_uses_onetrust_button():
    page = FakePage(visible_selectors={"#onetrust-accept-btn-handler"})
    assert asyncio.run(dismiss_consent(page)) is True
    assert page.clicked == ["#onetrust-accept-btn-handler"]


def test_dismiss_consent_needs_exact_latin_labels():
    page = FakePage(buttons=["Facebook", "Bookmark", "Look up", "I disagree"])
    assert asyncio.run(dismiss_consent(page)) is False
    assert page.clicked == []


def test_dismiss_consent_clicks_exact_ok():
    page = FakePage(buttons=["Facebook", " OK "])
    assert asyncio.run(dismiss_consent(page)) is True
    assert page.clicked == [" OK "]


def test_dismiss_consent_tolerates_missing_overlay():
    page = FakePage(broken_selectors={"#onetrust-accept-btn-handler"})
    assert asyncio.run(dismiss_consent(page)) is False
    assert page.clicked == []


def test_auto_scroll_stops_at_document_bottom():
    page = FakePage(height=2000, viewport=900)
    steps = asyncio.run(auto_scroll(page, step=600))
    # 600 + 900 < 2000, 1200 + 900 >= 2000
    assert steps == 2
    assert page.scroll_y == 1200


def test_auto_scroll_is_capped():
    page = FakePage(height=10 ** 9)
    assert asyncio.run(auto_scroll(page, step=100, max_steps=5)) == 5
    assert page.scroll_y == 500


def test_auto_scroll_survives_page_errors():
    page = FakePage(scroll_error=PlaywrightError("Execution context was destroyed"))
    assert asyncio.run(auto_scroll(page)) == 1


def test_wait_for_cards_falls_back_to_network_idle():
    page = FakePage(marker_present=False)
    assert asyncio.run(wait_for_cards(page)) is False
    assert page.load_states == ["networkidle"]


def test_wait_for_cards_returns_on_marker():
    page = FakePage(marker_present=True)
    assert asyncio.run(wait_for_cards(page)) is True
    assert page.load_states == []


def test_prepare_page_runs_every_step():
    page = FakePage(height=1000, viewport=900, marker_present=False)
    asyncio.run(prepare_page(page))
    assert page.scroll_y == 600
    assert page_loader.SCROLL_SETTLE_MS in page.timeouts
    assert page.load_states == ["networkidle"]
