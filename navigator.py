# navigator.py
# Isolated Chromium sessions with anti-detection settings applied at creation

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    TimeoutError as PWTimeoutError,
    async_playwright,
)

from errors import NavigationError, NavigationTimeout

# ------------ Config -------------
USER_AGENT_STRING = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)
ACCEPT_LANGUAGE = "ja,en;q=0.9"

CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--disable-features=site-per-process",
    "--disable-blink-features=AutomationControlled",
    "--no-zygote",
)

NAVIGATION_TIMEOUT_MS = 30_000
NAVIGATION_WAIT_UNTIL = "domcontentloaded"
BROWSER_HEADLESS = os.environ.get("DECKLOG_HEADLESS", "true").lower() not in ("0", "false", "no")


@dataclass(frozen=True)
class StealthProfile:
    """Everything a session pretends to be, applied once when it is created."""

    user_agent: str = USER_AGENT_STRING
    locale: str = "ja-JP"
    timezone_id: str = "Asia/Tokyo"
    accept_language: str = ACCEPT_LANGUAGE
    platform_hint: str = "Windows"
    navigator_languages: Tuple[str, ...] = ("ja", "en-US")
    plugin_names: Tuple[str, ...] = ("PDF Viewer", "Chrome PDF Viewer", "Chromium PDF Viewer")
    webgl_vendor: str = "Google Inc. (Intel)"
    webgl_renderer: str = "ANGLE (Intel, Intel(R) UHD Graphics 620 Direct3D11 vs_5_0 ps_5_0, D3D11)"
    viewport_width: int = 1400
    viewport_height: int = 900
    launch_args: Tuple[str, ...] = CHROMIUM_ARGS

    def extra_http_headers(self) -> Dict[str, str]:
        return {
            "Accept-Language": self.accept_language,
            "Sec-CH-UA-Platform": f'"{self.platform_hint}"',
        }

    def context_options(self) -> Dict[str, object]:
        return {
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "extra_http_headers": self.extra_http_headers(),
        }

    def init_script(self) -> str:
        """JS run before any page script: hides automation markers and
        fills in what fingerprinting scripts look for."""
        languages = json.dumps(list(self.navigator_languages))
        plugins = json.dumps(list(self.plugin_names))
        vendor = json.dumps(self.webgl_vendor)
        renderer = json.dumps(self.webgl_renderer)
        return f"""
(() => {{
  Object.defineProperty(navigator, 'webdriver', {{ get: () => undefined }});
  Object.defineProperty(navigator, 'languages', {{ get: () => {languages} }});
  const pluginNames = {plugins};
  Object.defineProperty(navigator, 'plugins', {{
    get: () => pluginNames.map((name) => ({{ name, filename: 'internal-pdf-viewer', description: 'Portable Document Format' }}))
  }});
  window.chrome = window.chrome || {{ runtime: {{}} }};
  const patchWebGL = (proto) => {{
    if (!proto) return;
    const getParameter = proto.getParameter;
    proto.getParameter = function (parameter) {{
      if (parameter === 37445) return {vendor};
      if (parameter === 37446) return {renderer};
      return getParameter.call(this, parameter);
    }};
  }};
  patchWebGL(window.WebGLRenderingContext && WebGLRenderingContext.prototype);
  patchWebGL(window.WebGL2RenderingContext && WebGL2RenderingContext.prototype);
}})();
"""


DEFAULT_PROFILE = StealthProfile()


class DecklogSession:
    """One browser process per attempt.

    Use as ``async with DecklogSession() as session: page = await session.open(url)``;
    the browser is closed on every exit path.
    """

    def __init__(
        self,
        profile: StealthProfile = DEFAULT_PROFILE,
        headless: bool = BROWSER_HEADLESS,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
    ):
        self.profile = profile
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "DecklogSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        logging.debug("Launching Chromium (headless=%s)", self.headless)
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=list(self.profile.launch_args),
            )
            self._context = await self._browser.new_context(**self.profile.context_options())
            await self._context.add_init_script(self.profile.init_script())
            self._page = await self._context.new_page()
        except PWTimeoutError as e:
            raise NavigationTimeout("chromium", f"browser launch timed out: {e}") from e
        except PlaywrightError as e:
            raise NavigationError("chromium", f"browser launch failed: {e}") from e

    async def open(self, url: str) -> Page:
        if self._page is None:
            raise NavigationError(url, "session not started")
        logging.info("Opening decklog page: %s", url)
        try:
            response = await self._page.goto(
                url,
                wait_until=NAVIGATION_WAIT_UNTIL,
                timeout=self.navigation_timeout_ms,
            )
        except PWTimeoutError as e:
            raise NavigationTimeout(url, f"no {NAVIGATION_WAIT_UNTIL} within {self.navigation_timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e
        if response is not None and response.status >= 400:
            raise NavigationError(url, f"HTTP {response.status}")
        return self._page

    async def close(self) -> None:
        for name, resource in (
            ("context", self._context),
            ("browser", self._browser),
        ):
            if resource is None:
                continue
            try:
                await resource.close()
            except PlaywrightError as e:
                logging.warning("Closing %s failed: %s", name, e)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logging.warning("Stopping playwright failed: %s", e)
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        logging.debug("Browser session closed")
