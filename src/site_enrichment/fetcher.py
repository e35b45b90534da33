"""
Fetch strategy resolver.

Every URL goes through an explicit state machine:

    tier 1 (plain HTTP, 10s)
        rejected / raised     -> NEEDS_RENDER -> tier 2 (browser, DOM ready, 15s)
        other HTTP error      -> FAILED
        ok but client-rendered -> NEEDS_RENDER -> tier 3 (browser, network idle, 30s)
        ok                    -> FETCHED

A rejected tier-1 response (401/403/429/503 or an anti-bot challenge body) is
first retried once through curl_cffi browser impersonation. A DNS failure is
never escalated to the browser tiers.

The browser is shared by the whole run through BrowserHandle; every render
opens and closes its own browser context.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional, Tuple

import requests
from curl_cffi import requests as curl_requests
from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright
from pydantic import BaseModel

from .config import (
    HTTP_TIMEOUT,
    RENDER_IDLE_TIMEOUT,
    RENDER_TIMEOUT,
    USER_AGENT,
    VIEWPORT,
)
from .html import is_challenge_page, needs_render, parse_page
from .models import FetchTier, Page

logger = logging.getLogger(__name__)

REJECT_STATUSES = (401, 403, 429, 503)
IMPERSONATE_PROFILE = "chrome"

CHALLENGE_POLLS = 3
CHALLENGE_POLL_MS = 2000

BROWSER_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-sandbox",
]


class FetchState(str, Enum):
    FETCHED = "fetched"
    NEEDS_RENDER = "needs_render"
    RENDERED = "rendered"
    FAILED = "failed"


class ScrapeError(BaseModel):
    """Classified fetch failure."""
    type: str  # timeout | dns | connection | challenge | http | render | unknown
    code: Optional[str] = None
    status_code: Optional[int] = None
    message: str = ""

    @property
    def label(self) -> str:
        if self.code:
            return f"{self.type}:{self.code}"
        if self.status_code:
            return f"{self.type}:{self.status_code}"
        return self.type


class FetchOutcome(BaseModel):
    """Result of resolving one URL."""
    url: str
    state: FetchState
    page: Optional[Page] = None
    tier: Optional[FetchTier] = None
    error: Optional[ScrapeError] = None


class HttpResponse(NamedTuple):
    status_code: int
    text: str
    url: str


# ============================================================================
# ERROR CLASSIFICATION
# ============================================================================

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "nameresolutionerror",
    "failed to resolve",
    "could not resolve host",
    "temporary failure in name resolution",
    "err_name_not_resolved",
)
_REFUSED_MARKERS = ("connection refused", "err_connection_refused", "failed to connect")
_RESET_MARKERS = ("connection reset", "connection aborted", "err_connection_reset", "broken pipe")


def classify_error(error: BaseException) -> ScrapeError:
    """Map a fetch exception onto the pipeline's error taxonomy."""
    message = str(error) or error.__class__.__name__
    lowered = message.lower()

    if any(marker in lowered for marker in _DNS_MARKERS):
        return ScrapeError(type="dns", code="ENOTFOUND", message="Domain not found")
    if isinstance(error, (requests.exceptions.Timeout, asyncio.TimeoutError, PlaywrightTimeout)):
        return ScrapeError(type="timeout", code="ETIMEDOUT", message="Request timeout")
    if any(marker in lowered for marker in _REFUSED_MARKERS):
        return ScrapeError(type="connection", code="ECONNREFUSED", message="Connection refused")
    if any(marker in lowered for marker in _RESET_MARKERS):
        return ScrapeError(type="connection", code="ECONNRESET", message="Connection reset")
    if "timeout" in lowered or "timed out" in lowered:
        return ScrapeError(type="timeout", code="ETIMEDOUT", message="Request timeout")
    if isinstance(error, requests.exceptions.ConnectionError):
        return ScrapeError(type="connection", message=message[:100])
    return ScrapeError(type="unknown", message=message[:100])


def is_rejected(status_code: int, html: str) -> bool:
    """True for anti-bot rejections that a real browser may get past."""
    return status_code in REJECT_STATUSES or is_challenge_page(html)


# ============================================================================
# TIER 1: HTTP
# ============================================================================

def fetch_with_requests(url: str, timeout: float = HTTP_TIMEOUT) -> HttpResponse:
    """Plain HTTP GET with a browser user agent. Raises on transport errors."""
    response = requests.get(
        url,
        timeout=timeout,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        },
        allow_redirects=True,
    )
    return HttpResponse(response.status_code, response.text, response.url)


def fetch_with_impersonation(url: str, timeout: float = HTTP_TIMEOUT) -> HttpResponse:
    """HTTP GET with a browser TLS fingerprint (curl_cffi). Raises on transport errors."""
    # No custom headers: curl_cffi sends the impersonated browser's own
    response = curl_requests.get(url, timeout=timeout, impersonate=IMPERSONATE_PROFILE)
    return HttpResponse(response.status_code, response.text, str(response.url))


# ============================================================================
# TIERS 2 AND 3: SHARED BROWSER
# ============================================================================

class BrowserHandle:
    """
    One headless Chromium instance shared by every task of a run.

    Use as an async context manager so the browser is closed on every exit
    path. A failed launch leaves the handle unavailable and the run degrades
    to HTTP only.
    """

    def __init__(self, user_agent: str = USER_AGENT, viewport: Optional[dict] = None):
        self.user_agent = user_agent
        self.viewport = viewport or VIEWPORT
        self._playwright = None
        self._browser = None

    @property
    def available(self) -> bool:
        return self._browser is not None

    async def __aenter__(self) -> "BrowserHandle":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
            logger.info("✅ Headless browser launched")
        except Exception as e:
            logger.warning(f"⚠️  Browser launch failed, continuing with HTTP only: {e}")
            await self.close()

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"⚠️  Error closing browser: {e}")
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"⚠️  Error stopping Playwright: {e}")
            self._playwright = None

    async def render(self, url: str, wait_until: str, timeout_ms: int) -> HttpResponse:
        """
        Load a URL in a fresh browser context.

        Args:
            url: URL to load
            wait_until: Playwright load state ('domcontentloaded' or 'networkidle')
            timeout_ms: Navigation timeout in milliseconds

        Returns:
            HttpResponse with the rendered DOM
        """
        if self._browser is None:
            raise RuntimeError("Browser is not available")

        context = await self._browser.new_context(user_agent=self.user_agent, viewport=self.viewport)
        try:
            page = await context.new_page()
            response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            html = await page.content()
            for attempt in range(CHALLENGE_POLLS):
                if not is_challenge_page(html):
                    break
                logger.debug(f"Waiting for challenge to clear on {url} ({attempt + 1}/{CHALLENGE_POLLS})")
                await page.wait_for_timeout(CHALLENGE_POLL_MS)
                html = await page.content()
            status_code = response.status if response else 200
            return HttpResponse(status_code, html, page.url or url)
        finally:
            await context.close()


# ============================================================================
# RESOLVER
# ============================================================================

def build_page(url: str, response: HttpResponse) -> Page:
    parsed = parse_page(response.text, response.url or url)
    return Page(
        url=url,
        title=parsed["title"],
        html=response.text,
        text_content=parsed["text_content"],
        links=parsed["links"],
        status_code=response.status_code,
    )


class FetchStrategyResolver:
    """
    Resolves a URL to a captured page using the cheapest tier that works.

    Blocking work (tier-1 HTTP, storage writes) runs on `executor`. The job
    sizes it to the wave concurrency; without one the loop's default pool is
    used, which caps parallel fetches at min(32, cpu + 4).
    """

    def __init__(
        self,
        browser: Optional[BrowserHandle] = None,
        http_timeout: float = HTTP_TIMEOUT,
        render_timeout: int = RENDER_TIMEOUT,
        render_idle_timeout: int = RENDER_IDLE_TIMEOUT,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.browser = browser
        self.http_timeout = http_timeout
        self.render_timeout = render_timeout
        self.render_idle_timeout = render_idle_timeout
        self.executor = executor

    @property
    def render_enabled(self) -> bool:
        return self.browser is not None and self.browser.available

    async def run_blocking(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a blocking call on the resolver's thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, functools.partial(fn, *args, **kwargs))

    async def _http_tier(self, url: str) -> HttpResponse:
        response = await self.run_blocking(fetch_with_requests, url, self.http_timeout)
        if not is_rejected(response.status_code, response.text):
            return response

        logger.debug(f"HTTP {response.status_code} rejected for {url}, retrying with impersonation")
        try:
            retried = await self.run_blocking(fetch_with_impersonation, url, self.http_timeout)
        except Exception as e:
            logger.debug(f"Impersonated fetch failed for {url}: {e}")
            return response
        if not is_rejected(retried.status_code, retried.text):
            logger.debug(f"Impersonated fetch succeeded for {url}")
            return retried
        return response

    async def _render_tier(self, url: str, tier: FetchTier) -> Tuple[Optional[Page], Optional[ScrapeError]]:
        if tier == FetchTier.RENDER:
            wait_until, timeout_ms = "domcontentloaded", self.render_timeout
        else:
            wait_until, timeout_ms = "networkidle", self.render_idle_timeout
        try:
            response = await self.browser.render(url, wait_until, timeout_ms)
        except Exception as e:
            error = classify_error(e)
            if error.type == "unknown":
                error = ScrapeError(type="render", message=error.message)
            return None, error
        if is_challenge_page(response.text):
            return None, ScrapeError(type="challenge", message="Challenge not resolved")
        if response.status_code >= 400:
            return None, ScrapeError(
                type="http", status_code=response.status_code, message=f"HTTP {response.status_code}"
            )
        return build_page(url, response), None

    async def fetch(self, url: str) -> FetchOutcome:
        """Run the tier state machine for one URL."""
        error: Optional[ScrapeError] = None
        page: Optional[Page] = None

        # Tier 1
        try:
            response = await self._http_tier(url)
        except Exception as e:
            response = None
            error = classify_error(e)

        if response is None:
            state = FetchState.FAILED if error.type == "dns" else FetchState.NEEDS_RENDER
            next_tier = FetchTier.RENDER
        elif is_rejected(response.status_code, response.text):
            error = ScrapeError(
                type="challenge" if is_challenge_page(response.text) else "http",
                status_code=response.status_code,
                message=f"HTTP {response.status_code}",
            )
            state = FetchState.NEEDS_RENDER
            next_tier = FetchTier.RENDER
        elif response.status_code >= 400:
            error = ScrapeError(
                type="http", status_code=response.status_code, message=f"HTTP {response.status_code}"
            )
            state = FetchState.FAILED
            next_tier = None
        else:
            page = build_page(url, response)
            if needs_render(page.html, page.text_content):
                state = FetchState.NEEDS_RENDER
                next_tier = FetchTier.RENDER_IDLE
            else:
                state = FetchState.FETCHED
                next_tier = None

        if state == FetchState.NEEDS_RENDER and not self.render_enabled:
            state = FetchState.FETCHED if page is not None else FetchState.FAILED

        # Tiers 2 and 3
        if state == FetchState.NEEDS_RENDER:
            logger.debug(f"[{next_tier.value}] {url}")
            rendered, render_error = await self._render_tier(url, next_tier)
            if rendered is not None:
                logger.debug(f"  [{next_tier.value}] {url} - {len(rendered.text_content)} chars")
                return FetchOutcome(url=url, state=FetchState.RENDERED, page=rendered, tier=next_tier)
            if page is not None:
                # Client-rendered page that failed to render: keep the static HTML
                logger.debug(f"Render failed for {url} ({render_error.label}), keeping HTTP result")
                state = FetchState.FETCHED
            else:
                error = render_error or error
                state = FetchState.FAILED

        if state == FetchState.FETCHED:
            logger.debug(f"  [http] {url} - {len(page.text_content)} chars, {len(page.links)} links")
            return FetchOutcome(url=url, state=state, page=page, tier=FetchTier.HTTP)

        return FetchOutcome(url=url, state=FetchState.FAILED, error=error)
