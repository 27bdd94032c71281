"""
Resilient page fetcher used by every discovery strategy.

Handles user-agent negotiation, per-host rate limiting, retry with exponential
backoff on 429/5xx, locale-redirect correction and login-wall detection.
"""

from __future__ import annotations

import asyncio
import random
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import httpx
from loguru import logger

from policyscout.core.config import settings
from policyscout.core.exceptions import (
    AuthWallError,
    ConnectionFailedError,
    ForbiddenError,
    InvalidTargetError,
    RateLimitedError,
    RequestFailedError,
    UnexpectedStatusError,
    UpstreamServerError,
)
from policyscout.models.discovery import FetchResult
from policyscout.scrapers.html import bare_host, host_of
from policyscout.scrapers.rate_limiter import RateLimiter

GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
BINGBOT_UA = "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)"

# Realistic browser identities, rotated for sites with aggressive bot protection.
FALLBACK_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    GOOGLEBOT_UA,
)

# Sites that block browsers but serve search-engine crawlers.
BOT_REQUIRED_DOMAINS: tuple[str, ...] = (
    "facebook.com",
    "instagram.com",
    "whatsapp.com",
    "threads.net",
    "meta.com",
)

AGGRESSIVE_ANTIBOT_DOMAINS: tuple[str, ...] = (
    "bhphotovideo.com",
    "bestbuy.com",
    "walmart.com",
    "target.com",
    "homedepot.com",
)

BLOCKED_URL_PATTERNS: tuple[str, ...] = (
    "/login",
    "/signin",
    "/sign-in",
    "/authenticate",
    "/auth/",
    "accounts.google.com",
    "/oauth",
    "/sso/",
    "login.php",
    "?next=",
    "returnurl=",
    "redirect_uri=",
    "/challenge/",
    "/checkpoint/",
)

LOGIN_WALL_MARKERS: tuple[str, ...] = (
    "sign in to continue",
    "log in to continue",
    "please log in",
    "login required",
    "authentication required",
    "enter your password",
)
LOGIN_SCAN_CHARS = 5000
PASSWORD_FIELD = re.compile(r"""<input\b[^>]*\btype\s*=\s*["']?password\b""", re.IGNORECASE)

# httpx.InvalidURL does not derive from httpx.HTTPError
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)

_LOCALES = "de|fr|es|it|pt|nl|pl|ru|ja|ko|zh|ar|tr|sv|no|da|fi"
LOCALE_SEGMENT = re.compile(rf"/({_LOCALES})(-[a-z]{{2}})?/", re.IGNORECASE)
ENGLISH_LOCALE_REPLACEMENTS: tuple[str, ...] = ("/us/", "/en/", "/en-us/")

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

RETRY_AFTER_DEFAULT = 5.0
RETRY_AFTER_CAP = 60.0
SERVER_ERROR_BACKOFF = 2.0
BACKOFF_CAP = 60.0

Sleeper = Callable[[float], Awaitable[None]]


def is_valid_policy_url(url: str) -> bool:
    """False for URLs that look like login, SSO or challenge pages."""
    lowered = url.lower()
    return not any(pattern in lowered for pattern in BLOCKED_URL_PATTERNS)


def _matches_domain_list(url_or_host: str, domains: Sequence[str]) -> bool:
    host = host_of(url_or_host) if "://" in url_or_host else url_or_host
    host = bare_host(host)
    return any(host == domain or host.endswith(f".{domain}") for domain in domains)


def requires_bot_user_agent(url_or_host: str) -> bool:
    return _matches_domain_list(url_or_host, BOT_REQUIRED_DOMAINS)


def has_aggressive_antibot(url_or_host: str) -> bool:
    return _matches_domain_list(url_or_host, AGGRESSIVE_ANTIBOT_DOMAINS)


def is_bot_user_agent(user_agent: str) -> bool:
    return "bot" in user_agent.lower()


def user_agents_for(url: str) -> List[str]:
    """Ordered user agents to try for `url`; 403 advances to the next one."""
    if requires_bot_user_agent(url):
        return [GOOGLEBOT_UA, BINGBOT_UA, settings.SCRAPER_USER_AGENT]
    if has_aggressive_antibot(url):
        return list(FALLBACK_USER_AGENTS)
    agents = [settings.SCRAPER_USER_AGENT]
    for agent in FALLBACK_USER_AGENTS[:3]:
        if agent not in agents:
            agents.append(agent)
    return agents


def has_non_english_locale(url: str) -> bool:
    return bool(LOCALE_SEGMENT.search(urlparse(url).path))


def english_url_variants(url: str) -> List[str]:
    parsed = urlparse(url)
    if not LOCALE_SEGMENT.search(parsed.path):
        return []
    variants: List[str] = []
    for replacement in ENGLISH_LOCALE_REPLACEMENTS:
        path = LOCALE_SEGMENT.sub(replacement, parsed.path, count=1)
        variant = parsed._replace(path=path).geturl()
        if variant not in variants:
            variants.append(variant)
    return variants


def parse_retry_after(value: Optional[str], *, now: Optional[datetime] = None) -> float:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if not value:
        return RETRY_AFTER_DEFAULT
    value = value.strip()
    if value.isdigit():
        return min(float(value), RETRY_AFTER_CAP)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return RETRY_AFTER_DEFAULT
    if when is None:
        return RETRY_AFTER_DEFAULT
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    reference = now or datetime.now(timezone.utc)
    wait = (when - reference).total_seconds()
    return min(max(wait, 1.0), RETRY_AFTER_CAP)


def has_password_field(html: str) -> bool:
    return PASSWORD_FIELD.search(html) is not None


def looks_like_login_wall(text: str) -> bool:
    head = text[:LOGIN_SCAN_CHARS].lower()
    return has_password_field(head) or any(marker in head for marker in LOGIN_WALL_MARKERS)


def build_headers(user_agent: str, accept: str = DEFAULT_ACCEPT) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Upgrade-Insecure-Requests": "1",
    }


class PolicyFetcher:
    """HTTP fetcher with user-agent negotiation, retries and rate limiting."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        *,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        sleep: Optional[Sleeper] = None,
        jitter: Optional[Callable[[], float]] = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.SCRAPER_TIMEOUT,
            follow_redirects=True,
        )
        self.rate_limiter = rate_limiter or RateLimiter(settings.SCRAPER_MIN_REQUEST_INTERVAL)
        self.max_retries = settings.SCRAPER_MAX_RETRIES if max_retries is None else max(0, max_retries)
        self.timeout = timeout or settings.SCRAPER_TIMEOUT
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._jitter = jitter or (lambda: random.uniform(0.0, 0.5))

    async def request(
        self,
        method: str,
        url: str,
        *,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
        accept: str = DEFAULT_ACCEPT,
    ) -> httpx.Response:
        """
        Single rate-limited request. Status handling is left to the caller;
        transport errors propagate as httpx exceptions.
        """
        await self.rate_limiter.throttle(host_of(url) or url)
        return await self.client.request(
            method,
            url,
            headers=build_headers(user_agent or settings.SCRAPER_USER_AGENT, accept),
            timeout=timeout or self.timeout,
            follow_redirects=follow_redirects,
        )

    async def fetch(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        user_agents: Optional[Sequence[str]] = None,
        correct_locale: bool = True,
        accept: str = DEFAULT_ACCEPT,
    ) -> FetchResult:
        """
        Fetch `url`, negotiating user agents and retrying transient failures.

        Raises a FetchError subclass when the page cannot be retrieved.
        """
        if not is_valid_policy_url(url):
            logger.warning(f"Refusing to fetch authentication URL: {url}")
            raise InvalidTargetError(f"URL looks like an authentication page: {url}", url)

        agents = list(user_agents) if user_agents else user_agents_for(url)
        retries = self.max_retries if max_retries is None else max(0, max_retries)

        for index, agent in enumerate(agents):
            try:
                result = await self._fetch_with_retry(url, agent, timeout, retries, accept)
            except ForbiddenError:
                if index + 1 < len(agents):
                    logger.warning(f"403 for {url} with UA #{index + 1}, trying next user agent")
                    await self._sleep(0.5 + random.random() * 0.5)
                    continue
                logger.warning(f"403 for {url} with every user agent ({len(agents)} tried)")
                raise ForbiddenError(
                    f"Access forbidden (403) for {url} with {len(agents)} user agents",
                    url,
                ) from None

            if correct_locale and result.is_html and has_non_english_locale(result.final_url):
                result = await self._correct_locale(result, agent, timeout, retries, accept)

            if result.is_html and looks_like_login_wall(result.text):
                logger.warning(f"Page content looks like a login form: {result.final_url}")
                raise AuthWallError(f"Page requires authentication: {result.final_url}", url)

            logger.debug(f"Fetched {url} -> {result.final_url} with UA #{index + 1}")
            return result

        raise ForbiddenError(f"No user agent available for {url}", url)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _fetch_with_retry(
        self,
        url: str,
        user_agent: str,
        timeout: Optional[float],
        max_retries: int,
        accept: str,
    ) -> FetchResult:
        attempts = max_retries + 1
        host = host_of(url) or url

        for attempt in range(attempts):
            last_attempt = attempt + 1 >= attempts
            try:
                response = await self.request(
                    "GET",
                    url,
                    user_agent=user_agent,
                    timeout=timeout,
                    accept=accept,
                )
            except httpx.TransportError as exc:
                logger.debug(f"Attempt {attempt + 1}/{attempts} failed for {url}: {exc!r}")
                if last_attempt:
                    raise ConnectionFailedError(
                        f"Request to {url} failed after {attempts} attempts: {exc}", url
                    ) from exc
                await self._sleep(min(SERVER_ERROR_BACKOFF * 2**attempt, BACKOFF_CAP) + self._jitter())
                continue
            except REQUEST_ERRORS as exc:
                logger.warning(f"Request to {url} failed: {exc!r}")
                raise RequestFailedError(f"Request to {url} failed: {exc}", url) from exc

            final_url = str(response.url)
            if not is_valid_policy_url(final_url):
                raise AuthWallError(f"Redirected to authentication page: {final_url}", url)

            status = response.status_code
            if status == 429:
                retry_after = parse_retry_after(response.headers.get("retry-after"))
                backoff = min(retry_after * 2**attempt, BACKOFF_CAP)
                logger.warning(
                    f"Rate limited (429) on {url}, attempt {attempt + 1}/{attempts}, backing off {backoff:.1f}s"
                )
                if last_attempt:
                    raise RateLimitedError(f"Rate limited (429) after {attempts} attempts: {url}", url)
                # the next throttle() call for this host performs the wait
                await self.rate_limiter.defer(host, backoff + self._jitter())
                continue

            if status >= 500:
                logger.warning(f"Server error ({status}) on {url}, attempt {attempt + 1}/{attempts}")
                if last_attempt:
                    raise UpstreamServerError(
                        f"Server error ({status}) after {attempts} attempts: {url}",
                        url,
                        status_code=status,
                    )
                await self._sleep(min(SERVER_ERROR_BACKOFF * 2**attempt, BACKOFF_CAP) + self._jitter())
                continue

            if status == 403:
                raise ForbiddenError(f"Forbidden (403): {url}", url)

            if status >= 400:
                raise UnexpectedStatusError(f"HTTP {status} for {url}", url, status_code=status)

            return FetchResult(
                body=response.content,
                text=response.text,
                final_url=final_url,
                content_type=response.headers.get("content-type", "text/html"),
                status_code=status,
                user_agent=user_agent,
            )

        raise ConnectionFailedError(f"Failed to fetch {url} after {attempts} attempts", url)

    async def _correct_locale(
        self,
        result: FetchResult,
        user_agent: str,
        timeout: Optional[float],
        max_retries: int,
        accept: str,
    ) -> FetchResult:
        logger.info(f"Detected non-English locale redirect: {result.final_url}")
        for variant in english_url_variants(result.final_url):
            try:
                english = await self._fetch_with_retry(variant, user_agent, timeout, max_retries, accept)
            except Exception as exc:
                logger.debug(f"English variant {variant} failed: {exc}")
                continue
            if not has_non_english_locale(english.final_url):
                logger.info(f"Using English version {english.final_url} instead of {result.final_url}")
                return english

        logger.warning(f"No English version found, keeping localized page {result.final_url}")
        return FetchResult(
            body=result.body,
            text=result.text,
            final_url=result.final_url,
            content_type=result.content_type,
            status_code=result.status_code,
            user_agent=result.user_agent,
            localized=True,
        )
