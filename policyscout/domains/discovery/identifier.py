"""
Turns free-form user input (URL, hostname or company name) into a clean domain.
"""

from __future__ import annotations

import asyncio
import re
import socket
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import quote_plus

from loguru import logger

from policyscout.core.config import settings
from policyscout.core.exceptions import TargetResolutionError
from policyscout.domains.discovery.strategies.search_fallback import DUCKDUCKGO_URL, parse_duckduckgo_results
from policyscout.models.discovery import TargetIdentity
from policyscout.scrapers.fetcher import REQUEST_ERRORS, PolicyFetcher
from policyscout.scrapers.html import bare_host, host_of

DnsResolver = Callable[[str], Awaitable[bool]]

_HOSTNAME = re.compile(r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")

# Well-known services, resolved without any network traffic.
KNOWN_COMPANIES: Dict[str, str] = {
    "google": "google.com",
    "youtube": "youtube.com",
    "facebook": "facebook.com",
    "meta": "meta.com",
    "instagram": "instagram.com",
    "twitter": "twitter.com",
    "x": "x.com",
    "amazon": "amazon.com",
    "apple": "apple.com",
    "microsoft": "microsoft.com",
    "netflix": "netflix.com",
    "spotify": "spotify.com",
    "tiktok": "tiktok.com",
    "reddit": "reddit.com",
    "linkedin": "linkedin.com",
    "discord": "discord.com",
    "twitch": "twitch.tv",
    "snapchat": "snapchat.com",
    "pinterest": "pinterest.com",
    "whatsapp": "whatsapp.com",
    "telegram": "telegram.org",
    "slack": "slack.com",
    "zoom": "zoom.us",
    "dropbox": "dropbox.com",
    "github": "github.com",
    "gitlab": "gitlab.com",
    "notion": "notion.so",
    "figma": "figma.com",
    "canva": "canva.com",
    "adobe": "adobe.com",
    "paypal": "paypal.com",
    "stripe": "stripe.com",
    "shopify": "shopify.com",
    "ebay": "ebay.com",
    "airbnb": "airbnb.com",
    "uber": "uber.com",
    "lyft": "lyft.com",
    "doordash": "doordash.com",
    "openai": "openai.com",
    "chatgpt": "openai.com",
    "anthropic": "anthropic.com",
    "hulu": "hulu.com",
    "disney": "disney.com",
    "disney+": "disneyplus.com",
    "disneyplus": "disneyplus.com",
    "hbomax": "max.com",
    "max": "max.com",
    "steam": "steampowered.com",
    "epicgames": "epicgames.com",
    "playstation": "playstation.com",
    "xbox": "xbox.com",
    "nintendo": "nintendo.com",
    "roblox": "roblox.com",
    "minecraft": "minecraft.net",
    "walmart": "walmart.com",
    "target": "target.com",
    "costco": "costco.com",
    "bestbuy": "bestbuy.com",
    "ikea": "ikea.com",
    "nike": "nike.com",
    "samsung": "samsung.com",
    "sony": "sony.com",
    "dell": "dell.com",
    "lenovo": "lenovo.com",
    "nvidia": "nvidia.com",
    "tesla": "tesla.com",
    "visa": "visa.com",
    "mastercard": "mastercard.com",
    "amex": "americanexpress.com",
    "chase": "chase.com",
    "coinbase": "coinbase.com",
    "robinhood": "robinhood.com",
    "venmo": "venmo.com",
    "cashapp": "cash.app",
}


async def resolves_in_dns(domain: str) -> bool:
    loop = asyncio.get_running_loop()
    try:
        addresses = await loop.getaddrinfo(domain, None, type=socket.SOCK_STREAM)
    except (socket.gaierror, OSError):
        return False
    return bool(addresses)


def parse_domain(raw: str) -> Optional[str]:
    """Host of a URL or dotted hostname, lower-cased and without ``www.``; None otherwise."""
    value = raw.strip().lower()
    if "://" in value:
        host = host_of(value)
    elif "." in value and " " not in value:
        host = host_of(f"https://{value}")
    else:
        return None
    host = bare_host(host)
    return host if _HOSTNAME.match(host) else None


def guess_domain(name: str) -> str:
    return f"{re.sub(r'[^a-z0-9]', '', name.lower())}.com"


class TargetIdentifier:
    def __init__(
        self,
        fetcher: PolicyFetcher,
        *,
        verify_dns: Optional[bool] = None,
        dns_resolver: Optional[DnsResolver] = None,
    ) -> None:
        self.fetcher = fetcher
        self.verify_dns = settings.DISCOVERY_VERIFY_DNS if verify_dns is None else verify_dns
        self._resolve: DnsResolver = dns_resolver or resolves_in_dns

    async def identify(self, raw_input: str) -> TargetIdentity:
        text = (raw_input or "").strip()
        if not text:
            raise TargetResolutionError("Please enter a company name or URL")

        identity = await self._resolve_identity(text)
        if self.verify_dns and not await self._resolve(identity.clean_domain):
            raise TargetResolutionError(f"Domain {identity.clean_domain} does not resolve")

        logger.info(f"Identified {text!r} as {identity.clean_domain} via {identity.resolved_via}")
        return identity

    async def _resolve_identity(self, text: str) -> TargetIdentity:
        domain = parse_domain(text)
        if domain:
            via = "url" if "://" in text else "domain"
            return TargetIdentity(original_input=text, clean_domain=domain, resolved_via=via)
        if "://" in text or ("." in text and " " not in text):
            raise TargetResolutionError(f"Invalid URL or domain: {text}")

        normalized = re.sub(r"\s+", "", text.lower())
        if normalized in KNOWN_COMPANIES:
            return TargetIdentity(
                original_input=text,
                clean_domain=KNOWN_COMPANIES[normalized],
                resolved_via="known_company",
            )

        searched = await self._search(text)
        if searched:
            return TargetIdentity(original_input=text, clean_domain=searched, resolved_via="search")

        guessed = guess_domain(text)
        if guessed == ".com":
            raise TargetResolutionError(f"Cannot derive a domain from {text!r}")
        logger.info(f"Guessing domain for {text!r}: {guessed}")
        return TargetIdentity(original_input=text, clean_domain=guessed, resolved_via="guess")

    async def _search(self, name: str) -> Optional[str]:
        url = DUCKDUCKGO_URL.format(query=quote_plus(name))
        try:
            response = await self.fetcher.request("GET", url, timeout=settings.SCRAPER_TIMEOUT)
        except REQUEST_ERRORS as exc:
            logger.warning(f"Search resolution failed for {name!r}: {exc!r}")
            return None
        if response.status_code != 200:
            return None

        for result in parse_duckduckgo_results(response.text):
            domain = parse_domain(result)
            if domain and "duckduckgo" not in domain:
                return domain
        return None
