"""
HTML helpers: text extraction and link harvesting with page-landmark context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Set
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

# Common footer containers across site builders and CMS themes.
FOOTER_SELECTORS: tuple[str, ...] = (
    "footer",
    "#footer",
    ".footer",
    '[role="contentinfo"]',
    ".site-footer",
    "#site-footer",
    ".page-footer",
    "#page-footer",
    ".global-footer",
    ".main-footer",
    ".bottom-nav",
    ".footer-nav",
    ".footer-links",
    ".legal-links",
    ".legal-footer",
    ".footer-legal",
    ".footer-bottom",
    ".copyright",
    ".wp-block-template-part",
    ".elementor-location-footer",
)

NOISE_TAGS: tuple[str, ...] = ("script", "style", "noscript", "iframe", "svg", "template")
CHROME_TAGS: tuple[str, ...] = ("nav", "header")

_WHITESPACE = re.compile(r"[ \t\r\f\v\u00a0]+")
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


@dataclass(frozen=True)
class LinkRef:
    url: str
    href: str
    text: str
    context: str  # "footer", "nav" or "body"


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def extract_title(markup: str) -> str:
    match = _TITLE_RE.search(markup)
    if not match:
        return ""
    return _WHITESPACE.sub(" ", match.group(1)).strip()


def extract_text(markup: str, *, strip_chrome: bool = True) -> str:
    """
    Visible text of a page, one block per line.

    Scripts, styles and (by default) navigation/header chrome are dropped, so the
    result approximates the document body a reader would see.
    """
    soup = parse_html(markup)
    removable = NOISE_TAGS + CHROME_TAGS if strip_chrome else NOISE_TAGS
    for element in soup(list(removable)):
        element.decompose()

    root = soup.body or soup
    text = root.get_text("\n")
    lines = (_WHITESPACE.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def iter_links(soup: BeautifulSoup, base_url: str) -> List[LinkRef]:
    """All anchors with an href, resolved against `base_url` and tagged with their landmark."""
    footer_anchors: Set[int] = set()
    try:
        for container in soup.select(", ".join(FOOTER_SELECTORS)):
            for anchor in container.find_all("a", href=True):
                footer_anchors.add(id(anchor))
    except Exception:
        # soupsieve rejects some malformed documents; fall back to <footer> only
        for container in soup.find_all("footer"):
            for anchor in container.find_all("a", href=True):
                footer_anchors.add(id(anchor))

    links: List[LinkRef] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue

        full_url = urljoin(base_url, href)
        if urlparse(full_url).scheme not in ("http", "https"):
            continue

        if id(anchor) in footer_anchors:
            context = "footer"
        elif anchor.find_parent("nav") is not None or anchor.find_parent(attrs={"role": "navigation"}) is not None:
            context = "nav"
        else:
            context = "body"

        text = _WHITESPACE.sub(" ", anchor.get_text(" ", strip=True)).strip()
        links.append(LinkRef(url=full_url, href=href, text=text, context=context))

    return links


def host_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def bare_host(host: str) -> str:
    host = host.lower().strip(".")
    return host[4:] if host.startswith("www.") else host


def is_same_site(domain: str, url: str) -> bool:
    """True when `url` lives on `domain` or one of its subdomains (www-insensitive)."""
    target = bare_host(host_of(url))
    base = bare_host(domain)
    if not target or not base:
        return False
    return target == base or target.endswith(f".{base}")
