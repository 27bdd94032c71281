"""
Plug point for an optional learned link-relevance signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from loguru import logger

MAX_SCORER_BONUS = 5


@dataclass(frozen=True)
class LinkFeatures:
    text: str
    href: str
    context: str
    base_url: str


@runtime_checkable
class LinkScorer(Protocol):
    def score(self, features: LinkFeatures) -> float:
        """Relevance of a link in [0, 1]."""
        ...


def scorer_bonus(scorer: Optional[LinkScorer], features: LinkFeatures) -> int:
    """Confidence bonus (0..5) from the configured scorer; 0 without one."""
    if scorer is None:
        return 0
    try:
        value = float(scorer.score(features))
    except Exception as exc:
        logger.warning(f"Link scorer failed for {features.href}: {exc!r}")
        return 0
    return round(MAX_SCORER_BONUS * max(0.0, min(1.0, value)))
