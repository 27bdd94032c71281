from .deep_link_scanner import DeepLinkScanner
from .engine import PolicyDiscoveryEngine, rank_candidates
from .identifier import TargetIdentifier
from .validator import ContentValidator, ValidatorThresholds

__all__ = [
    "ContentValidator",
    "DeepLinkScanner",
    "PolicyDiscoveryEngine",
    "TargetIdentifier",
    "ValidatorThresholds",
    "rank_candidates",
]
