"""
Rule-based behavior classification of a single wallet.

Rules are evaluated in order and the first match wins. The order is part
of the contract: a high-frequency wallet with large transfers is a trader
even if its average value would also qualify it as a whale.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple

from ..features.extractor import WalletFeatureVector
from ..secure_logging import get_secure_logger

logger = get_secure_logger(__name__)


class BehaviorPattern(str, Enum):
    """Behavioral archetypes a wallet can be classified as."""
    FARMER = "farmer"
    TRADER = "trader"
    BOT = "bot"
    WHALE = "whale"
    HOLDER = "holder"
    NEW_USER = "new_user"


@dataclass(frozen=True)
class BehaviorRule:
    """One entry of the ordered decision list."""
    pattern: BehaviorPattern
    predicate: Callable[[WalletFeatureVector], bool]
    confidence: int
    characteristics: Tuple[str, ...]


@dataclass(frozen=True)
class BehaviorClassification:
    """Result of classifying one wallet."""
    pattern: BehaviorPattern
    confidence: int
    characteristics: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pattern': self.pattern.value,
            'confidence': self.confidence,
            'characteristics': list(self.characteristics),
        }


def _has_regular_timing(wallet: WalletFeatureVector) -> bool:
    # Narrow activity window at high frequency looks scheduled
    return len(wallet.preferred_hours) <= 2 and wallet.transaction_frequency > 5


BEHAVIOR_RULES: Tuple[BehaviorRule, ...] = (
    BehaviorRule(
        BehaviorPattern.FARMER,
        lambda w: (w.unique_protocols > 15
                   and w.avg_transaction_value < 500
                   and w.transaction_frequency > 1),
        80,
        ("High protocol diversity", "Small transaction sizes", "High activity frequency"),
    ),
    BehaviorRule(
        BehaviorPattern.TRADER,
        lambda w: w.transaction_frequency > 5 and w.avg_transaction_value > 1000,
        75,
        ("Very high activity", "Significant transaction values"),
    ),
    BehaviorRule(
        BehaviorPattern.BOT,
        _has_regular_timing,
        85,
        ("Regular timing pattern", "Automated behavior"),
    ),
    BehaviorRule(
        BehaviorPattern.WHALE,
        lambda w: w.avg_transaction_value > 100_000,
        90,
        ("Very large transaction values", "Significant capital"),
    ),
    BehaviorRule(
        BehaviorPattern.HOLDER,
        lambda w: w.transaction_frequency < 0.1 and w.account_age_days > 365,
        70,
        ("Low activity frequency", "Long-term holder"),
    ),
    BehaviorRule(
        BehaviorPattern.NEW_USER,
        lambda w: w.account_age_days < 30,
        80,
        ("Recent account",),
    ),
)

DEFAULT_CLASSIFICATION = (BehaviorPattern.NEW_USER, 50)


class BehaviorClassifier:
    """Applies an ordered rule list; the first matching rule decides."""

    def __init__(self, rules: Tuple[BehaviorRule, ...] = BEHAVIOR_RULES):
        self.rules = rules

    def classify(self, wallet: WalletFeatureVector) -> BehaviorClassification:
        for rule in self.rules:
            if rule.predicate(wallet):
                logger.debug("wallet_classified",
                             wallet=wallet.address,
                             pattern=rule.pattern.value)
                return BehaviorClassification(
                    pattern=rule.pattern,
                    confidence=rule.confidence,
                    characteristics=list(rule.characteristics),
                )

        pattern, confidence = DEFAULT_CLASSIFICATION
        return BehaviorClassification(pattern=pattern, confidence=confidence)


def classify_behavior(wallet: WalletFeatureVector) -> BehaviorClassification:
    """Classify with the default rule list."""
    return BehaviorClassifier().classify(wallet)
