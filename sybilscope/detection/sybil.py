"""
Sybil detection: is this wallet one of many controlled by the same actor?

A target wallet is compared against a population. Wallets whose raw
behavioral vectors point in almost the same direction are treated as
related, and each related wallet is checked for corroborating evidence
(shared activity hours, shared counterparties, matching funding sizes).
Every piece of evidence adds to a risk score.

Individually, high similarity has false positives (two ordinary users of
the same dApp look alike). Similarity plus corroborating evidence is what
pushes a wallet over the sybil threshold.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import SybilSettings, get_settings
from ..features.extractor import WalletFeatureVector
from ..secure_logging import get_secure_logger
from ..validation import normalize_address, same_address, validate_wallet_address
from ..clustering.similarity import wallet_similarity

logger = get_secure_logger(__name__)


class AttackPattern(str, Enum):
    """Kinds of coordinated-wallet activity."""
    AIRDROP_FARMING = "airdrop_farming"
    MONEY_LAUNDERING = "money_laundering"
    WASH_TRADING = "wash_trading"
    BOT_NETWORK = "bot_network"
    LEGITIMATE = "legitimate"


@dataclass(frozen=True)
class SybilAnalysis:
    """
    Sybil report for one target wallet.

    Attributes:
        target_address: Wallet that was analysed
        is_sybil: True when risk_score exceeds the sybil threshold
        confidence: risk_score clamped to 0-100
        related_wallets: Most similar related wallets, highest first
        evidence: Human-readable corroborating findings
        risk_score: Raw additive score (unbounded)
        pattern: Suspected attack pattern
        similarities: Similarity of each reported related wallet
    """
    target_address: str
    is_sybil: bool = False
    confidence: int = 0
    related_wallets: List[str] = field(default_factory=list)
    evidence: List[str] = field(default_factory=list)
    risk_score: int = 0
    pattern: AttackPattern = AttackPattern.LEGITIMATE
    similarities: Dict[str, float] = field(default_factory=dict)

    def summary(self) -> str:
        """Brief summary for logging."""
        return (
            f"Wallet {self.target_address[:10]}... | "
            f"Sybil: {'yes' if self.is_sybil else 'no'} | "
            f"Confidence: {self.confidence}/100 | "
            f"Related: {len(self.related_wallets)} | "
            f"Pattern: {self.pattern.value}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_address': self.target_address,
            'is_sybil': self.is_sybil,
            'confidence': self.confidence,
            'related_wallets': list(self.related_wallets),
            'evidence': list(self.evidence),
            'risk_score': self.risk_score,
            'pattern': self.pattern.value,
            'similarities': dict(self.similarities),
        }


class SybilDetector:
    """
    Pairwise sybil detector.

    Usage:
        detector = SybilDetector()
        analysis = detector.analyze(target_features, population_features)
        if analysis.is_sybil:
            ...
    """

    def __init__(self, settings: Optional[SybilSettings] = None):
        self.settings = settings or get_settings().sybil

    def analyze(self,
                target: WalletFeatureVector,
                population: Sequence[WalletFeatureVector]) -> SybilAnalysis:
        """
        Compare `target` against every other wallet in `population`.

        Wallets sharing the target's address are skipped, so the target may
        be included in the population.
        """
        related: List[Tuple[str, float]] = []
        evidence: List[str] = []
        score = 0

        for wallet in population:
            if same_address(wallet.address, target.address):
                continue

            similarity = wallet_similarity(target, wallet)
            if similarity <= self.settings.similarity_threshold:
                continue

            related.append((wallet.address, similarity))
            score += self.settings.weight_similar_wallet
            short = wallet.address[:10]

            if self.has_temporal_correlation(target, wallet):
                evidence.append(f"Similar activity timing with {short}...")
                score += self.settings.weight_temporal_correlation

            if self.has_common_counterparties(target, wallet):
                evidence.append(f"Common transaction partners with {short}...")
                score += self.settings.weight_common_counterparties

            if self.has_similar_funding(target, wallet):
                evidence.append(f"Similar funding pattern with {short}...")
                score += self.settings.weight_similar_funding

        # Stable sort keeps population order among equal similarities
        related.sort(key=lambda pair: pair[1], reverse=True)
        top_related = related[:self.settings.max_related_wallets]

        pattern = AttackPattern.LEGITIMATE
        if score > self.settings.pattern_score_threshold:
            pattern = self.identify_pattern(target, len(related))

        analysis = SybilAnalysis(
            target_address=target.address,
            is_sybil=score > self.settings.sybil_score_threshold,
            confidence=min(score, 100),
            related_wallets=[address for address, _ in top_related],
            evidence=evidence,
            risk_score=score,
            pattern=pattern,
            similarities={address: similarity for address, similarity in top_related},
        )

        log = logger.warning if analysis.is_sybil else logger.info
        log("sybil_analysis_complete",
            target=target.address,
            related=len(related),
            risk_score=score,
            is_sybil=analysis.is_sybil,
            pattern=pattern.value)

        return analysis

    def analyze_address(self,
                        target_address: str,
                        population: Sequence[WalletFeatureVector]) -> SybilAnalysis:
        """
        Look the target up inside `population` and analyse it.

        An address missing from the population yields an empty,
        legitimate analysis.
        """
        target_address = validate_wallet_address(target_address)
        target = next(
            (w for w in population if same_address(w.address, target_address)),
            None
        )

        if target is None:
            logger.info("sybil_target_not_in_population", target=target_address)
            return SybilAnalysis(target_address=target_address)

        return self.analyze(target, population)

    def has_temporal_correlation(self, w1: WalletFeatureVector, w2: WalletFeatureVector) -> bool:
        """Wallets share enough preferred hours of activity."""
        shared = set(w1.preferred_hours) & set(w2.preferred_hours)
        return len(shared) >= self.settings.min_shared_hours

    def has_common_counterparties(self, w1: WalletFeatureVector, w2: WalletFeatureVector) -> bool:
        """Wallets transact with enough of the same addresses."""
        common = ({normalize_address(a) for a in w1.counterparties}
                  & {normalize_address(a) for a in w2.counterparties})
        return len(common) >= self.settings.min_common_counterparties

    def has_similar_funding(self, target: WalletFeatureVector, other: WalletFeatureVector) -> bool:
        """Average values differ by less than the tolerance, relative to the target."""
        difference = abs(target.avg_transaction_value - other.avg_transaction_value)
        return difference < target.avg_transaction_value * self.settings.funding_tolerance_pct

    def identify_pattern(self, target: WalletFeatureVector, related_count: int) -> AttackPattern:
        """Guess what the wallet network is being used for."""
        if (target.unique_protocols > self.settings.airdrop_min_protocols
                and related_count > self.settings.airdrop_min_related):
            return AttackPattern.AIRDROP_FARMING
        if target.transaction_frequency > self.settings.bot_min_frequency:
            return AttackPattern.BOT_NETWORK
        return AttackPattern.WASH_TRADING


def detect_sybil(target: WalletFeatureVector,
                 population: Sequence[WalletFeatureVector]) -> SybilAnalysis:
    """Convenience wrapper using the configured sybil settings."""
    return SybilDetector().analyze(target, population)
