"""
Sybil detection and behavior classification.
"""

from .behavior import (
    BEHAVIOR_RULES,
    BehaviorClassification,
    BehaviorClassifier,
    BehaviorPattern,
    BehaviorRule,
    classify_behavior,
)
from .sybil import (
    AttackPattern,
    SybilAnalysis,
    SybilDetector,
    detect_sybil,
)

__all__ = [
    "BEHAVIOR_RULES",
    "BehaviorClassification",
    "BehaviorClassifier",
    "BehaviorPattern",
    "BehaviorRule",
    "classify_behavior",
    "AttackPattern",
    "SybilAnalysis",
    "SybilDetector",
    "detect_sybil",
]
