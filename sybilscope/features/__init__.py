"""
Feature extraction: raw transactions to behavioral profiles.
"""

from .extractor import (
    BatchExtraction,
    FeatureExtractor,
    WalletFeatureVector,
    extract_features,
)

__all__ = [
    "BatchExtraction",
    "FeatureExtractor",
    "WalletFeatureVector",
    "extract_features",
]
