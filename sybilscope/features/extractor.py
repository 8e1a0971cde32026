"""
Wallet feature extraction.

Turns a wallet's raw transaction list into a fixed-shape behavioral profile
(WalletFeatureVector) that the clustering, similarity, sybil and graph
components all consume.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
from pydantic import ValidationError as PydanticValidationError

from ..config import FeatureSettings, get_settings
from ..exceptions import (
    InsufficientDataError,
    TransactionValidationError,
    WalletAddressValidationError,
)
from ..schemas import TransactionRecord
from ..secure_logging import get_secure_logger
from ..validation import normalize_address, same_address, validate_wallet_address

logger = get_secure_logger(__name__)

MS_PER_DAY = 24 * 3600 * 1000

TransactionInput = Union[TransactionRecord, Mapping[str, Any]]


@dataclass(frozen=True)
class WalletFeatureVector:
    """
    Behavioral profile of one wallet over its transaction history.

    Attributes:
        address: Wallet address in canonical form (0x addresses lowercased)
        transaction_count: Number of transactions (always > 0)
        unique_protocols: Distinct protocols interacted with
        avg_transaction_value: Mean transferred value
        avg_gas_price: Mean gas price
        first_seen / last_seen: Earliest and latest timestamps (epoch ms)
        account_age_days: Days since first activity, floored at 1
        transaction_frequency: Transactions per day of account age
        gas_spent: Estimated cumulative gas cost
        preferred_hours: Most frequent UTC hours of activity, mode order
        preferred_days: Most frequent weekdays (0 = Sunday), mode order
        protocol_distribution: Protocol -> transaction count
        token_distribution: Token symbol -> transaction count
        counterparty_counts: Canonical counterparty address -> transaction count
    """
    address: str
    transaction_count: int
    unique_protocols: int
    avg_transaction_value: float
    avg_gas_price: float
    first_seen: int
    last_seen: int
    account_age_days: float
    transaction_frequency: float
    gas_spent: float
    preferred_hours: Tuple[int, ...] = ()
    preferred_days: Tuple[int, ...] = ()
    protocol_distribution: Dict[str, int] = field(default_factory=dict)
    token_distribution: Dict[str, int] = field(default_factory=dict)
    counterparty_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def counterparties(self) -> frozenset:
        """Set of addresses this wallet transacted with."""
        return frozenset(self.counterparty_counts)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return {
            'address': self.address,
            'transaction_count': self.transaction_count,
            'unique_protocols': self.unique_protocols,
            'avg_transaction_value': self.avg_transaction_value,
            'avg_gas_price': self.avg_gas_price,
            'first_seen': self.first_seen,
            'last_seen': self.last_seen,
            'account_age_days': self.account_age_days,
            'transaction_frequency': self.transaction_frequency,
            'gas_spent': self.gas_spent,
            'preferred_hours': list(self.preferred_hours),
            'preferred_days': list(self.preferred_days),
            'protocol_distribution': dict(self.protocol_distribution),
            'token_distribution': dict(self.token_distribution),
            'counterparties': sorted(self.counterparty_counts),
        }


@dataclass
class BatchExtraction:
    """Result of extracting features for many wallets at once."""

    features: List[WalletFeatureVector] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)  # address -> reason

    @property
    def addresses(self) -> List[str]:
        return [f.address for f in self.features]


def top_modes(values: Iterable[int], top_n: int) -> Tuple[int, ...]:
    """
    Most frequent values, highest count first.

    Counter.most_common keeps first-encountered order among equal counts,
    which gives the tie-breaking we want.
    """
    return tuple(value for value, _ in Counter(values).most_common(top_n))


class FeatureExtractor:
    """Builds WalletFeatureVectors from raw transaction lists."""

    def __init__(self, settings: Optional[FeatureSettings] = None):
        self.settings = settings or get_settings().features

    def extract(self,
                address: str,
                transactions: List[TransactionInput],
                reference_time_ms: Optional[int] = None) -> WalletFeatureVector:
        """
        Extract a feature vector for a single wallet.

        Args:
            address: Wallet being profiled
            transactions: The wallet's transactions, in any order
            reference_time_ms: "Now" for the age calculation (defaults to the current time)

        Returns:
            WalletFeatureVector for the wallet

        Raises:
            InsufficientDataError: If the transaction list is empty
            TransactionValidationError: If a record cannot be parsed
        """
        address = normalize_address(validate_wallet_address(address))

        if not transactions:
            raise InsufficientDataError(
                "transaction_data",
                "at least 1 transaction",
                "0",
                wallet_address=address
            )

        records = self._parse_records(address, transactions)
        now_ms = reference_time_ms if reference_time_ms is not None else int(time.time() * 1000)

        tx_count = len(records)
        values = np.array([r.value for r in records], dtype=float)
        gas_prices = np.array([r.gas_price for r in records], dtype=float)
        timestamps = [r.timestamp for r in records]

        first_seen = min(timestamps)
        last_seen = max(timestamps)
        age_days = max((now_ms - first_seen) / MS_PER_DAY, self.settings.min_account_age_days)

        moments = [r.executed_at for r in records]
        preferred_hours = top_modes((m.hour for m in moments), self.settings.preferred_hours_count)
        preferred_days = top_modes((m.isoweekday() % 7 for m in moments), self.settings.preferred_days_count)

        protocol_dist = Counter(r.protocol for r in records if r.protocol)
        token_dist = Counter(r.token for r in records if r.token)

        counterparty_counts: Counter = Counter()
        for record in records:
            counterparty = self._counterparty(address, record)
            if counterparty is not None:
                counterparty_counts[counterparty] += 1

        features = WalletFeatureVector(
            address=address,
            transaction_count=tx_count,
            unique_protocols=len(protocol_dist),
            avg_transaction_value=float(values.mean()),
            avg_gas_price=float(gas_prices.mean()),
            first_seen=first_seen,
            last_seen=last_seen,
            account_age_days=age_days,
            transaction_frequency=tx_count / age_days,
            gas_spent=float(gas_prices.sum() * self.settings.gas_units_per_transaction),
            preferred_hours=preferred_hours,
            preferred_days=preferred_days,
            protocol_distribution=dict(protocol_dist),
            token_distribution=dict(token_dist),
            counterparty_counts=dict(counterparty_counts),
        )

        logger.debug("wallet_features_extracted",
                     wallet=address,
                     transactions=tx_count,
                     protocols=features.unique_protocols,
                     counterparties=len(counterparty_counts),
                     frequency=round(features.transaction_frequency, 4))

        return features

    def extract_batch(self,
                      transactions_by_address: Mapping[str, List[TransactionInput]],
                      reference_time_ms: Optional[int] = None) -> BatchExtraction:
        """
        Extract features for many wallets.

        Wallets that fail extraction are skipped and reported in
        `failures` rather than aborting the batch.
        """
        result = BatchExtraction()

        for address, transactions in transactions_by_address.items():
            try:
                result.features.append(
                    self.extract(address, transactions, reference_time_ms)
                )
            except (InsufficientDataError, TransactionValidationError,
                    WalletAddressValidationError) as e:
                logger.warning("wallet_extraction_failed",
                               wallet=str(address),
                               error=e.message)
                result.failures[str(address)] = str(e)

        logger.info("batch_extraction_completed",
                    extracted=len(result.features),
                    failed=len(result.failures))

        return result

    def _parse_records(self, address: str,
                       transactions: List[TransactionInput]) -> List[TransactionRecord]:
        records = []
        for index, tx in enumerate(transactions):
            if isinstance(tx, TransactionRecord):
                records.append(tx)
                continue
            try:
                records.append(TransactionRecord.model_validate(tx))
            except PydanticValidationError as e:
                raise TransactionValidationError(index, str(e), wallet_address=address) from e
            except WalletAddressValidationError as e:
                raise TransactionValidationError(index, e.reason, wallet_address=address) from e
        return records

    @staticmethod
    def _counterparty(address: str, record: TransactionRecord) -> Optional[str]:
        """The side of the transaction that is not the wallet itself."""
        if same_address(record.from_address, address):
            other = record.to_address
        else:
            other = record.from_address

        if other is None or same_address(other, address):
            return None
        return normalize_address(other)


def extract_features(address: str,
                     transactions: List[TransactionInput],
                     reference_time_ms: Optional[int] = None) -> WalletFeatureVector:
    """Convenience wrapper using the configured feature settings."""
    return FeatureExtractor().extract(address, transactions, reference_time_ms)
