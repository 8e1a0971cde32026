"""Shared fixtures and builders for the SybilScope test suite."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Sequence

import pytest

from sybilscope.config import get_settings
from sybilscope.features.extractor import WalletFeatureVector

# Fixed "now" so account ages are deterministic
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


def ms(moment: datetime) -> int:
    """Epoch milliseconds for an aware datetime."""
    return int(moment.timestamp() * 1000)


def make_tx(sender: str,
            recipient: Optional[str],
            when: datetime,
            value: float = 100.0,
            gas_price: float = 20.0,
            protocol: Optional[str] = None,
            token: Optional[str] = None) -> Dict:
    """A raw transaction dict in the data provider's wire format."""
    tx = {
        "timestamp": ms(when),
        "value": value,
        "gasPrice": gas_price,
        "from": sender,
        "to": recipient,
    }
    if protocol is not None:
        tx["protocol"] = protocol
    if token is not None:
        tx["token"] = token
    return tx


def make_wallet(address: str,
                transaction_count: int = 10,
                unique_protocols: int = 2,
                avg_value: float = 100.0,
                avg_gas_price: float = 20.0,
                age_days: float = 30.0,
                frequency: Optional[float] = None,
                gas_spent: Optional[float] = None,
                preferred_hours: Sequence[int] = (10, 11, 12),
                preferred_days: Sequence[int] = (1, 2),
                protocols: Optional[Dict[str, int]] = None,
                counterparties: Optional[Dict[str, int]] = None) -> WalletFeatureVector:
    """Build a feature vector directly, bypassing extraction."""
    first_seen = ms(NOW - timedelta(days=age_days))
    return WalletFeatureVector(
        address=address,
        transaction_count=transaction_count,
        unique_protocols=unique_protocols,
        avg_transaction_value=avg_value,
        avg_gas_price=avg_gas_price,
        first_seen=first_seen,
        last_seen=NOW_MS,
        account_age_days=age_days,
        transaction_frequency=frequency if frequency is not None else transaction_count / age_days,
        gas_spent=gas_spent if gas_spent is not None else avg_gas_price * 21000 * transaction_count,
        preferred_hours=tuple(preferred_hours),
        preferred_days=tuple(preferred_days),
        protocol_distribution=dict(protocols or {}),
        token_distribution={},
        counterparty_counts=dict(counterparties or {}),
    )


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
