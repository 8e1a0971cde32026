"""
Pydantic schemas for validating transaction records.

Transaction lists come from an external data provider. Every record is
validated through these schemas before feature extraction so malformed
provider data fails loudly instead of skewing averages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validation import validate_wallet_address


class TransactionRecord(BaseModel):
    """
    A single on-chain transaction as supplied by the data provider.

    Accepts the provider's camelCase keys (`gasPrice`, `from`, `to`) as well
    as the Python field names.
    """

    timestamp: int = Field(..., ge=0, description="Unix epoch milliseconds")
    value: float = Field(..., ge=0, description="Transferred value")
    gas_price: float = Field(..., ge=0, alias="gasPrice", description="Gas price paid")
    from_address: str = Field(..., alias="from", description="Sender address")
    to_address: Optional[str] = Field(None, alias="to", description="Recipient (None for contract creation)")
    protocol: Optional[str] = Field(None, description="Protocol label, if known")
    token: Optional[str] = Field(None, description="Token symbol, if known")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore"
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_datetime(cls, v):
        if isinstance(v, datetime):
            if v.tzinfo is None:
                v = v.replace(tzinfo=timezone.utc)
            return int(v.timestamp() * 1000)
        return v

    @field_validator("from_address")
    @classmethod
    def validate_sender(cls, v):
        return validate_wallet_address(v)

    @field_validator("to_address", mode="before")
    @classmethod
    def validate_recipient(cls, v):
        if v is None or v == "":
            return None
        return validate_wallet_address(v)

    @field_validator("protocol", "token", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def executed_at(self) -> datetime:
        """Timestamp as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)
