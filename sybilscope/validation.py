"""
Input validation layer for SybilScope.

Provides validation for the caller-supplied inputs of the analysis core:
- Wallet addresses (any chain; EVM addresses get a format check)
- Algorithm parameters such as the cluster count
"""

import re
from typing import Any, Optional

from .exceptions import InvalidParameterError, WalletAddressValidationError


class WalletAddressValidator:
    """Validates wallet addresses."""

    # Ethereum address pattern: 0x followed by 40 hexadecimal characters
    ETH_ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
    WHITESPACE_PATTERN = re.compile(r'\s')

    @classmethod
    def validate(cls, address: Any) -> str:
        """
        Validate and normalize a wallet address.

        Addresses from chains other than EVM are accepted as opaque
        identifiers; case is preserved because some encodings (base58)
        are case-sensitive.

        Args:
            address: Raw wallet address

        Returns:
            Address with surrounding whitespace removed

        Raises:
            WalletAddressValidationError: If address is empty or malformed
        """
        if not isinstance(address, str):
            raise WalletAddressValidationError(address, f"Wallet address must be string, got {type(address).__name__}")

        address = address.strip()

        if not address:
            raise WalletAddressValidationError(address, "Wallet address cannot be empty")

        if cls.WHITESPACE_PATTERN.search(address):
            raise WalletAddressValidationError(address, "Wallet address cannot contain whitespace")

        return address

    @classmethod
    def is_evm(cls, address: str) -> bool:
        """Check if address is in EVM (0x + 40 hex) format."""
        return bool(cls.ETH_ADDRESS_PATTERN.match(address))

    @classmethod
    def is_valid(cls, address: Any) -> bool:
        """Check if address is valid without raising exception."""
        try:
            cls.validate(address)
            return True
        except WalletAddressValidationError:
            return False


def normalize_address(address: str) -> str:
    """
    Canonical form of an address for use as a key.

    Hex (0x-prefixed) addresses are lowercased so checksummed and
    lowercase forms of the same EVM address collapse to one key. Other
    encodings are returned unchanged.
    """
    if address.startswith("0x"):
        return address.lower()
    return address


def same_address(a: str, b: str) -> bool:
    """Compare two addresses by their canonical forms."""
    return normalize_address(a) == normalize_address(b)


def validate_wallet_address(address: Any) -> str:
    """Convenience function for wallet address validation."""
    return WalletAddressValidator.validate(address)


def validate_cluster_count(k: Optional[int]) -> Optional[int]:
    """
    Validate an explicitly requested cluster count.

    None means "choose automatically" and is passed through.

    Raises:
        InvalidParameterError: If k is not a positive integer
    """
    if k is None:
        return None

    if isinstance(k, bool) or not isinstance(k, int):
        raise InvalidParameterError('k', k, "Cluster count must be an integer")

    if k <= 0:
        raise InvalidParameterError('k', k, "Cluster count must be positive")

    return k
