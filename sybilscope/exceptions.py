"""
Specific exception classes for SybilScope.

Provides detailed error types for the failure modes of feature extraction,
clustering and input validation.
"""

from typing import Any, Dict, Optional


class SybilScopeError(Exception):
    """Base exception for all SybilScope errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# =============================================================================
# Detection Related Errors
# =============================================================================

class DetectionError(SybilScopeError):
    """Base class for analysis errors."""
    pass


class InsufficientDataError(DetectionError):
    """Not enough data to build a wallet profile."""

    def __init__(self, data_type: str, required_amount: Optional[str] = None,
                 available_amount: Optional[str] = None,
                 wallet_address: Optional[str] = None):
        self.data_type = data_type
        self.required_amount = required_amount
        self.available_amount = available_amount
        self.wallet_address = wallet_address

        details = {'data_type': data_type}
        if required_amount:
            details['required_amount'] = required_amount
        if available_amount is not None:
            details['available_amount'] = available_amount
        if wallet_address:
            details['wallet_address'] = wallet_address

        message = f"Insufficient {data_type} for analysis"
        super().__init__(message, details)


class ClusteringCancelledError(DetectionError):
    """Clustering was stopped before convergence."""

    def __init__(self, iterations: int, reason: str = "cancelled"):
        self.iterations = iterations
        self.reason = reason

        message = f"Clustering {reason} after {iterations} iterations"
        super().__init__(message, {'iterations': iterations, 'reason': reason})


# =============================================================================
# Configuration Related Errors
# =============================================================================

class ConfigurationError(SybilScopeError):
    """Base class for configuration-related errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, config_key: str, config_value: Any,
                 expected_format: Optional[str] = None):
        self.config_key = config_key
        self.config_value = config_value
        self.expected_format = expected_format

        message = f"Invalid configuration value for '{config_key}': {config_value}"
        if expected_format:
            message += f" (expected format: {expected_format})"

        details = {
            'config_key': config_key,
            'config_value': config_value
        }
        if expected_format:
            details['expected_format'] = expected_format

        super().__init__(message, details)


# =============================================================================
# Validation Related Errors
# =============================================================================

class ValidationError(SybilScopeError):
    """Input validation failed."""

    def __init__(self, field_name: str, field_value: Any, reason: str):
        self.field_name = field_name
        self.field_value = field_value
        self.reason = reason

        message = f"Validation failed for '{field_name}': {reason}"
        details = {
            'field_name': field_name,
            'field_value': field_value,
            'reason': reason
        }

        super().__init__(message, details)


class InvalidParameterError(ValidationError):
    """A caller-supplied algorithm parameter is out of range."""
    pass


class WalletAddressValidationError(ValidationError):
    """Wallet address validation failed."""

    def __init__(self, address: Any, reason: str = "Invalid format"):
        super().__init__('wallet_address', address, reason)


class TransactionValidationError(ValidationError):
    """A raw transaction record could not be parsed."""

    def __init__(self, index: int, reason: str, wallet_address: Optional[str] = None):
        self.index = index
        self.wallet_address = wallet_address
        super().__init__(f'transactions[{index}]', wallet_address, reason)
