"""
PPRL Unified Error Taxonomy.

This module provides a centralized error hierarchy for all PPRL components.
All errors include:
- Machine-readable error codes
- Structured details (never plaintext Q-values or key material)

Error Code Naming Convention:
- PPRL_<COMPONENT>_<SPECIFIC>
- Components: CODEC, TRANSPORT, HE, TABLE, CONFIG

None of these errors are retried internally. Transport and scheme failures
are fatal for the Update/Select call that raised them.
"""

from typing import Any, Dict, Optional


class PPRLError(Exception):
    """Base exception for all PPRL errors.

    All PPRL errors include:
    - code: Machine-readable error code (e.g., PPRL_HE_PARAM_MISMATCH)
    - message: Human-readable description
    - details: Structured metadata (NEVER include sensitive data)
    """

    def __init__(
        self,
        message: str,
        code: str = "PPRL_INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Codec Errors (PPRL_CODEC_*)
# =============================================================================


class EncodingRangeError(PPRLError, ValueError):
    """Raised when a fixed-point value falls outside the mappable range."""

    def __init__(self, value: int, lower: int, upper: int):
        super().__init__(
            message=f"Value {value} outside encodable range [{lower}, {upper})",
            code="PPRL_CODEC_RANGE",
            details={"lower": lower, "upper": upper},
        )


# =============================================================================
# Transport Errors (PPRL_TRANSPORT_*)
# =============================================================================


class TransportError(PPRLError):
    """Raised when sealing or opening a chunked ciphertext fails.

    RSA failures are not transient, so callers should not retry.
    """

    def __init__(
        self,
        reason: str,
        chunk_index: Optional[int] = None,
        code: str = "PPRL_TRANSPORT_FAILED",
    ):
        details = {}
        if chunk_index is not None:
            details["chunk_index"] = chunk_index
        super().__init__(
            message=f"Transport failed: {reason}",
            code=code,
            details=details,
        )


# =============================================================================
# Homomorphic Encryption Errors (PPRL_HE_*)
# =============================================================================


class SchemeError(PPRLError):
    """Base class for homomorphic scheme errors."""

    def __init__(self, reason: str, code: str = "PPRL_HE_FAILED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"HE operation failed: {reason}", code=code, details=details)


class SchemeParameterMismatchError(SchemeError):
    """Raised when ciphertexts from different parameter sets or sizes meet."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            reason="parameter mismatch between ciphertext operands",
            code="PPRL_HE_PARAM_MISMATCH",
            details={
                "expected": expected[:24],
                "actual": actual[:24],
            },
        )


class SchemeSerializationError(SchemeError):
    """Raised when ciphertext bytes are malformed or belong to another context."""

    def __init__(self, reason: str):
        super().__init__(reason=reason, code="PPRL_HE_SERIALIZATION")


class RelinearizationRequiredError(SchemeError):
    """Raised when a product ciphertext is multiplied again before relinearization."""

    def __init__(self):
        super().__init__(
            reason="operand of multiply must be relinearized first",
            code="PPRL_HE_RELIN_REQUIRED",
        )


class NoiseBudgetExhaustedError(SchemeError):
    """Raised when a ciphertext can no longer be decrypted correctly."""

    def __init__(self, remaining_bits: float):
        super().__init__(
            reason="noise budget exhausted",
            code="PPRL_HE_NOISE_EXHAUSTED",
            details={"remaining_bits": remaining_bits},
        )


class ToyModeNotEnabledError(SchemeError):
    """Raised when the toy HE backend is used without explicit opt-in."""

    def __init__(self):
        super().__init__(
            reason=(
                "ToyBFVScheme is not cryptographically secure and requires explicit opt-in. "
                "Set PPRL_TOY_HE=1 for development/testing only."
            ),
            code="PPRL_HE_TOY_MODE_DISABLED",
        )


# =============================================================================
# Table / Configuration Errors
# =============================================================================


class ConfidentialityWaiverError(PPRLError):
    """Raised when the encrypted table is dumped without an explicit waiver."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"'{operation}' reveals plaintext Q-values; pass confidentiality_waiver=True",
            code="PPRL_TABLE_WAIVER_REQUIRED",
            details={"operation": operation},
        )


class ConfigurationError(PPRLError):
    """Raised when the system is misconfigured."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=reason, code="PPRL_CONFIG_INVALID", details=details)


__all__ = [
    "PPRLError",
    "EncodingRangeError",
    "TransportError",
    "SchemeError",
    "SchemeParameterMismatchError",
    "SchemeSerializationError",
    "RelinearizationRequiredError",
    "NoiseBudgetExhaustedError",
    "ToyModeNotEnabledError",
    "ConfidentialityWaiverError",
    "ConfigurationError",
]
