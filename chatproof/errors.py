# chatproof/errors.py
"""
Exception taxonomy for chatproof.

Only the API client and the low-level helpers raise these. The verification
orchestrator catches everything and reports it as a verification step.
"""

from typing import Optional, Sequence


class ChatProofError(Exception):
    """Base class for all chatproof errors."""


class CanonicalizationError(ChatProofError, ValueError):
    """Value cannot be encoded as canonical JSON (unsupported type, NaN, duplicate key)."""


class RecoveryError(ChatProofError):
    """Signature is malformed or does not recover to a valid public key."""


class MissingDataError(ChatProofError):
    """Proof is not yet verifiable: one or more required fields are absent."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__("Missing verification data: " + ", ".join(self.missing))


class APIError(ChatProofError):
    """Inference API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigError(ChatProofError):
    """Required configuration is missing or invalid."""
