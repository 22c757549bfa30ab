"""
chatproof: verify that chat completions from a confidential-computing (TEE)
inference endpoint were produced unmodified and signed by the enclave's key.

Request/response hashes are rebuilt locally and checked against the enclave's
ECDSA (Ethereum personal-sign) signature over "<requestHash>:<responseHash>".
"""

__version__ = "0.1.0-dev"

from chatproof.core.canon import canonicalize, canonical_json
from chatproof.core.response import build_request_text, reconstruct
from chatproof.core.types import (
    Message,
    SignatureRecord,
    VerificationProof,
    VerificationState,
    VerificationStatus,
    VerificationStep,
)
from chatproof.crypto.hashing import sha256_hex, verify_hashes
from chatproof.crypto.signing import EnclaveSigner, recover_signing_address, verify_signature
from chatproof.verify.verifier import run_verification, verify_message

__all__ = [
    "canonicalize",
    "canonical_json",
    "build_request_text",
    "reconstruct",
    "Message",
    "SignatureRecord",
    "VerificationProof",
    "VerificationState",
    "VerificationStatus",
    "VerificationStep",
    "sha256_hex",
    "verify_hashes",
    "EnclaveSigner",
    "recover_signing_address",
    "verify_signature",
    "run_verification",
    "verify_message",
]
