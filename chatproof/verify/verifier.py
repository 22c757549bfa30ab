# chatproof/verify/verifier.py
import logging
from dataclasses import replace
from typing import List, Optional

from chatproof.core.types import Message, VerificationProof, VerificationStatus, VerificationStep
from chatproof.crypto.hashing import verify_hashes
from chatproof.crypto.signing import verify_signature
from chatproof.errors import MissingDataError

logger = logging.getLogger(__name__)

REQUEST_HASH_STEP = "Request Hash Verification"
RESPONSE_HASH_STEP = "Response Hash Verification"
SIGNATURE_STEP = "Signature Verification"
PROCESS_STEP = "Verification Process"


def missing_fields(
    proof: Optional[VerificationProof],
    raw_request: Optional[str],
    raw_response: Optional[str],
) -> List[str]:
    """Names of the inputs a verification run still needs; empty when verifiable."""
    if proof is None:
        return ["verification"]
    missing = []
    if not raw_request:
        missing.append("raw_request")
    if not raw_response:
        missing.append("raw_response")
    for attr in ("request_hash", "response_hash", "signature", "signing_address", "text"):
        if not getattr(proof, attr):
            missing.append(attr)
    return missing


def require_verifiable(
    proof: Optional[VerificationProof],
    raw_request: Optional[str],
    raw_response: Optional[str],
) -> None:
    missing = missing_fields(proof, raw_request, raw_response)
    if missing:
        raise MissingDataError(missing)


def run_verification(
    proof: Optional[VerificationProof],
    raw_request: Optional[str],
    raw_response: Optional[str],
) -> Optional[VerificationProof]:
    """
    Verify one exchange: request hash, response hash, then the enclave signature
    over the hash pair.

    Returns a new proof carrying `verification_status` and a fresh list of
    `verification_steps`. If the proof is not yet verifiable the input is
    returned unchanged. Never raises.
    """
    try:
        require_verifiable(proof, raw_request, raw_response)
    except MissingDataError as e:
        logger.warning("Cannot verify %s: %s", proof.chat_id if proof else "<no proof>", e)
        return proof

    steps: List[VerificationStep] = []
    hash_verified = False
    signature_verified = False

    try:
        hashes = verify_hashes(raw_request, raw_response, proof.request_hash, proof.response_hash)

        steps.append(VerificationStep(
            name=REQUEST_HASH_STEP,
            status="success" if hashes.request_match else "failed",
            details=f"Expected: {proof.request_hash}\nComputed: {hashes.computed_request_hash}",
            error=None if hashes.request_match else "Hash mismatch",
        ))
        steps.append(VerificationStep(
            name=RESPONSE_HASH_STEP,
            status="success" if hashes.response_match else "failed",
            details=f"Expected: {proof.response_hash}\nComputed: {hashes.computed_response_hash}",
            error=None if hashes.response_match else "Hash mismatch",
        ))
        hash_verified = hashes.both_match
        if not hash_verified:
            logger.error("Hash verification failed for %s", proof.chat_id)

        check = verify_signature(proof.text, proof.signature, proof.signing_address)
        steps.append(VerificationStep(
            name=SIGNATURE_STEP,
            status="success" if check.is_valid else "failed",
            details=f"Expected Address: {proof.signing_address}\nRecovered Address: {check.recovered_address}",
            error=check.error or (None if check.is_valid else "Address mismatch"),
        ))
        signature_verified = check.is_valid
        if not signature_verified:
            logger.error("Signature verification failed for %s", proof.chat_id)

        status = VerificationStatus(
            is_verified=hash_verified and signature_verified,
            hash_verified=hash_verified,
            signature_verified=signature_verified,
        )
        logger.info("Verification of %s: %s", proof.chat_id, "VERIFIED" if status.is_verified else "FAILED")
    except Exception as e:
        logger.exception("Unexpected error while verifying %s", proof.chat_id)
        steps.append(VerificationStep(name=PROCESS_STEP, status="failed", error=str(e) or type(e).__name__))
        status = VerificationStatus(
            is_verified=False,
            hash_verified=hash_verified,
            signature_verified=signature_verified,
        )

    return replace(proof, verification_status=status, verification_steps=tuple(steps))


def verify_message(message: Message) -> Message:
    """Run verification for a message and hand back a copy owning the updated proof."""
    updated = run_verification(message.verification, message.raw_request, message.raw_response)
    if updated is message.verification:
        return message
    return message.with_verification(updated)
