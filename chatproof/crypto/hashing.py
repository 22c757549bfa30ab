# chatproof/crypto/hashing.py
import hashlib
import logging

from chatproof.core.types import HashComparison

logger = logging.getLogger(__name__)


def sha256_hex(text: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 bytes of `text`."""
    if not isinstance(text, str):
        raise TypeError(f"expected str to hash, got {type(text).__name__}")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _normalize(digest: str) -> str:
    if not isinstance(digest, str):
        raise TypeError(f"expected hex digest str, got {type(digest).__name__}")
    return digest.strip().lower()


def verify_hashes(
    request_text: str,
    response_text: str,
    expected_request_hash: str,
    expected_response_hash: str,
) -> HashComparison:
    """
    Hash both texts and compare against the server-supplied digests.
    A mismatch is a normal outcome, not an error.
    """
    computed_request = sha256_hex(request_text)
    computed_response = sha256_hex(response_text)

    request_match = computed_request == _normalize(expected_request_hash)
    response_match = computed_response == _normalize(expected_response_hash)

    logger.debug("Request text hashed: %s", request_text)
    logger.debug("Response text hashed: %s", response_text)
    logger.debug("Request  expected=%s computed=%s match=%s", expected_request_hash, computed_request, request_match)
    logger.debug("Response expected=%s computed=%s match=%s", expected_response_hash, computed_response, response_match)

    return HashComparison(
        request_match=request_match,
        response_match=response_match,
        computed_request_hash=computed_request,
        computed_response_hash=computed_response,
    )
