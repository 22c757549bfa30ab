# chatproof/crypto/signing.py
"""
Ethereum "personal sign" (EIP-191 version 0x45) recovery.

The signed message is the hash-pair text. Before signing, the enclave hashes

    keccak256(b"\\x19Ethereum Signed Message:\\n" + str(len(msg_bytes)) + msg_bytes)

and the 65-byte signature is r (32) || s (32) || v (1), with v in {27, 28}
(0/1 accepted too). The signer identity is the account address derived from the
recovered public key.
"""

import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys import keys
from eth_keys.constants import SECPK1_N
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak

from chatproof.core.encoding import hex_decode
from chatproof.core.types import SignatureCheck, SignatureRecord
from chatproof.errors import RecoveryError

logger = logging.getLogger(__name__)

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
SIGNATURE_LENGTH = 65


def personal_message_hash(message: str) -> bytes:
    """Keccak-256 digest the enclave actually signs for `message`."""
    data = message.encode("utf-8")
    return keccak(PERSONAL_MESSAGE_PREFIX + str(len(data)).encode("ascii") + data)


def _parse_signature(signature_hex: str) -> keys.Signature:
    try:
        raw = hex_decode(signature_hex)
    except (TypeError, ValueError) as e:
        raise RecoveryError(f"Signature is not valid hex: {e}") from e

    if len(raw) != SIGNATURE_LENGTH:
        raise RecoveryError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}")

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        raise RecoveryError(f"Invalid recovery id: {raw[64]}")
    if not (0 < r < SECPK1_N and 0 < s < SECPK1_N):
        raise RecoveryError("Signature r/s out of range")

    try:
        return keys.Signature(vrs=(v, r, s))
    except (BadSignature, ValidationError, ValueError) as e:
        raise RecoveryError(f"Invalid signature values: {e}") from e


def recover_signing_address(message: str, signature_hex: str) -> str:
    """
    Recover the lowercase 0x address that produced `signature_hex` over `message`.
    Raises RecoveryError for malformed or cryptographically inconsistent signatures.
    """
    if not isinstance(message, str):
        raise RecoveryError(f"Message must be str, got {type(message).__name__}")

    signature = _parse_signature(signature_hex)
    digest = personal_message_hash(message)
    try:
        public_key = signature.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError, ValueError) as e:
        raise RecoveryError(f"Signature recovery failed: {e}") from e

    return public_key.to_checksum_address().lower()


def verify_signature(message: str, signature_hex: str, expected_address: str) -> SignatureCheck:
    """Never raises for bad signatures; the reason ends up in `error`."""
    try:
        recovered = recover_signing_address(message, signature_hex)
    except RecoveryError as e:
        logger.warning("Signature recovery failed: %s", e)
        return SignatureCheck(is_valid=False, recovered_address="", error=str(e))

    expected = (expected_address or "").strip().lower()
    is_valid = recovered == expected
    logger.debug("Signature expected=%s recovered=%s valid=%s", expected, recovered, is_valid)
    return SignatureCheck(is_valid=is_valid, recovered_address=recovered)


class EnclaveSigner:
    """
    Local personal-sign key standing in for an enclave signer.
    Produces the same signature records the signature endpoint returns; used for
    fixtures, demos and tests.
    """

    def __init__(self, private_key: bytes):
        self._account = Account.from_key(private_key)

    @classmethod
    def generate(cls) -> "EnclaveSigner":
        return cls(bytes(Account.create().key))

    @classmethod
    def from_hex(cls, private_key_hex: str) -> "EnclaveSigner":
        return cls(hex_decode(private_key_hex))

    @property
    def address(self) -> str:
        """Checksum-cased address, as the signature endpoint reports it."""
        return self._account.address

    def sign_text(self, message: str) -> str:
        signed = self._account.sign_message(encode_defunct(text=message))
        return "0x" + bytes(signed.signature).hex()

    def sign_hash_pair(self, request_hash: str, response_hash: str, chat_id: Optional[str] = None) -> SignatureRecord:
        """Sign '<request>:<response>' the way the enclave does."""
        text = f"{request_hash}:{response_hash}"
        return SignatureRecord(
            chat_id=chat_id or "",
            text=text,
            signature=self.sign_text(text),
            signing_address=self.address,
        )
