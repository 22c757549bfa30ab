# chatproof/core/types.py
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple
import time

StepStatus = Literal["pending", "success", "failed"]


def now_ms() -> int:
    """Milliseconds since the Unix epoch (the unit used in exported records)."""
    return int(time.time() * 1000)


def split_hash_pair(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """'<requestHash>:<responseHash>' -> (requestHash, responseHash); None where absent."""
    if not text or ":" not in text:
        return None, None
    request_hash, _, response_hash = text.partition(":")
    return request_hash or None, response_hash or None


class VerificationState(str, Enum):
    """What a proof currently tells the user."""
    PENDING = "pending"          # still waiting for data, nothing checked yet
    UNAVAILABLE = "unavailable"  # signature could not be fetched; cannot verify
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class VerificationStep:
    """One entry of a verification run's audit trail."""
    name: str
    status: StepStatus
    details: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "status": self.status}
        if self.details is not None:
            d["details"] = self.details
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "VerificationStep":
        return cls(name=d["name"], status=d["status"], details=d.get("details"), error=d.get("error"))


@dataclass(frozen=True)
class VerificationStatus:
    is_verified: bool
    hash_verified: bool
    signature_verified: bool
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict:
        return {
            "isVerified": self.is_verified,
            "hashVerified": self.hash_verified,
            "signatureVerified": self.signature_verified,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "VerificationStatus":
        return cls(
            is_verified=bool(d.get("isVerified")),
            hash_verified=bool(d.get("hashVerified")),
            signature_verified=bool(d.get("signatureVerified")),
            timestamp=int(d.get("timestamp") or 0),
        )


@dataclass(frozen=True)
class SignatureRecord:
    """Payload of the signature endpoint, keyed by chat id."""
    chat_id: str
    text: str                       # "<requestHash>:<responseHash>"
    signature: str                  # 0x-hex, 65 bytes (r || s || v)
    signing_address: str

    @classmethod
    def from_api(cls, chat_id: str, data: dict) -> "SignatureRecord":
        return cls(
            chat_id=chat_id,
            text=data["text"],
            signature=data["signature"],
            signing_address=data["signing_address"],
        )


@dataclass(frozen=True)
class HashComparison:
    request_match: bool
    response_match: bool
    computed_request_hash: str
    computed_response_hash: str

    @property
    def both_match(self) -> bool:
        return self.request_match and self.response_match


@dataclass(frozen=True)
class SignatureCheck:
    is_valid: bool
    recovered_address: str = ""
    error: Optional[str] = None


# camelCase keys used by exported conversation files
_PROOF_KEYS = {
    "chat_id": "chatId",
    "text": "text",
    "signature": "signature",
    "signing_address": "signingAddress",
    "request_hash": "requestHash",
    "response_hash": "responseHash",
    "attestation": "attestation",
    "fetched_at": "fetchedAt",
    "fetch_error": "fetchError",
}


@dataclass(frozen=True)
class VerificationProof:
    """
    Everything needed to verify one assistant response, plus the outcome.

    Created with partial data right after a completion arrives, then replaced
    (never mutated) as the signature, attestation and verification results come in.
    """
    chat_id: str
    text: Optional[str] = None
    signature: Optional[str] = None
    signing_address: Optional[str] = None
    request_hash: Optional[str] = None
    response_hash: Optional[str] = None
    attestation: Optional[Dict[str, Any]] = None   # opaque, displayed only
    fetched_at: Optional[int] = None
    fetch_error: Optional[str] = None
    verification_status: Optional[VerificationStatus] = None
    verification_steps: Tuple[VerificationStep, ...] = ()

    @classmethod
    def from_signature_record(
        cls,
        record: SignatureRecord,
        attestation: Optional[Dict[str, Any]] = None,
        fetched_at: Optional[int] = None,
    ) -> "VerificationProof":
        request_hash, response_hash = split_hash_pair(record.text)
        return cls(
            chat_id=record.chat_id,
            text=record.text,
            signature=record.signature,
            signing_address=record.signing_address,
            request_hash=request_hash,
            response_hash=response_hash,
            attestation=attestation,
            fetched_at=fetched_at if fetched_at is not None else now_ms(),
        )

    @property
    def state(self) -> VerificationState:
        if self.verification_status is not None:
            if self.verification_status.is_verified:
                return VerificationState.VERIFIED
            return VerificationState.FAILED
        if self.fetch_error is not None:
            return VerificationState.UNAVAILABLE
        return VerificationState.PENDING

    def with_attestation(self, attestation: Optional[Dict[str, Any]]) -> "VerificationProof":
        return replace(self, attestation=attestation)

    def to_dict(self) -> dict:
        d = {}
        for attr, key in _PROOF_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                d[key] = value
        if self.verification_status is not None:
            d["verificationStatus"] = self.verification_status.to_dict()
        if self.verification_steps:
            d["verificationSteps"] = [s.to_dict() for s in self.verification_steps]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "VerificationProof":
        kwargs = {attr: d.get(key) for attr, key in _PROOF_KEYS.items()}
        status = d.get("verificationStatus")
        steps = d.get("verificationSteps") or []
        return cls(
            **kwargs,
            verification_status=VerificationStatus.from_dict(status) if status else None,
            verification_steps=tuple(VerificationStep.from_dict(s) for s in steps),
        )


@dataclass(frozen=True)
class Message:
    """Single chat message. Assistant messages own their verification proof."""
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: int = field(default_factory=now_ms)
    verification: Optional[VerificationProof] = None
    raw_request: Optional[str] = None    # canonical request text that was sent
    raw_response: Optional[str] = None   # reconstructed response text
    streaming: bool = False

    def with_verification(self, proof: Optional[VerificationProof]) -> "Message":
        return replace(self, verification=proof)

    def to_api(self) -> dict:
        """Shape sent to the completion endpoint."""
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.verification is not None:
            d["verification"] = self.verification.to_dict()
        if self.streaming:
            d["streaming"] = True
        if self.raw_request is not None:
            d["rawRequest"] = self.raw_request
        if self.raw_response is not None:
            d["rawResponse"] = self.raw_response
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Message":
        if not isinstance(d, dict):
            raise ValueError(f"message must be an object, got {type(d).__name__}")
        proof = d.get("verification")
        if proof and not isinstance(proof, dict):
            raise ValueError(f"message {d.get('id')!r}: verification must be an object")
        return cls(
            id=d["id"],
            role=d["role"],
            content=d.get("content", ""),
            timestamp=int(d.get("timestamp") or 0),
            verification=VerificationProof.from_dict(proof) if proof else None,
            raw_request=d.get("rawRequest"),
            raw_response=d.get("rawResponse"),
            streaming=bool(d.get("streaming", False)),
        )


def load_messages(data: Any) -> List[Message]:
    """Accept either a bare list of messages or {"messages": [...]} (stored conversation)."""
    if isinstance(data, dict):
        data = data.get("messages", [])
    if not isinstance(data, list):
        raise ValueError("conversation must be a list of messages")
    return [Message.from_dict(m) for m in data]
