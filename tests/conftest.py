# tests/conftest.py
import json
from typing import Optional

import httpx
import pytest

from chatproof.config import DEFAULT_MODEL
from chatproof.core.response import build_request_text, reconstruct
from chatproof.core.types import VerificationProof
from chatproof.crypto.hashing import sha256_hex
from chatproof.crypto.signing import EnclaveSigner

# Well-known throwaway test key; never use for anything real.
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

CHAT_ID = "chatcmpl-test-0001"
CREATED = 1700000000
USAGE = {"prompt_tokens": 5, "total_tokens": 7, "completion_tokens": 2, "prompt_tokens_details": None}


@pytest.fixture
def signer() -> EnclaveSigner:
    return EnclaveSigner.from_hex(TEST_PRIVATE_KEY)


def make_exchange(signer: EnclaveSigner, content: str = "Hello! How can I help?", prompt: str = "Hi"):
    """Signed proof plus the raw texts, exactly as the enclave would produce them."""
    raw_request = build_request_text([{"role": "user", "content": prompt}], DEFAULT_MODEL)
    raw_response = reconstruct(CHAT_ID, content, CREATED, DEFAULT_MODEL, USAGE)
    record = signer.sign_hash_pair(sha256_hex(raw_request), sha256_hex(raw_response), chat_id=CHAT_ID)
    proof = VerificationProof.from_signature_record(record, fetched_at=CREATED * 1000)
    return proof, raw_request, raw_response


@pytest.fixture
def exchange(signer):
    return make_exchange(signer)


def fake_api(
    signer: EnclaveSigner,
    content: str = "Hello! How can I help?",
    completion_status: int = 200,
    signature_status: int = 200,
    attestation_status: int = 200,
    seen: Optional[dict] = None,
) -> httpx.MockTransport:
    """
    In-process stand-in for the confidential inference API: hashes the request
    body it receives, signs the hash pair and serves it from /signature.
    """
    state = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.setdefault("requests", []).append(request)
        path = request.url.path

        if path.endswith("/chat/completions"):
            if completion_status != 200:
                return httpx.Response(completion_status, text="upstream exploded")
            body = request.content.decode("utf-8")
            response_text = reconstruct(CHAT_ID, content, CREATED, DEFAULT_MODEL, USAGE)
            state["record"] = signer.sign_hash_pair(sha256_hex(body), sha256_hex(response_text), CHAT_ID)
            return httpx.Response(200, content=response_text.encode("utf-8"),
                                  headers={"Content-Type": "application/json"})

        if path.endswith(f"/signature/{CHAT_ID}"):
            if signature_status != 200:
                return httpx.Response(signature_status, text="not found")
            record = state["record"]
            return httpx.Response(200, json={
                "text": record.text,
                "signature": record.signature,
                "signing_address": record.signing_address,
            })

        if path.endswith("/attestation/report"):
            if attestation_status != 200:
                return httpx.Response(attestation_status, text="unavailable")
            return httpx.Response(200, json={
                "signing_address": request.url.params.get("signing_address"),
                "signing_algo": "ecdsa",
                "intel_quote": "04000200810000",
                "nvidia_payload": json.dumps({"arch": "HOPPER"}),
            })

        return httpx.Response(404, text="no route")

    return httpx.MockTransport(handler)
