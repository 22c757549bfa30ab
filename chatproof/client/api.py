# chatproof/client/api.py
"""
HTTP client for the confidential inference API.

Sends non-streaming completions with the canonical request text as the exact
body, rebuilds the response text the enclave hashed, then fetches the
signature and attestation for the chat id. Nothing here retries.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

import httpx

from chatproof.config import Settings
from chatproof.core.response import build_request_text, reconstruct
from chatproof.core.types import Message, SignatureRecord, VerificationProof, now_ms
from chatproof.errors import APIError

logger = logging.getLogger(__name__)


class ConfidentialChatClient:
    def __init__(self, settings: Optional[Settings] = None, http: Optional[httpx.Client] = None):
        self.settings = settings or Settings.from_env()
        self.http = http or httpx.Client(timeout=self.settings.timeout)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.settings.require_api_key()}"}

    def _url(self, path: str) -> str:
        return f"{self.settings.api_base}{path}"

    def complete(self, messages: Sequence[Dict[str, str]]) -> Dict[str, Any]:
        """POST /chat/completions. Returns the parsed body plus the request text that was sent."""
        raw_request = build_request_text(messages, self.settings.model)
        headers = self._headers()
        headers["Content-Type"] = "application/json"

        try:
            response = self.http.post(
                self._url("/chat/completions"),
                content=raw_request.encode("utf-8"),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise APIError(f"API request failed: {e}") from e

        if response.status_code >= 400:
            raise APIError(
                f"API request failed: {response.status_code} {response.reason_phrase} - {response.text}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise APIError(f"API returned invalid JSON: {e}", response.status_code) from e
        return {"request_text": raw_request, "data": data}

    def fetch_signature(self, chat_id: str) -> VerificationProof:
        """
        Fetch the enclave signature for `chat_id`. On failure the proof carries
        `fetch_error` (state UNAVAILABLE) instead of raising.
        """
        logger.info("Fetching signature for chat_id %s", chat_id)
        try:
            response = self.http.get(
                self._url(f"/signature/{chat_id}"),
                params={"model": self.settings.model},
                headers=self._headers(),
            )
            if response.status_code >= 400:
                raise APIError(f"{response.status_code} {response.reason_phrase}", response.status_code)
            record = SignatureRecord.from_api(chat_id, response.json())
        except (httpx.HTTPError, APIError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to fetch signature for %s: %s", chat_id, e)
            return VerificationProof(chat_id=chat_id, fetched_at=now_ms(), fetch_error=str(e) or type(e).__name__)

        attestation = self.fetch_attestation(record.signing_address)
        return VerificationProof.from_signature_record(record, attestation=attestation)

    def fetch_attestation(self, signing_address: str, nonce: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Attestation report for a signing address. Stored as-is; None when unavailable."""
        params = {"model": self.settings.model, "signing_address": signing_address}
        if nonce:
            params["nonce"] = nonce

        logger.info("Fetching attestation for signing_address %s", signing_address)
        try:
            response = self.http.get(self._url("/attestation/report"), params=params, headers=self._headers())
            if response.status_code >= 400:
                logger.warning("Failed to fetch attestation: %s %s", response.status_code, response.reason_phrase)
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch attestation for %s: %s", signing_address, e)
            return None
        return data if isinstance(data, dict) else {"report": data}

    def send_message(self, history: List[Message]) -> Message:
        """
        Send the conversation and return the finished assistant message, carrying
        the raw request/response texts and its (unverified) proof.
        """
        result = self.complete([m.to_api() for m in history])
        data = result["data"]

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        chat_id = data.get("id")

        raw_response = reconstruct(
            chat_id,
            content,
            data.get("created"),
            data.get("model"),
            data.get("usage"),
        )

        if chat_id:
            proof = self.fetch_signature(chat_id)
        else:
            logger.warning("No chat_id found in response; cannot fetch signature")
            proof = None

        return Message(
            id=str(uuid.uuid4()),
            role="assistant",
            content=content,
            verification=proof,
            raw_request=result["request_text"],
            raw_response=raw_response,
        )
