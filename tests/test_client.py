# tests/test_client.py
import httpx
import pytest

from chatproof.client import ConfidentialChatClient
from chatproof.config import DEFAULT_MODEL, Settings
from chatproof.core.response import build_request_text
from chatproof.core.types import Message, VerificationState
from chatproof.errors import APIError, ConfigError
from chatproof.verify.verifier import verify_message

from conftest import CHAT_ID, fake_api

SETTINGS = Settings(api_key="test-key", api_base="https://tee.example/v1")


def make_client(transport: httpx.MockTransport, settings: Settings = SETTINGS) -> ConfidentialChatClient:
    return ConfidentialChatClient(settings, http=httpx.Client(transport=transport))


def history():
    return [Message(id="u1", role="user", content="Hi")]


def test_send_message_end_to_end_verifies(signer):
    seen = {}
    with make_client(fake_api(signer, seen=seen)) as client:
        answer = client.send_message(history())

    assert answer.role == "assistant"
    assert answer.content == "Hello! How can I help?"
    assert answer.raw_request == build_request_text([{"role": "user", "content": "Hi"}], DEFAULT_MODEL)
    assert answer.verification.chat_id == CHAT_ID
    assert answer.verification.signing_address == signer.address
    assert answer.verification.attestation["signing_algo"] == "ecdsa"
    assert answer.verification.state is VerificationState.PENDING

    checked = verify_message(answer)
    assert checked.verification.state is VerificationState.VERIFIED

    completion = seen["requests"][0]
    assert completion.content.decode("utf-8") == answer.raw_request
    assert completion.headers["Authorization"] == "Bearer test-key"
    signature_req = seen["requests"][1]
    assert signature_req.url.params["model"] == DEFAULT_MODEL


def test_completion_error_raises_api_error(signer):
    with make_client(fake_api(signer, completion_status=500)) as client:
        with pytest.raises(APIError) as info:
            client.send_message(history())
    assert info.value.status_code == 500
    assert "upstream exploded" in str(info.value)


def test_signature_unavailable_is_not_an_exception(signer):
    with make_client(fake_api(signer, signature_status=404)) as client:
        answer = client.send_message(history())

    proof = answer.verification
    assert proof.state is VerificationState.UNAVAILABLE
    assert "404" in proof.fetch_error
    assert proof.signature is None
    # still not verifiable, so verification leaves it alone
    assert verify_message(answer) is answer


def test_attestation_failure_keeps_proof(signer):
    with make_client(fake_api(signer, attestation_status=503)) as client:
        answer = client.send_message(history())
    assert answer.verification.attestation is None
    assert verify_message(answer).verification.state is VerificationState.VERIFIED


def test_fetch_attestation_passes_nonce(signer):
    seen = {}
    with make_client(fake_api(signer, seen=seen)) as client:
        report = client.fetch_attestation(signer.address, nonce="abc")
    assert report["signing_address"] == signer.address
    params = seen["requests"][0].url.params
    assert params["nonce"] == "abc"
    assert params["signing_address"] == signer.address


def test_transport_error_raises_api_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(httpx.MockTransport(boom)) as client:
        with pytest.raises(APIError, match="connection refused"):
            client.complete([{"role": "user", "content": "Hi"}])


def test_missing_api_key(signer):
    with make_client(fake_api(signer), Settings(api_key=None)) as client:
        with pytest.raises(ConfigError):
            client.send_message(history())


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("CHATPROOF_API_KEY", "env-key")
    monkeypatch.setenv("CHATPROOF_API_BASE", "https://example.test/v1/")
    monkeypatch.setenv("CHATPROOF_TIMEOUT", "5")
    monkeypatch.delenv("CHATPROOF_MODEL", raising=False)

    settings = Settings.from_env(model="other/model")
    assert settings.api_key == "env-key"
    assert settings.api_base == "https://example.test/v1"
    assert settings.model == "other/model"
    assert settings.timeout == 5.0

    monkeypatch.setenv("CHATPROOF_TIMEOUT", "soon")
    with pytest.raises(ConfigError):
        Settings.from_env()
