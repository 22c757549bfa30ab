# tests/test_verify.py
from dataclasses import replace

import pytest

from chatproof.core.types import Message, VerificationProof, VerificationState
from chatproof.errors import MissingDataError
from chatproof.verify import verifier
from chatproof.verify.verifier import (
    PROCESS_STEP,
    REQUEST_HASH_STEP,
    RESPONSE_HASH_STEP,
    SIGNATURE_STEP,
    missing_fields,
    require_verifiable,
    run_verification,
    verify_message,
)
from chatproof.crypto.signing import EnclaveSigner

from conftest import make_exchange


def test_valid_exchange(exchange):
    proof, raw_request, raw_response = exchange
    result = run_verification(proof, raw_request, raw_response)

    assert result is not proof
    assert result.verification_status.is_verified is True
    assert result.verification_status.hash_verified is True
    assert result.verification_status.signature_verified is True
    assert result.state is VerificationState.VERIFIED
    assert [s.name for s in result.verification_steps] == [REQUEST_HASH_STEP, RESPONSE_HASH_STEP, SIGNATURE_STEP]
    assert all(s.status == "success" and s.error is None for s in result.verification_steps)


def test_input_proof_not_mutated(exchange):
    proof, raw_request, raw_response = exchange
    run_verification(proof, raw_request, raw_response)
    assert proof.verification_status is None
    assert proof.verification_steps == ()


def test_step_details_show_expected_and_computed(exchange):
    proof, raw_request, raw_response = exchange
    steps = run_verification(proof, raw_request, raw_response).verification_steps
    assert steps[0].details == f"Expected: {proof.request_hash}\nComputed: {proof.request_hash}"
    assert steps[2].details.startswith(f"Expected Address: {proof.signing_address}\nRecovered Address: 0x")


def test_tampered_response(exchange):
    proof, raw_request, raw_response = exchange
    result = run_verification(proof, raw_request, raw_response.replace("Hello", "Jello"))

    request_step, response_step, signature_step = result.verification_steps
    assert request_step.status == "success"
    assert response_step.status == "failed"
    assert response_step.error == "Hash mismatch"
    assert signature_step.status == "success"
    assert result.verification_status.hash_verified is False
    assert result.verification_status.is_verified is False
    assert result.state is VerificationState.FAILED


def test_wrong_signing_address(exchange):
    proof, raw_request, raw_response = exchange
    proof = replace(proof, signing_address=EnclaveSigner.generate().address)
    result = run_verification(proof, raw_request, raw_response)

    assert result.verification_status.hash_verified is True
    assert result.verification_status.signature_verified is False
    assert result.verification_status.is_verified is False
    assert result.verification_steps[2].error == "Address mismatch"


def test_malformed_signature_is_reported_not_raised(exchange):
    proof, raw_request, raw_response = exchange
    result = run_verification(replace(proof, signature="0xnothex"), raw_request, raw_response)

    step = result.verification_steps[2]
    assert step.name == SIGNATURE_STEP
    assert step.status == "failed"
    assert "hex" in step.error
    assert len(result.verification_steps) == 3


def test_one_failing_hash_valid_signature_is_not_verified(signer):
    # enclave signed a different request hash than the one we send
    proof, raw_request, raw_response = make_exchange(signer)
    record = signer.sign_hash_pair("00" * 32, proof.response_hash, chat_id=proof.chat_id)
    forged = VerificationProof.from_signature_record(record)

    result = run_verification(forged, raw_request, raw_response)
    assert result.verification_steps[0].status == "failed"
    assert result.verification_steps[1].status == "success"
    assert result.verification_steps[2].status == "success"
    assert result.verification_status.is_verified is False


@pytest.mark.parametrize("field", ["signature", "signing_address", "text", "request_hash", "response_hash"])
def test_missing_proof_field_returns_same_object(exchange, field):
    proof, raw_request, raw_response = exchange
    partial = replace(proof, **{field: None})
    assert run_verification(partial, raw_request, raw_response) is partial
    assert partial.verification_steps == ()


def test_missing_raw_texts_returns_same_object(exchange):
    proof, raw_request, raw_response = exchange
    assert run_verification(proof, None, raw_response) is proof
    assert run_verification(proof, raw_request, "") is proof
    assert run_verification(None, raw_request, raw_response) is None


def test_missing_fields_and_require(exchange):
    proof, raw_request, raw_response = exchange
    assert missing_fields(proof, raw_request, raw_response) == []
    assert missing_fields(replace(proof, signature=None), None, raw_response) == ["raw_request", "signature"]
    with pytest.raises(MissingDataError) as info:
        require_verifiable(VerificationProof(chat_id="c"), raw_request, raw_response)
    assert "signature" in info.value.missing


def test_internal_fault_becomes_terminal_step(exchange, monkeypatch):
    proof, raw_request, raw_response = exchange

    def explode(*args, **kwargs):
        raise RuntimeError("keccak backend unavailable")

    monkeypatch.setattr(verifier, "verify_signature", explode)
    result = run_verification(proof, raw_request, raw_response)

    names = [s.name for s in result.verification_steps]
    assert names == [REQUEST_HASH_STEP, RESPONSE_HASH_STEP, PROCESS_STEP]
    assert result.verification_steps[-1].status == "failed"
    assert result.verification_steps[-1].error == "keccak backend unavailable"
    # flags computed before the fault survive
    assert result.verification_status.hash_verified is True
    assert result.verification_status.signature_verified is False
    assert result.verification_status.is_verified is False


def test_fault_before_any_step(exchange, monkeypatch):
    proof, raw_request, raw_response = exchange
    monkeypatch.setattr(verifier, "verify_hashes", lambda *a: 1 / 0)
    result = run_verification(proof, raw_request, raw_response)
    assert [s.name for s in result.verification_steps] == [PROCESS_STEP]
    assert result.verification_status.hash_verified is False


def test_each_run_is_fresh(exchange):
    proof, raw_request, raw_response = exchange
    first = run_verification(proof, raw_request, raw_response)
    second = run_verification(first, raw_request, raw_response)
    assert len(second.verification_steps) == 3
    assert second.verification_steps == first.verification_steps


def test_verify_message(exchange):
    proof, raw_request, raw_response = exchange
    msg = Message(id="m1", role="assistant", content="Hello! How can I help?",
                  verification=proof, raw_request=raw_request, raw_response=raw_response)
    checked = verify_message(msg)
    assert checked is not msg
    assert checked.verification.state is VerificationState.VERIFIED
    assert msg.verification is proof

    pending = Message(id="m2", role="assistant", content="x", verification=replace(proof, signature=None))
    assert verify_message(pending) is pending


def test_lone_surrogate_content_is_a_normal_result(signer):
    proof, raw_request, raw_response = make_exchange(signer, content="bad \ud800 text")
    result = run_verification(proof, raw_request, raw_response)
    assert [s.name for s in result.verification_steps] == [REQUEST_HASH_STEP, RESPONSE_HASH_STEP, SIGNATURE_STEP]
    assert result.verification_status.is_verified is True

    tampered = run_verification(proof, raw_request, raw_response.replace("bad", "bat"))
    assert tampered.verification_steps[1].status == "failed"
    assert PROCESS_STEP not in [s.name for s in tampered.verification_steps]
