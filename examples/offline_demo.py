# examples/offline_demo.py
# Run with: python examples/offline_demo.py
#
# No network: a local EnclaveSigner plays the role of the TEE signer.

import logging
from dataclasses import replace

from chatproof import (
    EnclaveSigner,
    Message,
    VerificationProof,
    build_request_text,
    reconstruct,
    sha256_hex,
    verify_message,
)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    enclave = EnclaveSigner.generate()

    # What the client sends and what the enclave answers
    raw_request = build_request_text([{"role": "user", "content": "What is a TEE?"}])
    content = "A Trusted Execution Environment is hardware-isolated compute."
    raw_response = reconstruct("chatcmpl-demo", content, 1700000000, None, None)

    # What the signature endpoint would return for this chat id
    record = enclave.sign_hash_pair(sha256_hex(raw_request), sha256_hex(raw_response), chat_id="chatcmpl-demo")
    proof = VerificationProof.from_signature_record(record)

    answer = Message(
        id="demo-1",
        role="assistant",
        content=content,
        verification=proof,
        raw_request=raw_request,
        raw_response=raw_response,
    )

    for label, msg in [
        ("untouched", answer),
        ("tampered", replace(answer, raw_response=raw_response.replace("hardware", "software"))),
    ]:
        checked = verify_message(msg)
        print(f"\n== {label}: {checked.verification.state.value}")
        for step in checked.verification.verification_steps:
            mark = "✓" if step.status == "success" else "✗"
            print(f"  {mark} {step.name}" + (f"  ({step.error})" if step.error else ""))
