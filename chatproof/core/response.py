# chatproof/core/response.py
"""
Rebuild the exact bytes the upstream hashed for a chat completion.

The request is hashed in canonical (sorted-key) form, the response in the
upstream's own field emission order. Both shapes are fixed external contracts:
do not merge them into one serializer.
"""

import json
import math
import re
import time
from typing import Any, Iterable, Mapping, Optional

import jcs

from chatproof.config import DEFAULT_MODEL
from chatproof.core.canon import canonicalize

_JS_EXPONENT_THRESHOLD = 10 ** 21
_LONE_SURROGATE = re.compile(r"[\ud800-\udfff]")


def _js_string(value: str) -> str:
    """
    JSON.stringify string rules: escape ", \\ and control characters, keep other
    code points raw, write unpaired surrogates as lowercase \\udxxx escapes.
    """
    # join any surrogate pairs into real code points first; leftovers are lone
    value = value.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
    encoded = json.dumps(value, ensure_ascii=False)
    return _LONE_SURROGATE.sub(lambda m: "\\u%04x" % ord(m.group()), encoded)


def _js_number(value) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        return "null"
    if isinstance(value, int) and abs(value) < _JS_EXPONENT_THRESHOLD:
        return str(value)
    # ECMAScript Number::toString, as implemented for RFC 8785
    return jcs.canonicalize(float(value)).decode("utf-8")


def js_dumps(value: Any) -> str:
    """
    Compact JSON in insertion order, byte-compatible with JSON.stringify.
    Unlike canonicalize() keys are never reordered.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _js_number(value)
    if isinstance(value, str):
        return _js_string(value)
    if isinstance(value, Mapping):
        return "{" + ",".join(f"{_js_string(str(k))}:{js_dumps(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(js_dumps(v) for v in value) + "]"
    raise TypeError(f"cannot serialize {type(value).__name__} as JSON")


def _zero_usage() -> dict:
    return {
        "prompt_tokens": 0,
        "total_tokens": 0,
        "completion_tokens": 0,
        "prompt_tokens_details": None,
    }


def response_object(
    chat_id: Optional[str],
    content: str,
    created: Optional[int],
    model: Optional[str],
    usage: Optional[Mapping[str, Any]] = None,
) -> dict:
    """Fixed-shape completion object. Field order here IS the contract."""
    return {
        "id": chat_id or "",
        "object": "chat.completion",
        "created": created or int(time.time()),
        "model": model or DEFAULT_MODEL,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": content,
                    "refusal": None,
                    "annotations": None,
                    "audio": None,
                    "function_call": None,
                    "tool_calls": [],
                    "reasoning": None,
                    "reasoning_content": None,
                },
                "logprobs": None,
                "finish_reason": "stop",
                "stop_reason": None,
                "token_ids": None,
            }
        ],
        "service_tier": None,
        "system_fingerprint": None,
        "usage": dict(usage) if usage is not None else _zero_usage(),
        "prompt_logprobs": None,
        "prompt_token_ids": None,
        "kv_transfer_params": None,
    }


def reconstruct(
    chat_id: Optional[str],
    content: str,
    created: Optional[int],
    model: Optional[str],
    usage: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Serialize a completed exchange as the upstream's non-streaming response.
    Insertion order, compact separators, raw UTF-8, ECMAScript numbers.
    """
    if not isinstance(content, str):
        raise TypeError(f"content must be str, got {type(content).__name__}")
    return js_dumps(response_object(chat_id, content, created, model, usage))


def request_object(messages: Iterable[Mapping[str, str]], model: str = DEFAULT_MODEL) -> dict:
    return {
        "model": model,
        "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        "stream": False,
    }


def build_request_text(messages: Iterable[Mapping[str, str]], model: str = DEFAULT_MODEL) -> str:
    """Canonical request body; sent verbatim so the bytes we hash are the bytes the server saw."""
    return canonicalize(request_object(messages, model))
