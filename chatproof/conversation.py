# chatproof/conversation.py
"""
Conversation files: load, save and export chat histories with their proofs.

Files use the camelCase message layout of the browser client's JSON export, so
either side can read the other's files.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Union

from chatproof.core.types import Message, load_messages, now_ms


def load_conversation(path: Union[str, Path]) -> List[Message]:
    with open(path, "r", encoding="utf-8") as f:
        return load_messages(json.load(f))


def save_conversation(path: Union[str, Path], messages: List[Message]) -> None:
    data = {"messages": [m.to_dict() for m in messages], "lastUpdated": now_ms()}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def _local_time(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def format_as_json(messages: List[Message]) -> str:
    return json.dumps([m.to_dict() for m in messages], ensure_ascii=False, indent=2)


def format_as_text(messages: List[Message]) -> str:
    lines = [
        "Confidential AI Chat Conversation",
        "=" * 50,
        f"Exported: {_local_time(now_ms())}",
        f"Messages: {len(messages)}",
        "=" * 50,
        "",
    ]
    for index, msg in enumerate(messages, start=1):
        role = "You" if msg.role == "user" else "AI"
        lines.append(f"[{index}] {role} - {_local_time(msg.timestamp)}")
        lines.append(msg.content)
        if msg.verification is not None and msg.verification.verification_status is not None:
            if msg.verification.verification_status.is_verified:
                lines.append("✓ Verified response")
            else:
                lines.append("✗ Verification failed")
        lines.append("")
        lines.append("-" * 50)
        lines.append("")
    return "\n".join(lines)
