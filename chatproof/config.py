# chatproof/config.py
import os
from dataclasses import dataclass
from typing import Optional

from chatproof.errors import ConfigError

DEFAULT_API_BASE = "https://api.redpill.ai/v1"
DEFAULT_MODEL = "phala/deepseek-chat-v3-0324"
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    """Client configuration. Resolution order: explicit argument → environment → default."""
    api_key: Optional[str] = None
    api_base: str = DEFAULT_API_BASE
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
    ) -> "Settings":
        timeout_raw = os.environ.get("CHATPROOF_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigError(f"CHATPROOF_TIMEOUT must be a number, got {timeout_raw!r}")

        return cls(
            api_key=api_key or os.environ.get("CHATPROOF_API_KEY") or None,
            api_base=(api_base or os.environ.get("CHATPROOF_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
            model=model or os.environ.get("CHATPROOF_MODEL") or DEFAULT_MODEL,
            timeout=timeout,
        )

    def require_api_key(self) -> str:
        if not self.api_key or self.api_key == "your_api_key_here":
            raise ConfigError("API key not configured. Set CHATPROOF_API_KEY or pass --api-key.")
        return self.api_key
