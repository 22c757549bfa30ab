# chatproof/core/encoding.py
import binascii


def strip_0x(value: str) -> str:
    """Drop a leading 0x / 0X prefix if present."""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def hex_decode(value: str) -> bytes:
    """Decode hex (with or without 0x prefix) to bytes. Raises ValueError on bad input."""
    if not isinstance(value, str):
        raise TypeError(f"hex value must be str, got {type(value).__name__}")
    raw = strip_0x(value.strip())
    if len(raw) % 2:
        raise ValueError("hex string has odd length")
    try:
        return binascii.unhexlify(raw)
    except binascii.Error as e:
        raise ValueError(f"invalid hex encoding: {e}") from e


def hex_encode(data: bytes, prefix: bool = True) -> str:
    """Lowercase hex, 0x-prefixed by default (Ethereum style)."""
    encoded = data.hex()
    return "0x" + encoded if prefix else encoded
