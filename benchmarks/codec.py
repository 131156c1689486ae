"""Base64 codec for Transit payloads.

Vault's Transit engine takes and returns plaintext as standard base64
(RFC 4648, ``+/`` alphabet, ``=`` padding). Kept as an explicit, table-driven
codec so the load generator's wire format is pinned down independently of
the interpreter.
"""
from __future__ import annotations

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
PAD = "="
PAD_INDEX = 64

_INDEX: dict[str, int] = {ch: i for i, ch in enumerate(ALPHABET)}
_INDEX[PAD] = PAD_INDEX


class CodecError(ValueError):
    """Raised when text is not valid padded base64."""


def encode(data: bytes) -> str:
    """Encode bytes to base64 text, three bytes per four symbols."""
    out: list[str] = []
    for i in range(0, len(data), 3):
        group = data[i:i + 3]
        c1 = group[0]
        c2 = group[1] if len(group) > 1 else 0
        c3 = group[2] if len(group) > 2 else 0

        e1 = c1 >> 2
        e2 = ((c1 & 3) << 4) | (c2 >> 4)
        e3 = ((c2 & 15) << 2) | (c3 >> 6)
        e4 = c3 & 63

        if len(group) == 1:
            e3 = e4 = PAD_INDEX
        elif len(group) == 2:
            e4 = PAD_INDEX

        out.append(_symbol(e1) + _symbol(e2) + _symbol(e3) + _symbol(e4))
    return "".join(out)


def decode(text: str) -> bytes:
    """Decode padded base64 text back to bytes.

    Raises CodecError on a length that is not a multiple of four, on symbols
    outside the alphabet, and on misplaced padding.
    """
    if len(text) % 4:
        raise CodecError(f"base64 length must be a multiple of 4 (got {len(text)})")

    out = bytearray()
    last = len(text) - 4
    for i in range(0, len(text), 4):
        e1, e2, e3, e4 = (_lookup(text, i + j) for j in range(4))

        if e1 == PAD_INDEX or e2 == PAD_INDEX:
            raise CodecError(f"padding in data position at offset {i}")
        if (e3 == PAD_INDEX or e4 == PAD_INDEX) and i != last:
            raise CodecError(f"padding before end of input at offset {i}")
        if e3 == PAD_INDEX and e4 != PAD_INDEX:
            raise CodecError(f"data symbol after padding at offset {i + 3}")

        out.append(((e1 << 2) | (e2 >> 4)) & 0xFF)
        if e3 != PAD_INDEX:
            out.append((((e2 & 15) << 4) | (e3 >> 2)) & 0xFF)
        if e4 != PAD_INDEX:
            out.append((((e3 & 3) << 6) | e4) & 0xFF)
    return bytes(out)


def _symbol(index: int) -> str:
    return PAD if index == PAD_INDEX else ALPHABET[index]


def _lookup(text: str, pos: int) -> int:
    try:
        return _INDEX[text[pos]]
    except KeyError:
        raise CodecError(f"invalid base64 symbol {text[pos]!r} at offset {pos}") from None
