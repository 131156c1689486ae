"""Random plaintext payloads for the round-trip benchmark."""
from __future__ import annotations

import random
import string

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

DEFAULT_LENGTH = 256


def generate(length: int = DEFAULT_LENGTH, rng: random.Random | None = None) -> str:
    """Return `length` alphanumeric characters. Not suitable for secrets."""
    if length < 0:
        raise ValueError(f"length must be >= 0 (got {length})")
    rng = rng or random
    return "".join(rng.choice(ALPHABET) for _ in range(length))
