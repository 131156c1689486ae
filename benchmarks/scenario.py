"""One virtual-user iteration: login if needed, then an encrypt/decrypt round trip."""
from __future__ import annotations

import enum
import logging
import random

from benchmarks import payload
from benchmarks.metrics import FailureCounters
from benchmarks.transit import TransitClient, TransitError, VaultSession

logger = logging.getLogger(__name__)

CHECK_NAME = "decrypted text matches"


class Outcome(enum.Enum):
    AUTH_FAILED = "auth_failed"
    ENCRYPT_FAILED = "encrypt_failed"
    DECRYPT_FAILED = "decrypt_failed"
    MISMATCH = "mismatch"
    PASSED = "passed"


def run_iteration(
    session: VaultSession,
    client: TransitClient,
    counters: FailureCounters,
    payload_length: int = payload.DEFAULT_LENGTH,
    rng: random.Random | None = None,
) -> Outcome:
    """Run one iteration. Transit errors are absorbed; the outcome says what happened."""
    if not session.authenticated:
        try:
            client.login(session)
        except TransitError as e:
            logger.debug("iteration skipped, not authenticated: %s", e)
            return Outcome.AUTH_FAILED

    plaintext = payload.generate(payload_length, rng)
    logger.debug("Generated plaintext: %s", plaintext)

    try:
        ciphertext = client.encrypt(session, plaintext)
    except TransitError as e:
        logger.debug("encrypt failed: %s", e)
        return Outcome.ENCRYPT_FAILED

    try:
        decrypted = client.decrypt(session, ciphertext)
    except TransitError as e:
        logger.debug("decrypt failed: %s", e)
        return Outcome.DECRYPT_FAILED

    passed = decrypted == plaintext
    counters.record_check(passed)
    if not passed:
        logger.warning("check %r failed", CHECK_NAME)
        return Outcome.MISMATCH
    return Outcome.PASSED
