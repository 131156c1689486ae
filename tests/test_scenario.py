from __future__ import annotations

import random

from benchmarks.codec import decode
from benchmarks.payload import ALPHABET
from benchmarks.scenario import Outcome, run_iteration
from benchmarks.transit import TransitClient, VaultSession
from tests.conftest import FakeResponse, FakeVault, b64


def test_end_to_end_round_trip_passes_check(client, vault, session, counters):
    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.PASSED
    assert vault.endpoints() == ["login", "encrypt", "decrypt"]
    assert session.token == "tok1"
    assert vault.calls[2]["json"] == {"ciphertext": "vault:v1:abc"}
    assert vault.calls[1]["headers"]["X-Vault-Token"] == "tok1"
    assert counters.checks_passed == 1
    assert counters.checks_failed == 0


def test_payload_is_256_alphanumerics(client, vault, session, counters):
    run_iteration(session, client, counters, rng=random.Random(7))
    sent = vault.calls[1]["json"]["plaintext"]
    plaintext = decode(sent).decode("ascii")
    assert len(plaintext) == 256
    assert set(plaintext) <= set(ALPHABET)


def test_login_403_counts_once_and_skips_transit(client, vault, session, counters):
    vault.respond("login", FakeResponse(403, {"errors": ["permission denied"]}, "Forbidden"))

    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.AUTH_FAILED
    assert counters.auth_failures == 1
    assert vault.endpoints() == ["login"]
    assert counters.checks_passed == counters.checks_failed == 0


def test_failed_login_retried_next_iteration(client, vault, session, counters):
    vault.respond("login", FakeResponse(403, None, "Forbidden"))
    run_iteration(session, client, counters)
    vault.respond("login", FakeResponse(200, {"auth": {"client_token": "tok2"}}))
    assert run_iteration(session, client, counters) is Outcome.PASSED
    assert session.token == "tok2"
    assert counters.auth_failures == 1


def test_login_not_repeated_while_token_held(client, vault, session, counters):
    for _ in range(5):
        run_iteration(session, client, counters)
    assert vault.endpoints().count("login") == 1
    assert counters.checks_passed == 5


def test_existing_token_skips_login(client, vault, counters):
    session = VaultSession(token="preset")
    run_iteration(session, client, counters)
    assert "login" not in vault.endpoints()
    assert vault.calls[0]["headers"]["X-Vault-Token"] == "preset"


def test_no_decrypt_after_failed_encrypt(client, vault, session, counters):
    vault.respond("encrypt", FakeResponse(500, None, "Internal Server Error"))

    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.ENCRYPT_FAILED
    assert "decrypt" not in vault.endpoints()
    assert counters.encrypt_failures == 1


def test_no_decrypt_after_empty_ciphertext(client, vault, session, counters):
    vault.respond("encrypt", FakeResponse(200, {"data": {"ciphertext": ""}}))

    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.ENCRYPT_FAILED
    assert "decrypt" not in vault.endpoints()
    assert counters.encrypt_failures == 1
    # The locust stats row agrees with the counter.
    assert vault.responses[-1].outcome[0] == "failure"


def test_empty_client_token_is_not_authenticated(settings, counters):
    vault = FakeVault(token="")
    client = TransitClient(vault, settings, counters)
    session = VaultSession()

    outcomes = [run_iteration(session, client, counters) for _ in range(3)]

    assert outcomes == [Outcome.AUTH_FAILED] * 3
    assert vault.endpoints() == ["login", "login", "login"]
    assert counters.auth_failures == 3
    assert counters.encrypt_failures == 0
    assert not session.authenticated
    assert all(r.outcome[0] == "failure" for r in vault.responses)


def test_empty_token_on_session_triggers_login(client, vault, counters):
    session = VaultSession(token="")
    assert run_iteration(session, client, counters) is Outcome.PASSED
    assert vault.endpoints()[0] == "login"
    assert session.token == "tok1"


def test_decrypt_failure_absorbed(client, vault, session, counters):
    vault.respond("decrypt", FakeResponse(400, None, "Bad Request"))

    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.DECRYPT_FAILED
    assert counters.decrypt_failures == 1
    assert counters.checks_passed == counters.checks_failed == 0


def test_mismatched_plaintext_fails_check(client, vault, session, counters):
    vault.respond("decrypt", FakeResponse(200, {"data": {"plaintext": b64("something else")}}))

    outcome = run_iteration(session, client, counters)

    assert outcome is Outcome.MISMATCH
    assert counters.checks_failed == 1
    assert counters.decrypt_failures == 0
