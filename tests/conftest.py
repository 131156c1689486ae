from __future__ import annotations

from typing import Any, Callable

import pytest

from benchmarks import codec
from benchmarks.config import Settings
from benchmarks.metrics import FailureCounters
from benchmarks.transit import TransitClient, VaultSession


class FakeResponse:
    """Stand-in for locust's ResponseContextManager."""

    def __init__(self, status_code: int, body: Any = None, reason: str = "OK") -> None:
        self.status_code = status_code
        self.reason = reason
        self._body = body
        self.outcome: tuple[str, str | None] | None = None

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body

    def failure(self, message: str) -> None:
        self.outcome = ("failure", message)

    def success(self) -> None:
        self.outcome = ("success", None)

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False


Responder = Callable[[dict[str, Any]], FakeResponse]


class FakeVault:
    """Records posts and answers login/encrypt/decrypt like a healthy Vault.

    Override an endpoint with ``vault.respond("encrypt", responder)``.
    """

    def __init__(self, token: str = "tok1", ciphertext: str = "vault:v1:abc") -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses: list[FakeResponse] = []
        self._stored: str | None = None
        self.token = token
        self.ciphertext = ciphertext
        self._responders: dict[str, Responder] = {
            "login": lambda body: FakeResponse(200, {"auth": {"client_token": self.token}}),
            "encrypt": self._encrypt,
            "decrypt": self._decrypt,
        }

    def respond(self, endpoint: str, responder: Responder | FakeResponse) -> None:
        if isinstance(responder, FakeResponse):
            fixed = responder
            responder = lambda body: fixed  # noqa: E731
        self._responders[endpoint] = responder

    def _encrypt(self, body: dict[str, Any]) -> FakeResponse:
        self._stored = body["plaintext"]
        return FakeResponse(200, {"data": {"ciphertext": self.ciphertext}})

    def _decrypt(self, body: dict[str, Any]) -> FakeResponse:
        return FakeResponse(200, {"data": {"plaintext": self._stored}})

    def endpoints(self) -> list[str]:
        return [call["endpoint"] for call in self.calls]

    def post(self, path: str, json: Any = None, headers: Any = None, name: Any = None,
             catch_response: bool = False) -> FakeResponse:
        if path.startswith("/v1/auth/approle/login"):
            endpoint = "login"
        elif path.startswith("/v1/transit/encrypt/"):
            endpoint = "encrypt"
        elif path.startswith("/v1/transit/decrypt/"):
            endpoint = "decrypt"
        else:
            raise AssertionError(f"unexpected path {path}")
        self.calls.append({
            "endpoint": endpoint,
            "path": path,
            "json": json,
            "headers": headers,
            "name": name,
            "catch_response": catch_response,
        })
        response = self._responders[endpoint](json)
        self.responses.append(response)
        return response


def b64(text: str) -> str:
    return codec.encode(text.encode("utf-8"))


@pytest.fixture
def settings() -> Settings:
    return Settings(role_id="role-123", secret_id="secret-456", transit_key_name="bench-key")


@pytest.fixture
def counters() -> FailureCounters:
    return FailureCounters()


@pytest.fixture
def vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def client(vault: FakeVault, settings: Settings, counters: FailureCounters) -> TransitClient:
    return TransitClient(vault, settings, counters)


@pytest.fixture
def session() -> VaultSession:
    return VaultSession()
