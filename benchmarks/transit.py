"""Vault AppRole login and Transit encrypt/decrypt over a locust HTTP session.

The client is handed the harness's session (``HttpUser.client``) so every call
is timed and recorded by locust under a stable request name. Failures are
counted, logged and raised as a ``TransitError`` subclass for the scenario to
absorb.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from benchmarks import codec
from benchmarks.config import Settings
from benchmarks.metrics import FailureCounters

logger = logging.getLogger(__name__)

LOGIN_PATH = "/v1/auth/approle/login"
ENCRYPT_PATH = "/v1/transit/encrypt/{key}"
DECRYPT_PATH = "/v1/transit/decrypt/{key}"

LOGIN_NAME = "approle login"
ENCRYPT_NAME = "transit encrypt"
DECRYPT_NAME = "transit decrypt"

T = TypeVar("T")


class TransitError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(TransitError):
    pass


class EncryptError(TransitError):
    pass


class DecryptError(TransitError):
    pass


class MalformedResponseError(TransitError):
    """A 200 response whose body lacks the expected fields."""


def _field(body: Any, *path: str, allow_empty: bool = True) -> str:
    node = body
    for key in path:
        if not isinstance(node, dict) or key not in node:
            raise MalformedResponseError(f"response missing {'.'.join(path)}")
        node = node[key]
    if not isinstance(node, str):
        raise MalformedResponseError(f"{'.'.join(path)} is not a string")
    if not node and not allow_empty:
        raise MalformedResponseError(f"{'.'.join(path)} is empty")
    return node


@dataclass(frozen=True)
class LoginResponse:
    client_token: str

    @classmethod
    def from_json(cls, body: Any) -> LoginResponse:
        return cls(client_token=_field(body, "auth", "client_token", allow_empty=False))


@dataclass(frozen=True)
class EncryptResponse:
    ciphertext: str

    @classmethod
    def from_json(cls, body: Any) -> EncryptResponse:
        return cls(ciphertext=_field(body, "data", "ciphertext", allow_empty=False))


@dataclass(frozen=True)
class DecryptResponse:
    plaintext: str

    @classmethod
    def from_json(cls, body: Any) -> DecryptResponse:
        encoded = _field(body, "data", "plaintext")
        try:
            return cls(plaintext=codec.decode(encoded).decode("utf-8"))
        except (codec.CodecError, UnicodeDecodeError) as e:
            raise MalformedResponseError(f"data.plaintext is not valid base64 text: {e}") from e


@dataclass
class VaultSession:
    """Per-virtual-user state. The token is set once by login and kept."""

    token: str | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


class TransitClient:
    def __init__(self, http: Any, settings: Settings, counters: FailureCounters) -> None:
        self.http = http
        self.settings = settings
        self.counters = counters

    def headers(self, token: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["X-Vault-Token"] = token
        if self.settings.namespace:
            headers["X-Vault-Namespace"] = self.settings.namespace
        return headers

    def login(self, session: VaultSession) -> str:
        result = self._exchange(
            LOGIN_PATH,
            {"role_id": self.settings.role_id, "secret_id": self.settings.secret_id},
            name=LOGIN_NAME,
            token=None,
            parse=LoginResponse.from_json,
            error_cls=AuthError,
            label="Authentication",
        )
        session.token = result.client_token
        return session.token

    def encrypt(self, session: VaultSession, plaintext: str) -> str:
        result = self._exchange(
            ENCRYPT_PATH.format(key=self.settings.transit_key_name),
            {"plaintext": codec.encode(plaintext.encode("utf-8"))},
            name=ENCRYPT_NAME,
            token=session.token,
            parse=EncryptResponse.from_json,
            error_cls=EncryptError,
            label="Encryption",
        )
        return result.ciphertext

    def decrypt(self, session: VaultSession, ciphertext: str) -> str:
        result = self._exchange(
            DECRYPT_PATH.format(key=self.settings.transit_key_name),
            {"ciphertext": ciphertext},
            name=DECRYPT_NAME,
            token=session.token,
            parse=DecryptResponse.from_json,
            error_cls=DecryptError,
            label="Decryption",
        )
        return result.plaintext

    def _exchange(
        self,
        path: str,
        payload: dict[str, Any],
        *,
        name: str,
        token: str | None,
        parse: Callable[[Any], T],
        error_cls: type[TransitError],
        label: str,
    ) -> T:
        error: TransitError | None = None
        result: T | None = None

        with self.http.post(
            path,
            json=payload,
            headers=self.headers(token),
            name=name,
            catch_response=True,
        ) as response:
            if response.status_code != 200:
                response.failure(f"HTTP {response.status_code}")
                error = error_cls(
                    f"{label} failed: {response.status_code} {response.reason or ''}".rstrip(),
                    status_code=response.status_code,
                )
            else:
                try:
                    result = parse(response.json())
                except ValueError:
                    error = error_cls(f"{label} failed: response is not JSON", status_code=200)
                except MalformedResponseError as e:
                    error = error_cls(f"{label} failed: {e}", status_code=200)
                if error is not None:
                    response.failure(str(error))
                else:
                    response.success()

        if error is not None:
            self._count(error)
            logger.error("%s", error)
            raise error
        return result  # type: ignore[return-value]

    def _count(self, error: TransitError) -> None:
        if isinstance(error, AuthError):
            self.counters.auth_failures += 1
        elif isinstance(error, EncryptError):
            self.counters.encrypt_failures += 1
        elif isinstance(error, DecryptError):
            self.counters.decrypt_failures += 1
