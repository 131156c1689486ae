"""Environment-driven settings shared by the locustfiles and the runner."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_VAULT_ADDR = "http://127.0.0.1:8200"
DEFAULT_TRANSIT_KEY = "my-key"
DEFAULT_PAYLOAD_LENGTH = 256
DEFAULT_THINK_TIME = 1.0


class ConfigError(ValueError):
    """Raised for missing or malformed benchmark settings."""


@dataclass(frozen=True)
class Settings:
    vault_addr: str = DEFAULT_VAULT_ADDR
    role_id: str | None = None
    secret_id: str | None = None
    transit_key_name: str = DEFAULT_TRANSIT_KEY
    namespace: str | None = None
    payload_length: int = DEFAULT_PAYLOAD_LENGTH
    think_time: float = DEFAULT_THINK_TIME

    def require_credentials(self) -> None:
        missing = [
            name
            for name, value in (("ROLE_ID", self.role_id), ("SECRET_ID", self.secret_id))
            if not value
        ]
        if missing:
            raise ConfigError(f"missing AppRole credentials: {', '.join(missing)}")

    def to_env(self) -> dict[str, str]:
        """Inverse of load_settings, for handing settings to a locust subprocess."""
        env = {
            "VAULT_ADDR": self.vault_addr,
            "TRANSIT_KEY_NAME": self.transit_key_name,
            "BENCH_PAYLOAD_LENGTH": str(self.payload_length),
            "BENCH_THINK_TIME": str(self.think_time),
        }
        if self.role_id:
            env["ROLE_ID"] = self.role_id
        if self.secret_id:
            env["SECRET_ID"] = self.secret_id
        if self.namespace:
            env["NAMESPACE"] = self.namespace
        return env


def _get(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name, "").strip()
    return value or None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    length_raw = _get(env, "BENCH_PAYLOAD_LENGTH") or str(DEFAULT_PAYLOAD_LENGTH)
    try:
        payload_length = int(length_raw)
    except ValueError:
        raise ConfigError(
            f"BENCH_PAYLOAD_LENGTH must be an integer (got {length_raw!r})"
        ) from None
    if payload_length < 0:
        raise ConfigError(f"BENCH_PAYLOAD_LENGTH must be >= 0 (got {payload_length})")

    think_raw = _get(env, "BENCH_THINK_TIME") or str(DEFAULT_THINK_TIME)
    try:
        think_time = float(think_raw)
    except ValueError:
        raise ConfigError(f"BENCH_THINK_TIME must be a number (got {think_raw!r})") from None
    if think_time < 0:
        raise ConfigError(f"BENCH_THINK_TIME must be >= 0 (got {think_time})")

    return Settings(
        vault_addr=(_get(env, "VAULT_ADDR") or DEFAULT_VAULT_ADDR).rstrip("/"),
        role_id=_get(env, "ROLE_ID"),
        secret_id=_get(env, "SECRET_ID"),
        transit_key_name=_get(env, "TRANSIT_KEY_NAME") or DEFAULT_TRANSIT_KEY,
        namespace=_get(env, "NAMESPACE"),
        payload_length=payload_length,
        think_time=think_time,
    )
