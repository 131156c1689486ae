#!/usr/bin/env python3
"""Vault Transit Benchmark Suite.

Measures throughput and latency of AppRole login and Transit encrypt/decrypt
against a Vault server using Locust.

Usage:
    ROLE_ID=... SECRET_ID=... python run_benchmark.py --host http://127.0.0.1:8200
    python run_benchmark.py --users 50 --duration 300
    python run_benchmark.py --stages
"""
from __future__ import annotations

import argparse
import csv
import os
import subprocess
import sys
import time
from dataclasses import replace
from pathlib import Path

import requests as req

from benchmarks.config import ConfigError, Settings, load_settings
from benchmarks.transit import LOGIN_PATH

# --- Constants ---

DEFAULT_USERS = 20
DEFAULT_DURATION_S = 120
LOCUSTFILES_DIR = Path(__file__).parent / "locustfiles"
SUMMARY_COLUMNS = [
    ("Request Count", "reqs"),
    ("Failure Count", "fails"),
    ("Average Response Time", "avg"),
    ("50%", "p50"),
    ("95%", "p95"),
    ("99%", "p99"),
    ("Requests/s", "req/s"),
]


# --- Vault Interaction ---


def vault_headers(settings: Settings) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.namespace:
        headers["X-Vault-Namespace"] = settings.namespace
    return headers


def wait_for_unsealed_vault(settings: Settings, timeout: int = 30) -> bool:
    """Wait until Vault reports initialized and unsealed. Returns True if ready."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            # Standbys still serve Transit; report them as healthy.
            r = req.get(
                f"{settings.vault_addr}/v1/sys/health",
                params={"standbyok": "true", "perfstandbyok": "true"},
                headers=vault_headers(settings),
                timeout=2,
            )
            data = r.json()
            if data.get("initialized") and not data.get("sealed"):
                return True
        except (req.RequestException, ValueError):
            pass
        time.sleep(2)
    return False


def verify_approle(settings: Settings) -> None:
    """Verify the AppRole credentials work before running benchmarks."""
    try:
        r = req.post(
            f"{settings.vault_addr}{LOGIN_PATH}",
            json={"role_id": settings.role_id, "secret_id": settings.secret_id},
            headers=vault_headers(settings),
            timeout=5,
        )
    except req.RequestException as e:
        raise RuntimeError(f"Cannot reach {settings.vault_addr}: {e}") from e

    if r.status_code in (400, 403):
        raise RuntimeError(
            f"AppRole login rejected ({r.status_code}). Check ROLE_ID and SECRET_ID, "
            f"and NAMESPACE if the role lives in a namespace."
        )
    r.raise_for_status()


# --- Scenario Runner ---


def run_scenario(
    locustfile: str,
    host: str,
    users: int,
    duration_s: int | None,
    csv_prefix: str,
    env_vars: dict[str, str],
) -> bool:
    """Run a Locust scenario via CLI. Returns True if successful.

    With duration_s=None the locustfile's LoadTestShape decides users and run time.
    """
    env = os.environ.copy()
    env.update(env_vars)

    cmd = [
        sys.executable, "-m", "locust",
        "--headless",
        "--locustfile", str(LOCUSTFILES_DIR / locustfile),
        "--host", host,
        "--csv", csv_prefix,
    ]
    if duration_s is not None:
        cmd += [
            "--users", str(users),
            "--spawn-rate", str(min(users, 10)),
            "--run-time", f"{duration_s}s",
        ]

    result = subprocess.run(cmd, env=env)
    return result.returncode == 0


# --- Results ---


def read_stats(csv_prefix: str) -> list[dict[str, str]]:
    """Read the per-request rows locust wrote to <prefix>_stats.csv."""
    path = Path(f"{csv_prefix}_stats.csv")
    if not path.exists():
        return []
    with open(path, newline="") as f:
        return list(csv.DictReader(f))


def format_summary(rows: list[dict[str, str]]) -> list[str]:
    header = f"  {'name':<18}" + "".join(f"{label:>10}" for _, label in SUMMARY_COLUMNS)
    lines = [header]
    for row in rows:
        cells = ""
        for column, _ in SUMMARY_COLUMNS:
            value = row.get(column, "")
            try:
                cells += f"{float(value):>10.1f}" if "." in value else f"{int(value):>10}"
            except ValueError:
                cells += f"{value:>10}"
        lines.append(f"  {row.get('Name', ''):<18}{cells}")
    return lines


# --- Main ---


def main() -> None:
    p = argparse.ArgumentParser(
        description="Vault Transit Benchmark Suite",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  ROLE_ID=... SECRET_ID=... python run_benchmark.py\n"
            "  python run_benchmark.py --users 100 --duration 300\n"
            "  python run_benchmark.py --stages\n"
            "  NAMESPACE=team-a TRANSIT_KEY_NAME=bench python run_benchmark.py\n"
        ),
    )
    p.add_argument(
        "--host",
        default=os.environ.get("VAULT_ADDR", "http://127.0.0.1:8200"),
        help="Vault address (default: VAULT_ADDR env var or %(default)s)",
    )
    p.add_argument(
        "--users",
        type=int,
        default=DEFAULT_USERS,
        help="Concurrent virtual users (default: %(default)s)",
    )
    p.add_argument(
        "--duration",
        type=int,
        default=DEFAULT_DURATION_S,
        help="Run time in seconds (default: %(default)s)",
    )
    p.add_argument(
        "--stages",
        action="store_true",
        help="Ramp users in stages (500/1000/1500/2000, or BENCH_STAGES) instead of --users/--duration",
    )
    p.add_argument(
        "--payload-length",
        type=int,
        default=None,
        help="Plaintext length in characters (default: BENCH_PAYLOAD_LENGTH or 256)",
    )
    p.add_argument(
        "--output-dir",
        default=str(Path(__file__).parent / "results"),
        help="Directory for CSV output (default: benchmarks/results/)",
    )
    args = p.parse_args()

    print("Vault Transit Benchmark Suite")
    print("=" * 40)

    # 1. Settings
    try:
        settings = replace(load_settings(), vault_addr=args.host.rstrip("/"))
        if args.payload_length is not None:
            if args.payload_length < 0:
                raise ConfigError(f"--payload-length must be >= 0 (got {args.payload_length})")
            settings = replace(settings, payload_length=args.payload_length)
        settings.require_credentials()
    except ConfigError as e:
        print(f"  ERROR: {e}")
        sys.exit(1)

    print(f"\nTarget: {settings.vault_addr}")
    print(f"  Transit key: {settings.transit_key_name}")
    print(f"  Namespace:   {settings.namespace or '(none)'}")
    print(f"  Payload:     {settings.payload_length} chars")

    # 2. Vault health
    print("\nWaiting for Vault to be unsealed...")
    if not wait_for_unsealed_vault(settings):
        print("  ERROR: Vault is unreachable, uninitialized or sealed.")
        sys.exit(1)
    print("  Vault ready.")

    # 3. Credentials
    try:
        verify_approle(settings)
    except (RuntimeError, req.RequestException) as e:
        print(f"  ERROR: {e}")
        sys.exit(1)
    print("  AppRole credentials verified.")

    # 4. Output directory
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    # 5. Run
    if args.stages:
        locustfile, duration, name = "transit_stages.py", None, "transit (staged)"
        prefix = str(output_dir / "transit-stages")
    else:
        locustfile, duration = "transit.py", args.duration
        name = f"transit ({args.users}u, {args.duration}s)"
        prefix = str(output_dir / f"transit-{args.users}u")

    print(f"\n{'='*40}")
    print(name)
    print(f"{'='*40}")
    ok = run_scenario(locustfile, settings.vault_addr, args.users, duration, prefix, settings.to_env())

    # 6. Summary
    print(f"\n{'='*40}")
    print("Summary")
    print(f"{'='*40}")
    rows = read_stats(prefix)
    if rows:
        for line in format_summary(rows):
            print(line)
    else:
        print("  No stats written.")
    if not ok:
        print(f"\n  WARNING: {name} exited with errors")
    print(f"\n  Results: {args.output_dir}/")
    print(f"\nCSV files can be opened in any spreadsheet or parsed with pandas.")
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
