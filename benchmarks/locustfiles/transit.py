"""Transit round-trip benchmark: AppRole login once, then encrypt/decrypt forever."""
from __future__ import annotations

import logging
from typing import Any

from locust import HttpUser, constant, events, task
from locust.runners import MasterRunner, WorkerRunner

from benchmarks.config import load_settings
from benchmarks.metrics import counters
from benchmarks.scenario import CHECK_NAME, run_iteration
from benchmarks.transit import TransitClient, VaultSession

logger = logging.getLogger(__name__)

settings = load_settings()

REPORT_KEY = "transit_counters"


class TransitUser(HttpUser):
    host = settings.vault_addr
    wait_time = constant(settings.think_time)

    def on_start(self) -> None:
        self.session = VaultSession()
        self.transit = TransitClient(self.client, settings, counters)

    @task
    def round_trip(self) -> None:
        run_iteration(self.session, self.transit, counters, settings.payload_length)


@events.init.add_listener
def on_locust_init(environment: Any, **kwargs: Any) -> None:
    if isinstance(environment.runner, MasterRunner):
        mode = "master"
    elif isinstance(environment.runner, WorkerRunner):
        mode = "worker"
    else:
        mode = "local"
    logger.info(
        "Transit benchmark (%s): key=%s namespace=%s payload=%d",
        mode,
        settings.transit_key_name,
        settings.namespace or "-",
        settings.payload_length,
    )


@events.test_start.add_listener
def on_test_start(environment: Any, **kwargs: Any) -> None:
    counters.reset()


@events.report_to_master.add_listener
def on_report_to_master(client_id: str, data: dict[str, Any], **kwargs: Any) -> None:
    # Ship deltas; the master sums them.
    data[REPORT_KEY] = counters.snapshot()
    counters.reset()


@events.worker_report.add_listener
def on_worker_report(client_id: str, data: dict[str, Any], **kwargs: Any) -> None:
    counters.merge(data.get(REPORT_KEY, {}))


@events.test_stop.add_listener
def on_test_stop(environment: Any, **kwargs: Any) -> None:
    if isinstance(environment.runner, WorkerRunner):
        return
    logger.info("auth_failures=%d", counters.auth_failures)
    logger.info("encrypt_failures=%d", counters.encrypt_failures)
    logger.info("decrypt_failures=%d", counters.decrypt_failures)
    rate = counters.check_pass_rate
    if rate is None:
        logger.warning("check %r never ran", CHECK_NAME)
    else:
        logger.info(
            "check %r: %d passed, %d failed (%.2f%%)",
            CHECK_NAME,
            counters.checks_passed,
            counters.checks_failed,
            rate * 100,
        )
