"""Ramping Transit benchmark.

Same user as transit.py, driven by a stepped load shape instead of a fixed
user count: 500 -> 1000 -> 1500 -> 2000 users, 30s each, then stop.
Override with BENCH_STAGES='[{"duration": 30, "users": 100}, ...]'.
"""
from __future__ import annotations

import json
import os

from locust import LoadTestShape

from benchmarks.locustfiles.transit import TransitUser  # noqa: F401

DEFAULT_STAGES: list[dict[str, int]] = [
    {"duration": 30, "users": 500},
    {"duration": 30, "users": 1000},
    {"duration": 30, "users": 1500},
    {"duration": 30, "users": 2000},
]


def load_stages(raw: str | None = None) -> list[dict[str, int]]:
    raw = os.environ.get("BENCH_STAGES", "") if raw is None else raw
    if not raw.strip():
        return DEFAULT_STAGES
    stages = json.loads(raw)
    if not isinstance(stages, list) or not stages:
        raise ValueError("BENCH_STAGES must be a non-empty JSON list")
    parsed = []
    for stage in stages:
        duration, users = int(stage["duration"]), int(stage["users"])
        if duration <= 0 or users < 0:
            raise ValueError(f"invalid stage {stage!r}")
        parsed.append({"duration": duration, "users": users})
    return parsed


class StagesShape(LoadTestShape):
    def __init__(self) -> None:
        super().__init__()
        self.stages = load_stages()

    def tick(self) -> tuple[int, float] | None:
        run_time = self.get_run_time()
        elapsed = 0
        previous = 0
        for stage in self.stages:
            elapsed += stage["duration"]
            if run_time < elapsed:
                # Reach the stage's target by the end of the stage.
                spawn_rate = max(1.0, abs(stage["users"] - previous) / stage["duration"])
                return stage["users"], spawn_rate
            previous = stage["users"]
        return None
