"""Failure and check counters, merged across locust workers."""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields


@dataclass
class FailureCounters:
    auth_failures: int = 0
    encrypt_failures: int = 0
    decrypt_failures: int = 0
    checks_passed: int = 0
    checks_failed: int = 0

    def record_check(self, passed: bool) -> None:
        if passed:
            self.checks_passed += 1
        else:
            self.checks_failed += 1

    @property
    def check_pass_rate(self) -> float | None:
        total = self.checks_passed + self.checks_failed
        if total == 0:
            return None
        return self.checks_passed / total

    def snapshot(self) -> dict[str, int]:
        return asdict(self)

    def merge(self, data: dict[str, int]) -> None:
        """Add another process's counts. Unknown keys are ignored."""
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + int(data.get(f.name, 0)))

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, 0)


# One set per process; workers ship deltas to the master via report_to_master.
counters = FailureCounters()
