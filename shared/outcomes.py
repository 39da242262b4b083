"""
Outcome Ledger — records how wrapped external calls went.

Each call leaves one JSONL line (task, success, duration, retries, error
class) so flaky providers show up without digging through logs:
1. Failures and successes persisted to per-service JSONL files
2. In-process counters for the health endpoint
3. Writes that never break the caller when the disk is unavailable
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
import structlog

from shared.config import settings

logger = structlog.get_logger()


class OutcomeLedger:
    def __init__(self, service_name: str, log_dir: str | Path | None = None, enabled: bool = True):
        self.service_name = service_name
        self.enabled = enabled
        self.log_dir = Path(log_dir or settings.OUTCOME_LOG_DIR)
        self.log_path = self.log_dir / f"{service_name}_outcomes.jsonl"
        self._success_count = 0
        self._failure_count = 0
        self._retry_count = 0
        self._by_task: dict[str, dict[str, int]] = {}

    def record(
        self,
        task: str,
        success: bool,
        duration_ms: int = 0,
        retries: int = 0,
        error_class: str | None = None,
        error: str | None = None,
        context: dict | None = None,
    ):
        if success:
            self._success_count += 1
        else:
            self._failure_count += 1
        self._retry_count += retries
        counts = self._by_task.setdefault(task, {"success": 0, "failure": 0})
        counts["success" if success else "failure"] += 1

        if not success:
            logger.info(
                "outcome_failure",
                service=self.service_name,
                task=task,
                error_class=error_class,
                error=(error or "")[:100],
            )

        if not self.enabled:
            return

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "task": task,
            "success": success,
            "duration_ms": duration_ms,
            "retries": retries,
            "error_class": error_class,
            "error": (error or "")[:500] or None,
            "context": _safe_serialize(context or {}),
        }
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.error("outcome_log_write_failed", error=str(e))

    def get_recent_failures(self, limit: int = 10) -> list[dict]:
        if not self.log_path.exists():
            return []
        failures = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not entry.get("success"):
                    failures.append(entry)
        return failures[-limit:]

    def get_stats(self) -> dict:
        total = self._success_count + self._failure_count
        return {
            "service": self.service_name,
            "successes": self._success_count,
            "failures": self._failure_count,
            "retries": self._retry_count,
            "success_rate": round(self._success_count / total * 100, 1) if total else 100.0,
            "by_task": {k: dict(v) for k, v in self._by_task.items()},
        }


def _safe_serialize(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, (list, tuple)):
        return [_safe_serialize(x) for x in obj[:20]]
    if isinstance(obj, dict):
        return {k: _safe_serialize(v) for k, v in list(obj.items())[:20]}
    return str(obj)[:500]


_instances: dict[str, OutcomeLedger] = {}


def get_ledger(service_name: str) -> OutcomeLedger:
    """Get or create the ledger for a service."""
    if service_name not in _instances:
        _instances[service_name] = OutcomeLedger(service_name, enabled=settings.OUTCOME_LOG_ENABLED)
    return _instances[service_name]
