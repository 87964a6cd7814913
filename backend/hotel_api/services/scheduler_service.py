"""Background task scheduler for periodic jobs (payment sweep)."""

import asyncio
import logging
import os
import socket
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class JobLease:
    """Single-runner lease backed by Redis ``SET NX EX``.

    Each instance tries to take the lease before a run; whoever holds it runs
    the job and the others skip that cycle. The lease expires on its own, so
    a crashed holder never blocks the job for longer than one interval.
    """

    def __init__(self, redis_client, prefix: str = "hotel:job-lease"):
        self._redis = redis_client
        self._prefix = prefix
        self._owner = f"{socket.gethostname()}:{os.getpid()}"

    def acquire(self, name: str, ttl_seconds: int) -> bool:
        try:
            return bool(self._redis.set(f"{self._prefix}:{name}", self._owner, nx=True, ex=max(ttl_seconds, 1)))
        except Exception as e:
            # Without the broker every instance runs its own (idempotent) cycle
            logger.warning(f"Job lease unavailable for '{name}', running locally: {e}")
            return True


class TaskScheduler:
    """Lightweight asyncio-based task scheduler.

    Runs registered tasks at fixed intervals. Synchronous jobs run in a worker
    thread so database work never blocks the event loop. State is ephemeral.
    """

    def __init__(self, lease: Optional[JobLease] = None, tick_seconds: float = 1.0):
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._lease = lease
        self._tick = tick_seconds

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the scheduler loop."""
        self._running = True
        logger.info("Task scheduler started")

        while self._running:
            now = datetime.now(timezone.utc)
            for name, task in list(self._tasks.items()):
                if now >= task["next_run"]:
                    await self._run(name, task, now)
            await asyncio.sleep(self._tick)

    async def _run(self, name: str, task: Dict[str, Any], now: datetime) -> None:
        task["next_run"] = now + task["interval"]
        if self._lease is not None:
            ttl = int(task["interval"].total_seconds()) - 1
            if not self._lease.acquire(name, ttl):
                task["skipped_count"] += 1
                logger.debug(f"Scheduled task '{name}' skipped, lease held elsewhere")
                return
        try:
            if asyncio.iscoroutinefunction(task["func"]):
                await task["func"]()
            else:
                await asyncio.to_thread(task["func"])
            task["last_run"] = now
            task["run_count"] += 1
            task["last_error"] = None
            logger.debug(f"Scheduled task '{name}' completed")
        except Exception as e:
            task["last_error"] = str(e)
            logger.error(f"Scheduled task '{name}' failed: {e}", exc_info=True)

    async def run_now(self, name: str) -> None:
        """Run one task immediately, outside its schedule."""
        await self._run(name, self._tasks[name], datetime.now(timezone.utc))

    def stop(self):
        self._running = False

    def add_task(self, name: str, func: Callable, interval_seconds: int, first_run_delay: int | None = None):
        delay = interval_seconds if first_run_delay is None else first_run_delay
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + timedelta(seconds=delay),
            "last_run": None,
            "run_count": 0,
            "skipped_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    def get_status(self) -> Dict[str, Any]:
        return {
            name: {
                "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                "next_run": t["next_run"].isoformat(),
                "interval_seconds": int(t["interval"].total_seconds()),
                "run_count": t["run_count"],
                "skipped_count": t["skipped_count"],
                "last_error": t["last_error"],
            }
            for name, t in self._tasks.items()
        }
