"""
Scheduler
=========
Background periodic jobs: volume polling, notification cleanup and the
best-effort recommendation sweep. A failing run is logged and the job
keeps its cadence; nothing is retried early.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ...core.logger import StructuredLogger, get_logger

JobFunc = Callable[[], Union[Any, Awaitable[Any]]]


class PeriodicJob:
    """Runs `func` every `interval_seconds` until stopped"""

    def __init__(self, name: str, func: JobFunc, interval_seconds: float,
                 logger: StructuredLogger, run_immediately: bool = True):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive for job '{name}'")
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.logger = logger

        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._metrics = {
            'runs_completed': 0,
            'errors': 0,
            'last_error': None
        }

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Idempotent"""
        if self.running:
            self.logger.debug("scheduler.job_already_running", {"job": self.name})
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name=f"job:{self.name}")

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_once(self) -> Any:
        """Run the job body now; errors propagate"""
        result = self.func()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _loop(self) -> None:
        if not self.run_immediately and await self._wait_interval():
            return

        while not self._stop_event.is_set():
            try:
                await self.run_once()
                self._metrics['runs_completed'] += 1
            except Exception as e:
                self._metrics['errors'] += 1
                self._metrics['last_error'] = str(e)
                self.logger.error("scheduler.job_failed", {
                    "job": self.name,
                    "error": str(e),
                    "error_type": type(e).__name__
                })

            if await self._wait_interval():
                return

    async def _wait_interval(self) -> bool:
        """True when stop was requested during the wait"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            return True
        except asyncio.TimeoutError:
            return False

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "running": self.running,
            **self._metrics
        }


class Scheduler:
    """Owns a set of PeriodicJobs and starts/stops them together"""

    def __init__(self, logger: Optional[StructuredLogger] = None):
        self.logger = logger or get_logger(__name__)
        self._jobs: Dict[str, PeriodicJob] = {}

    def add_job(self, name: str, func: JobFunc, interval_seconds: float,
                run_immediately: bool = True) -> PeriodicJob:
        if name in self._jobs:
            raise ValueError(f"Job '{name}' already registered")
        job = PeriodicJob(name, func, interval_seconds, self.logger, run_immediately)
        self._jobs[name] = job
        return job

    def get_job(self, name: str) -> Optional[PeriodicJob]:
        return self._jobs.get(name)

    @property
    def jobs(self) -> List[PeriodicJob]:
        return list(self._jobs.values())

    async def start(self) -> None:
        for job in self._jobs.values():
            await job.start()
        self.logger.info("scheduler.started", {
            "jobs": {job.name: job.interval_seconds for job in self._jobs.values()}
        })

    async def stop(self) -> None:
        for job in self._jobs.values():
            await job.stop()
        self.logger.info("scheduler.stopped", {"jobs": [job.get_stats() for job in self._jobs.values()]})

    def get_stats(self) -> List[Dict[str, Any]]:
        return [job.get_stats() for job in self._jobs.values()]
