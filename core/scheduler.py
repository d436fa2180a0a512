# core/scheduler.py
"""
Base class for the periodic background jobs.

A job wakes every `interval_seconds`, selects the documents it cares about,
stages one conditional update per document that actually changes and writes
them in a single bulk call. Each job instance owns its own task and stats.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel

from core.clock import Clock, system_clock
from core.store import ConditionalUpdate, Eligibility, EntityStore

logger = logging.getLogger(__name__)


class JobRunState(BaseModel):
    last_run: datetime | None = None
    next_run: datetime | None = None
    execution_count: int = 0
    error_count: int = 0
    items_processed: int = 0
    total_units_changed: int = 0
    reset_count: int = 0
    average_execution_time_ms: float = 0.0
    interval_ms: int
    running: bool = False


class JobControlResult(BaseModel):
    success: bool
    message: str


class JobInfo(BaseModel):
    name: str
    interval_ms: int
    is_running: bool
    stats: JobRunState


class PeriodicJob:
    """
    Fixed-interval job driven by an asyncio task.

    The next tick is armed only once the previous one has returned, so ticks
    never overlap. `run_cycle` never raises; failures only show up in the
    logs and in `error_count`.

    Subclasses set `name`, `log_tag` and `eligibility` and implement
    `plan_update`. `preempt` and `on_start` are optional hooks.
    """

    name = "Periodic Job"
    log_tag = "JOB"
    eligibility: Optional[Eligibility] = None

    def __init__(self, interval_seconds: float, clock: Optional[Clock] = None):
        self.interval_seconds = interval_seconds
        self.clock = clock or system_clock
        self._stats = JobRunState(interval_ms=int(interval_seconds * 1000))
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._stop_event is not None

    # --- Hooks ---

    async def on_start(self, store: EntityStore) -> None:
        """Called once before the first tick is scheduled."""

    async def preempt(self, store: EntityStore, now: datetime) -> bool:
        """Return True to end the tick early (counted as a reset)."""
        return False

    def plan_update(self, entity: Dict[str, Any], now: datetime) -> Optional[Tuple[ConditionalUpdate, int]]:
        """Return the update for one entity and the units it changes, or None to skip it."""
        raise NotImplementedError

    # --- Lifecycle ---

    async def start(self, store: EntityStore) -> JobControlResult:
        if self.is_running:
            return JobControlResult(success=False, message=f"{self.name} job already running")
        if self._task is not None and not self._task.done():
            return JobControlResult(success=False, message=f"{self.name} job still finishing its last tick")

        try:
            logger.info(f"[{self.log_tag}] Starting background job...")
            await self.on_start(store)

            stop_event = asyncio.Event()
            self._task = asyncio.create_task(self._run_forever(store, stop_event), name=self.name)
            self._stop_event = stop_event
            self._stats.running = True
            self._stats.next_run = self.clock.now() + timedelta(seconds=self.interval_seconds)
        except Exception as e:
            logger.error(f"[{self.log_tag}] Failed to start: {e}", exc_info=True)
            return JobControlResult(success=False, message=str(e) or "Unknown error")

        logger.info(f"[{self.log_tag}] Started with {self.interval_seconds:g}s interval")
        return JobControlResult(
            success=True,
            message=f"{self.name} job started (interval: {self.interval_seconds:g}s)",
        )

    def stop(self) -> JobControlResult:
        """Stop scheduling new ticks. A tick already in flight runs to completion."""
        if not self.is_running:
            return JobControlResult(success=False, message=f"{self.name} job not running")

        self._stop_event.set()
        self._stop_event = None
        self._stats.running = False
        self._stats.next_run = None

        logger.info(f"[{self.log_tag}] Stopped")
        return JobControlResult(success=True, message=f"{self.name} job stopped successfully")

    async def _run_forever(self, store: EntityStore, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            await self.run_cycle(store)

            if not stop_event.is_set():
                self._stats.next_run = self.clock.now() + timedelta(seconds=self.interval_seconds)

    # --- Stats ---

    def get_stats(self) -> JobRunState:
        return self._stats.model_copy()

    def get_info(self) -> JobInfo:
        return JobInfo(
            name=self.name,
            interval_ms=self._stats.interval_ms,
            is_running=self.is_running,
            stats=self.get_stats(),
        )

    def _record_success(self, started: float, now: datetime) -> float:
        execution_ms = (time.perf_counter() - started) * 1000
        stats = self._stats
        stats.last_run = now
        stats.execution_count += 1
        stats.average_execution_time_ms = (
            stats.average_execution_time_ms * (stats.execution_count - 1) + execution_ms
        ) / stats.execution_count
        return execution_ms

    # --- Tick ---

    async def run_cycle(self, store: EntityStore) -> int:
        """
        Run one tick against `store`.

        Returns:
            The number of entities updated in this tick.
        """
        started = time.perf_counter()

        try:
            now = self.clock.now()
            logger.info(f"[{self.log_tag}] Starting cycle...")

            if await self.preempt(store, now):
                self._stats.reset_count += 1
                self._record_success(started, now)
                return 0

            entities = await store.find_eligible(self.eligibility)
            if not entities:
                logger.info(f"[{self.log_tag}] No eligible entities")
                self._record_success(started, now)
                return 0

            logger.info(f"[{self.log_tag}] Found {len(entities)} eligible entities")

            updates = []
            units_changed = 0
            for entity in entities:
                try:
                    planned = self.plan_update(entity, now)
                except Exception as e:
                    logger.warning(
                        f"[{self.log_tag}] Error processing entity {entity.get('_id')}: {e}",
                        exc_info=True,
                    )
                    continue

                if planned is None:
                    continue
                update, units = planned
                updates.append(update)
                units_changed += units

            if updates:
                await store.bulk_update(updates)
                logger.info(
                    f"[{self.log_tag}] Changed {units_changed} units across {len(updates)} entities"
                )
            else:
                logger.info(f"[{self.log_tag}] No entities ready this cycle")

            self._stats.items_processed += len(updates)
            self._stats.total_units_changed += units_changed
            execution_ms = self._record_success(started, now)

            logger.info(f"[{self.log_tag}] Cycle complete in {execution_ms:.0f}ms")
            return len(updates)

        except Exception as e:
            # The next tick is the retry
            self._stats.error_count += 1
            logger.error(f"[{self.log_tag}] Error during cycle: {e}", exc_info=True)
            return 0
