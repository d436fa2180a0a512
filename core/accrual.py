# core/accrual.py
"""
Reset windows and harvest accrual math.

Reset buckets are UTC half-days, rolling over at midnight and noon. Within a
half-day, tiles left of the midpoint carry the "AM" tag and the rest "PM", so
the two map halves never share a bucket. A player may harvest a tile once per
bucket.

Nothing here touches the database; the harvest endpoints and the background
jobs call into it.
"""

import math
import random
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from core.clock import Clock, system_clock

# --- Game Configuration ---
RESET_MIDPOINT_X = 76  # Tiles 1-75 are AM tiles, 76-150 PM tiles
BUCKET_LENGTH = timedelta(hours=12)
MORNING_TAG = "AM"
EVENING_TAG = "PM"

HARVEST_MIN_AMOUNT = 800
HARVEST_MAX_AMOUNT = 1500

DEFAULT_CROWD_CAP = 20


class ResetWindow(BaseModel):
    """The reset bucket a key is in right now. Derived, never stored."""
    bucket_id: str
    opens_at: datetime
    closes_at: datetime


class ResetWindowAccrual:
    """
    Bucket lookup and yield math for a given clock.

    Usage:
        accrual = ResetWindowAccrual()
        accrual.current_bucket(50)        # "2025-10-16T00-AM"
        accrual.time_until_next_bucket(50)
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        midpoint: int = RESET_MIDPOINT_X,
        rng: Optional[random.Random] = None,
    ):
        self.clock = clock or system_clock
        self.midpoint = midpoint
        self.rng = rng or random.Random()

    def tag_for(self, key) -> str:
        return MORNING_TAG if key < self.midpoint else EVENING_TAG

    def _window_at(self, key, now: datetime) -> ResetWindow:
        opens_at = now.replace(hour=0 if now.hour < 12 else 12, minute=0, second=0, microsecond=0)
        return ResetWindow(
            bucket_id=f"{opens_at:%Y-%m-%dT%H}-{self.tag_for(key)}",
            opens_at=opens_at,
            closes_at=opens_at + BUCKET_LENGTH,
        )

    def current_bucket(self, key) -> str:
        """
        Get the current reset period identifier for a key.

        The identifier changes at every UTC midnight and noon.

        Returns:
            A string like "2025-10-16T00-AM" or "2025-10-16T12-PM".
        """
        return self._window_at(key, self.clock.now()).bucket_id

    def current_window(self, key) -> ResetWindow:
        return self._window_at(key, self.clock.now())

    def time_until_next_bucket(self, key) -> timedelta:
        """Time until the next midnight or noon UTC boundary, in (0, 12h]."""
        now = self.clock.now()
        return self._window_at(key, now).closes_at - now

    def base_yield(self) -> int:
        """Random unmodified harvest amount in [HARVEST_MIN_AMOUNT, HARVEST_MAX_AMOUNT]."""
        return self.rng.randint(HARVEST_MIN_AMOUNT, HARVEST_MAX_AMOUNT)

    @staticmethod
    def apply_bonuses(base: float, permanent_bonus_pct: float, temporary_bonus_pct: float) -> int:
        """
        Applies percentage bonuses to a base amount.

        Args:
            base: The unmodified amount.
            permanent_bonus_pct: Bonus from diggers, e.g. 25 for +25%.
            temporary_bonus_pct: Bonus from active boosts.

        Returns:
            The floored result. A negative total bonus can push it below
            base but never below zero.
        """
        multiplier = 1 + (permanent_bonus_pct + temporary_bonus_pct) / 100
        return max(0, math.floor(base * multiplier))

    @staticmethod
    def diminishing_crowd_bonus(
        actor_count: int,
        per_actor_bonus_fraction: float,
        cap: int = DEFAULT_CROWD_CAP,
    ) -> float:
        """Rises with the crowd, then falls back to zero at `cap` actors."""
        return per_actor_bonus_fraction * actor_count * (1 - actor_count / cap)


default_accrual = ResetWindowAccrual()


def current_bucket(key) -> str:
    return default_accrual.current_bucket(key)


def time_until_next_bucket(key) -> timedelta:
    return default_accrual.time_until_next_bucket(key)


def base_yield() -> int:
    return default_accrual.base_yield()


apply_bonuses = ResetWindowAccrual.apply_bonuses
diminishing_crowd_bonus = ResetWindowAccrual.diminishing_crowd_bonus
