# core/game_logic.py
import math
from datetime import datetime, timedelta
from typing import Optional, Tuple

from core.accrual import ResetWindowAccrual, default_accrual
from core.config import settings
from data.models import Player

# --- Factory Configuration ---
FACTORY_BASE_SLOTS = 10
FACTORY_SLOTS_PER_LEVEL = 2
FACTORY_BASE_REGEN_RATE = 1.0  # Slots per hour
FACTORY_REGEN_PER_LEVEL = 0.1

HOUR = timedelta(hours=1)


class GameLogic:
    """
    A central class for applying game modifiers: digger bonuses,
    boosts, shrine boosts, crowding and factory regeneration.
    """

    @staticmethod
    def active_shrine_bonus_pct(player: Player, now: datetime) -> float:
        """Sum of unexpired shrine boosts, as a percentage."""
        return sum(
            boost.yield_bonus * 100
            for boost in player.shrine_boosts
            if boost.expires_at > now
        )

    @staticmethod
    def crowd_bonus_pct(crowd_size: int) -> float:
        crowd = max(0, min(crowd_size, settings.CROWD_CAP))
        return ResetWindowAccrual.diminishing_crowd_bonus(
            crowd, settings.CROWD_BONUS_PER_ACTOR, settings.CROWD_CAP
        ) * 100

    @staticmethod
    def calculate_harvest_yield(
        player: Player,
        resource_kind: str,
        crowd_size: int,
        now: datetime,
        accrual: Optional[ResetWindowAccrual] = None,
    ) -> int:
        """
        Calculates the final amount for one metal or energy harvest.

        Args:
            player: The harvesting Player.
            resource_kind: "metal" or "energy".
            crowd_size: Players who already harvested this tile in the current period.
            now: The harvest time, used to expire shrine boosts.

        Returns:
            The final amount as an integer.
        """
        accrual = accrual or default_accrual
        base_amount = accrual.base_yield()

        if resource_kind == "metal":
            permanent_bonus = player.gathering_bonus.metal_bonus
        else:
            permanent_bonus = player.gathering_bonus.energy_bonus

        temporary_bonus = (
            player.active_boosts.gathering_boost
            + GameLogic.active_shrine_bonus_pct(player, now)
            + GameLogic.crowd_bonus_pct(crowd_size)
        )

        return accrual.apply_bonuses(base_amount, permanent_bonus, temporary_bonus)

    # --- Factory slots ---

    @staticmethod
    def get_max_slots(level: int) -> int:
        return FACTORY_BASE_SLOTS + level * FACTORY_SLOTS_PER_LEVEL

    @staticmethod
    def get_regen_rate(level: int) -> float:
        """Slots recovered per hour."""
        return FACTORY_BASE_REGEN_RATE + level * FACTORY_REGEN_PER_LEVEL

    @staticmethod
    def recovered_slots(last_regen: Optional[datetime], regen_rate: float, now: datetime,
                        used_slots: int) -> int:
        """
        Whole slots recovered since `last_regen`.

        A factory that never regenerated counts as infinitely elapsed and
        recovers everything it has used.
        """
        if last_regen is None:
            return used_slots
        hours_elapsed = (now - last_regen) / HOUR
        return max(0, math.floor(hours_elapsed * regen_rate))

    @staticmethod
    def apply_slot_regeneration(
        used_slots: int,
        level: Optional[int],
        last_regen: Optional[datetime],
        now: datetime,
    ) -> Tuple[int, Optional[datetime]]:
        """
        Applies time-based regeneration to a factory's used slots.

        `last_regen` advances by exactly the time the recovered slots took, so
        partial progress towards the next slot is kept. It snaps to `now` when
        the factory empties out or had never regenerated.

        Returns:
            (new_used_slots, new_last_regen)
        """
        used_slots = used_slots or 0
        regen_rate = GameLogic.get_regen_rate(level or 1)
        recovered = GameLogic.recovered_slots(last_regen, regen_rate, now, used_slots)

        if recovered <= 0:
            return used_slots, last_regen

        new_used_slots = max(0, used_slots - recovered)
        if last_regen is None or new_used_slots == 0:
            return new_used_slots, now

        return new_used_slots, last_regen + recovered * (HOUR / regen_rate)

    @staticmethod
    def time_until_next_slot(level: Optional[int], last_regen: Optional[datetime], now: datetime) -> timedelta:
        if last_regen is None:
            return timedelta(0)
        next_regen = last_regen + HOUR / GameLogic.get_regen_rate(level or 1)
        return max(timedelta(0), next_regen - now)
