# jobs/flag_bot.py
"""
Flag bot manager.

Every tick either respawns the flag bot, when the flag has been left with a bot
past the abandonment threshold, or teleports the bot to a random tile. The
respawn takes precedence and ends the tick.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from components.flag import flag_service, random_position
from core.scheduler import PeriodicJob
from core.store import ConditionalUpdate, Eligibility, EntityStore

logger = logging.getLogger(__name__)


class FlagBotJob(PeriodicJob):
    name = "Flag Bot Manager"
    log_tag = "FLAG BOT"
    eligibility = Eligibility("is_flag_bearer", "eq", value=True)

    def __init__(self, interval_seconds: float, flags=None, clock=None, rng: Optional[random.Random] = None):
        super().__init__(interval_seconds, clock=clock)
        self.flags = flags or flag_service
        self.rng = rng or random.Random()

    async def on_start(self, store: EntityStore) -> None:
        await self.flags.initialize()

    async def preempt(self, store: EntityStore, now: datetime) -> bool:
        if not await self.flags.should_reset(now):
            return False

        logger.info(f"[{self.log_tag}] Flag unclaimed past threshold, respawning bot...")
        await self.flags.reset_flag_bot()
        return True

    def plan_update(self, entity: Dict[str, Any], now: datetime) -> Optional[Tuple[ConditionalUpdate, int]]:
        last_moved_at = entity.get("last_moved_at")
        if last_moved_at is not None and now - last_moved_at < timedelta(seconds=self.interval_seconds):
            return None

        position = random_position(self.rng)
        update = ConditionalUpdate(
            # Skip the move if the bot lost the flag since we read it
            filter={"_id": entity["_id"], "is_flag_bearer": True},
            set={"current_position": position.model_dump(), "last_moved_at": now},
        )
        logger.info(f"[{self.log_tag}] Moving {entity.get('username')} to ({position.x}, {position.y})")
        return update, 1
