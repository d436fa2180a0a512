# jobs/factory_slot_regen.py
"""
Factory slot regeneration.

Every tick recovers used production slots of factories below capacity at
1 + level * 0.1 slots per hour. The delta is computed from the time since the
factory last regenerated, so ticks missed during downtime are caught up on the
next run rather than lost.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from core.game_logic import GameLogic
from core.scheduler import PeriodicJob
from core.store import ConditionalUpdate, Eligibility


class FactorySlotRegenJob(PeriodicJob):
    name = "Factory Slot Regeneration"
    log_tag = "FACTORY SLOTS"
    eligibility = Eligibility("used_slots", "lt", compare_field="slots")

    def plan_update(self, entity: Dict[str, Any], now: datetime) -> Optional[Tuple[ConditionalUpdate, int]]:
        current_used = entity.get("used_slots") or 0
        new_used, new_last_regen = GameLogic.apply_slot_regeneration(
            used_slots=current_used,
            level=entity.get("level"),
            last_regen=entity.get("last_slot_regen"),
            now=now,
        )

        if new_used == current_used:
            return None

        # Only applies if nothing consumed slots since we read the factory
        update = ConditionalUpdate(
            filter={"_id": entity["_id"], "used_slots": entity.get("used_slots")},
            set={"used_slots": new_used, "last_slot_regen": new_last_regen},
        )
        return update, current_used - new_used
