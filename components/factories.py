# components/factories.py
from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from data.models import Player, Factory
from core.security import get_current_player
from core.game_logic import GameLogic
from jobs.factory_slot_regen import FactorySlotRegenJob

router = APIRouter(prefix="/api/factories", tags=["Factories"])

# --- DTOs ---
class FactorySlotsOut(BaseModel):
    x: int
    y: int
    level: int
    capacity: int
    used_slots: int
    available_slots: int
    regen_rate_per_hour: float
    time_until_next_slot_seconds: int

# --- Helper Functions ---
def factory_slots_view(factory: Factory, now: datetime) -> FactorySlotsOut:
    """
    Slot state with regeneration applied up to `now`, without waiting for
    the background job to write it.

    Capacity is the stored `slots`, and only factories the regeneration job
    selects (`used_slots < slots`) show pending regeneration.
    """
    level = factory.level or 1
    capacity = factory.slots
    used_slots = factory.used_slots or 0
    last_regen = factory.last_slot_regen

    if FactorySlotRegenJob.eligibility.matches({"used_slots": used_slots, "slots": capacity}):
        used_slots, last_regen = GameLogic.apply_slot_regeneration(
            used_slots=used_slots,
            level=level,
            last_regen=last_regen,
            now=now,
        )
        regenerating = used_slots > 0
    else:
        regenerating = False

    if regenerating:
        next_slot_in = GameLogic.time_until_next_slot(level, last_regen, now)
    else:
        next_slot_in = None

    return FactorySlotsOut(
        x=factory.x,
        y=factory.y,
        level=level,
        capacity=capacity,
        used_slots=used_slots,
        available_slots=max(0, capacity - used_slots),
        regen_rate_per_hour=GameLogic.get_regen_rate(level),
        time_until_next_slot_seconds=int(next_slot_in.total_seconds()) if next_slot_in else 0,
    )

# --- Endpoints ---

@router.get("/mine", response_model=List[FactorySlotsOut])
async def get_my_factories(current_player: Player = Depends(get_current_player)):
    """All factories owned by the current player."""
    now = datetime.utcnow()
    factories = await Factory.find(Factory.owner_id == current_player.id).to_list()
    return [factory_slots_view(factory, now) for factory in factories]


@router.get("/{x}/{y}", response_model=FactorySlotsOut)
async def get_factory(x: int, y: int, current_player: Player = Depends(get_current_player)):
    factory = await Factory.find_one(Factory.x == x, Factory.y == y)
    if not factory:
        raise HTTPException(status_code=404, detail="No factory at this location.")
    return factory_slots_view(factory, datetime.utcnow())
