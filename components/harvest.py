# components/harvest.py
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError
from beanie.operators import Inc

from data.models import Player, Tile, HarvestRecord
from core.security import get_current_player
from core.game_logic import GameLogic
from core.accrual import ResetWindowAccrual, default_accrual
from core.rate_limiter_slowapi import api_limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/harvest", tags=["Harvest"])

# --- Game Configuration ---
HARVESTABLE_TERRAIN = ("metal", "energy")
MAP_MAX = 150

ALREADY_HARVESTED = "You have already harvested this tile. It will reset later."

# --- DTOs ---
class HarvestRequest(BaseModel):
    x: int = Field(..., ge=1, le=MAP_MAX)
    y: int = Field(..., ge=1, le=MAP_MAX)

class HarvestResponse(BaseModel):
    success: bool
    message: str
    resource_kind: str
    amount_gained: int
    new_total: int
    reset_period: str

class HarvestStatus(BaseModel):
    can_harvest: bool
    reset_period: str
    time_until_reset_ms: int
    window_opens_at: datetime
    window_closes_at: datetime

# --- Helper Functions ---
def location_key(x: int, y: int) -> str:
    return f"{x},{y}"


class HarvestLedger:
    """Database access for harvesting: tiles, harvest records and resource credits."""

    async def get_terrain(self, x: int, y: int) -> Optional[str]:
        tile = await Tile.find_one(Tile.x == x, Tile.y == y)
        return tile.terrain if tile else None

    async def has_harvested(self, actor_id, location: str, bucket_id: str) -> bool:
        existing = await HarvestRecord.find_one(
            HarvestRecord.actor_id == actor_id,
            HarvestRecord.location_key == location,
            HarvestRecord.bucket_id == bucket_id,
        )
        return existing is not None

    async def crowd_size(self, location: str, bucket_id: str) -> int:
        return await HarvestRecord.find(
            HarvestRecord.location_key == location,
            HarvestRecord.bucket_id == bucket_id,
        ).count()

    async def record(self, actor_id, location: str, bucket_id: str, resource_kind: str,
                     amount: int, harvested_at: datetime) -> None:
        """Raises DuplicateKeyError if the actor already has a record for this bucket."""
        await HarvestRecord(
            actor_id=actor_id,
            location_key=location,
            bucket_id=bucket_id,
            resource_kind=resource_kind,
            amount_gained=amount,
            harvested_at=harvested_at,
        ).insert()

    async def credit(self, player: Player, resource_kind: str, amount: int) -> int:
        if resource_kind == "metal":
            await player.update(Inc({Player.resources.metal: amount}))
            return player.resources.metal + amount
        await player.update(Inc({Player.resources.energy: amount}))
        return player.resources.energy + amount


harvest_ledger = HarvestLedger()


async def harvest(
    player: Player,
    x: int,
    y: int,
    ledger: HarvestLedger = harvest_ledger,
    accrual: ResetWindowAccrual = default_accrual,
) -> HarvestResponse:
    """
    Harvests a metal or energy tile once per reset period.

    Raises:
        HTTPException: 404 unknown tile, 400 nothing to harvest,
            409 already harvested in this period.
    """
    terrain = await ledger.get_terrain(x, y)
    if terrain is None:
        raise HTTPException(status_code=404, detail="Tile not found.")
    if terrain not in HARVESTABLE_TERRAIN:
        raise HTTPException(status_code=400, detail="This tile does not contain harvestable resources.")

    now = accrual.clock.now()
    bucket_id = accrual.current_bucket(x)
    location = location_key(x, y)

    if await ledger.has_harvested(player.id, location, bucket_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_HARVESTED)

    crowd_size = await ledger.crowd_size(location, bucket_id)
    amount = GameLogic.calculate_harvest_yield(
        player=player,
        resource_kind=terrain,
        crowd_size=crowd_size,
        now=now,
        accrual=accrual,
    )

    # The unique index settles two concurrent requests for the same period
    try:
        await ledger.record(player.id, location, bucket_id, terrain, amount, now)
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_HARVESTED)

    new_total = await ledger.credit(player, terrain, amount)

    logger.info(f"[HARVEST] {player.username} harvested {amount} {terrain} at ({x}, {y})")

    return HarvestResponse(
        success=True,
        message=f"Harvested {amount} {terrain}!",
        resource_kind=terrain,
        amount_gained=amount,
        new_total=new_total,
        reset_period=bucket_id,
    )

# --- Endpoints ---

@router.post("", response_model=HarvestResponse)
@api_limiter.limit("30/minute")
async def harvest_tile(
    request: Request,
    harvest_request: HarvestRequest,
    current_player: Player = Depends(get_current_player)
):
    """Harvests a metal or energy tile. Periods roll over at midnight and noon UTC."""
    return await harvest(current_player, harvest_request.x, harvest_request.y)


@router.get("/status", response_model=HarvestStatus)
async def get_harvest_status(
    x: int = Query(..., ge=1, le=MAP_MAX),
    y: int = Query(..., ge=1, le=MAP_MAX),
    current_player: Player = Depends(get_current_player)
):
    """Whether the player can harvest a tile now, and when its period resets."""
    window = default_accrual.current_window(x)
    time_until_reset = default_accrual.time_until_next_bucket(x)
    already_harvested = await harvest_ledger.has_harvested(
        current_player.id, location_key(x, y), window.bucket_id
    )

    return HarvestStatus(
        can_harvest=not already_harvested,
        reset_period=window.bucket_id,
        time_until_reset_ms=int(time_until_reset.total_seconds() * 1000),
        window_opens_at=window.opens_at,
        window_closes_at=window.closes_at,
    )
