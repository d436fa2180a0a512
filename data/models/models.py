# data/models/models.py
# All database models (Document classes) are consolidated here to avoid circular imports

from datetime import datetime
from pydantic import BaseModel, Field
from beanie import Document, PydanticObjectId
from beanie.odm.fields import Indexed as IndexedField
from pymongo import IndexModel
from typing import List, Annotated, Optional


# ===== SHARED VALUE OBJECTS =====

class Position(BaseModel):
    x: int
    y: int


# ===== PLAYER MODEL =====

class Resources(BaseModel):
    metal: int = 0
    energy: int = 0


class GatheringBonus(BaseModel):
    """Permanent digger bonuses, in percent."""
    metal_bonus: float = 0
    energy_bonus: float = 0


class ActiveBoosts(BaseModel):
    gathering_boost: float = 0  # Legacy temporary boost, in percent


class ShrineBoost(BaseModel):
    """A timed yield boost bought at a shrine."""
    yield_bonus: float  # Fraction, e.g. 0.25 for +25%
    expires_at: datetime


class Player(Document):
    username: Annotated[str, IndexedField(unique=True)] = Field(..., min_length=3, max_length=30)
    is_admin: bool = False
    is_bot: bool = False
    is_flag_bearer: Annotated[bool, IndexedField()] = False

    resources: Resources = Field(default_factory=Resources)
    gathering_bonus: GatheringBonus = Field(default_factory=GatheringBonus)
    active_boosts: ActiveBoosts = Field(default_factory=ActiveBoosts)
    shrine_boosts: List[ShrineBoost] = Field(default_factory=list)

    current_position: Position = Field(default_factory=lambda: Position(x=1, y=1))
    last_moved_at: datetime | None = None  # Set by the flag bot job
    current_hp: int = 100
    max_hp: int = 100

    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "players"


# ===== TILE MODEL =====

class Tile(Document):
    x: int
    y: int
    terrain: str  # "metal" | "energy" | "cave" | "forest" | "wasteland" ...

    class Settings:
        name = "tiles"
        indexes = [
            [("x", 1), ("y", 1)],
        ]


# ===== HARVEST RECORD MODEL =====

class HarvestRecord(Document):
    """Audit trail of successful harvests. Never mutated or deleted."""
    actor_id: PydanticObjectId
    location_key: str  # "x,y"
    bucket_id: str  # e.g. "2025-10-16T12-AM"
    resource_kind: str
    amount_gained: int
    harvested_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "harvest_records"
        indexes = [
            # One harvest per player, tile and reset period
            IndexModel([("actor_id", 1), ("location_key", 1), ("bucket_id", 1)], unique=True),
            [("location_key", 1), ("bucket_id", 1)],  # For crowd counting
        ]


# ===== FACTORY MODEL =====

class Factory(Document):
    x: int
    y: int
    owner_id: Annotated[Optional[PydanticObjectId], IndexedField()] = None
    level: int = 1
    slots: int = 12  # Max capacity for the level
    used_slots: int = 0
    last_slot_regen: datetime | None = None

    class Settings:
        name = "factories"
        indexes = [
            [("x", 1), ("y", 1)],
        ]


# ===== FLAG MODEL =====

class FlagHolder(BaseModel):
    player_id: PydanticObjectId | None = None
    bot_id: PydanticObjectId | None = None
    username: str
    claimed_at: datetime = Field(default_factory=datetime.utcnow)


class FlagTransfer(BaseModel):
    from_username: str
    to_username: str
    to_type: str  # "bot" | "player"
    method: str  # "spawn" | "respawn" | "combat"
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class Flag(Document):
    """Singleton document tracking who holds the flag."""
    current_holder: FlagHolder | None = None
    last_transfer: datetime | None = None
    transfer_history: List[FlagTransfer] = Field(default_factory=list)
    total_transfers: int = 0

    class Settings:
        name = "flags"
