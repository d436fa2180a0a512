# components/flag.py
import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from data.models import Player, Position, Flag, FlagHolder, FlagTransfer
from core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flag", tags=["Flag"])

# --- Game Configuration ---
MAP_MIN = 1
MAP_MAX = 150
FLAG_BOT_HP = 1000  # 10x base attack damage
FLAG_BOT_LEVEL = 10


def random_position(rng: Optional[random.Random] = None) -> Position:
    """Any tile on the 150x150 map."""
    rng = rng or random
    return Position(x=rng.randint(MAP_MIN, MAP_MAX), y=rng.randint(MAP_MIN, MAP_MAX))


class FlagService:
    """
    Lifecycle of the bot that carries the flag while no player holds it.

    The flag is a singleton document; the bot is a Player with
    `is_flag_bearer` set, and its position is the flag's position.
    """

    def __init__(self, abandon_threshold: Optional[timedelta] = None):
        self.abandon_threshold = abandon_threshold or timedelta(
            seconds=settings.FLAG_ABANDON_THRESHOLD_SECONDS
        )

    async def get_flag(self) -> Optional[Flag]:
        return await Flag.find_one({})

    async def get_flag_bot(self) -> Optional[Player]:
        flag = await self.get_flag()
        if not flag or not flag.current_holder or not flag.current_holder.bot_id:
            return None
        return await Player.get(flag.current_holder.bot_id)

    async def create_flag_bot(self, position: Optional[Position] = None, method: str = "spawn") -> Player:
        """Spawns a new flag bot (random tile unless given) and hands it the flag."""
        spawn_position = position or random_position()
        now = datetime.utcnow()

        bot = Player(
            username=f"Flag-Bearer-{random.randint(0, 9999)}",
            is_bot=True,
            is_flag_bearer=True,
            current_position=spawn_position,
            last_moved_at=now,
            current_hp=FLAG_BOT_HP,
            max_hp=FLAG_BOT_HP,
        )
        await bot.insert()

        flag = await self.get_flag()
        previous = flag.current_holder.username if flag and flag.current_holder else "System"
        holder = FlagHolder(bot_id=bot.id, username=bot.username, claimed_at=now)
        transfer = FlagTransfer(
            from_username=previous,
            to_username=bot.username,
            to_type="bot",
            method=method,
            timestamp=now,
        )

        if flag:
            flag.current_holder = holder
            flag.last_transfer = now
            flag.transfer_history.append(transfer)
            flag.total_transfers += 1
            await flag.save()
        else:
            await Flag(
                current_holder=holder,
                last_transfer=now,
                transfer_history=[transfer],
                total_transfers=1,
            ).insert()

        logger.info(f"[FLAG] Flag bot created: {bot.username} at ({spawn_position.x}, {spawn_position.y})")
        return bot

    async def reset_flag_bot(self) -> Player:
        """Despawns the current flag bot, if any, and spawns a fresh one elsewhere."""
        flag = await self.get_flag()
        if flag and flag.current_holder and flag.current_holder.bot_id:
            old_bot = await Player.get(flag.current_holder.bot_id)
            if old_bot:
                await old_bot.delete()
                logger.info(f"[FLAG] Old flag bot removed: {old_bot.username}")

        new_bot = await self.create_flag_bot(method="respawn")
        logger.info(f"[FLAG] Flag bot reset and respawned: {new_bot.username}")
        return new_bot

    async def should_reset(self, now: datetime) -> bool:
        """True when nobody holds the flag, or a bot has sat on it past the threshold."""
        flag = await self.get_flag()
        if not flag or not flag.current_holder:
            return True
        if not flag.current_holder.bot_id:
            return False  # A player holds it
        return now - flag.current_holder.claimed_at > self.abandon_threshold

    async def initialize(self) -> None:
        """Creates the flag and its first bot on a fresh database."""
        if await self.get_flag() is None:
            logger.info("[FLAG] Initializing flag system for first time...")
            await self.create_flag_bot()


flag_service = FlagService()


# --- DTOs ---
class FlagStatus(BaseModel):
    holder_username: str
    holder_type: str  # "bot" | "player"
    position: Position
    claimed_at: datetime
    held_seconds: int
    total_transfers: int


# --- Endpoints ---

@router.get("", response_model=FlagStatus)
async def get_flag_status():
    """Who holds the flag and where it is."""
    flag = await flag_service.get_flag()
    if not flag or not flag.current_holder:
        raise HTTPException(status_code=404, detail="The flag has not spawned yet.")

    holder = flag.current_holder
    holder_id = holder.bot_id or holder.player_id
    holder_player = await Player.get(holder_id) if holder_id else None
    if holder_player is None:
        raise HTTPException(status_code=404, detail="Flag holder not found.")

    return FlagStatus(
        holder_username=holder.username,
        holder_type="bot" if holder.bot_id else "player",
        position=holder_player.current_position,
        claimed_at=holder.claimed_at,
        held_seconds=int((datetime.utcnow() - holder.claimed_at).total_seconds()),
        total_transfers=flag.total_transfers,
    )
