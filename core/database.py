# core/database.py
import motor.motor_asyncio
from beanie import init_beanie
from .config import settings

async def init_db():
    """Initializes the Beanie ODM and database connection."""

    # Import models inside the function to avoid circular imports at startup
    from data.models import Player, Tile, HarvestRecord, Factory, Flag

    client = motor.motor_asyncio.AsyncIOMotorClient(settings.MONGO_DETAILS)
    await init_beanie(
        database=client.get_database(settings.DATABASE_NAME),
        document_models=[
            Player,
            Tile,
            HarvestRecord,
            Factory,
            Flag,
        ]
    )
