# jobs/registry.py
import logging
from typing import Dict, Tuple

from core.config import settings
from core.scheduler import PeriodicJob
from core.store import MongoEntityStore
from data.models import Factory, Player
from jobs.factory_slot_regen import FactorySlotRegenJob
from jobs.flag_bot import FlagBotJob

logger = logging.getLogger(__name__)


def build_jobs() -> Dict[str, Tuple[PeriodicJob, MongoEntityStore]]:
    """
    Create every background job with the collection it works on.
    Must be called after init_db().
    """
    return {
        "factory-slots": (
            FactorySlotRegenJob(settings.FACTORY_SLOT_REGEN_INTERVAL_SECONDS),
            MongoEntityStore.for_document(Factory),
        ),
        "flag-bot": (
            FlagBotJob(settings.FLAG_BOT_INTERVAL_SECONDS),
            MongoEntityStore.for_document(Player),
        ),
    }


async def start_jobs(jobs: Dict[str, Tuple[PeriodicJob, MongoEntityStore]]) -> None:
    for key, (job, store) in jobs.items():
        result = await job.start(store)
        if result.success:
            logger.info(f"[JOBS] {key}: {result.message}")
        else:
            logger.warning(f"[JOBS] {key} did not start: {result.message}")


def stop_jobs(jobs: Dict[str, Tuple[PeriodicJob, MongoEntityStore]]) -> None:
    for key, (job, _store) in jobs.items():
        result = job.stop()
        logger.info(f"[JOBS] {key}: {result.message}")
