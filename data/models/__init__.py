# data/models/__init__.py
# Export all models for easy importing

from .models import (Player, Position, Resources, GatheringBonus, ActiveBoosts, ShrineBoost,
                     Tile, HarvestRecord, Factory, Flag, FlagHolder, FlagTransfer)

__all__ = ["Player", "Position", "Resources", "GatheringBonus", "ActiveBoosts", "ShrineBoost",
           "Tile", "HarvestRecord", "Factory", "Flag", "FlagHolder", "FlagTransfer"]
