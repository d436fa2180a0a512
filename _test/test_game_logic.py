"""Harvest yield modifiers and factory slot formulas."""
import random
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from core.accrual import ResetWindowAccrual, apply_bonuses
from core.game_logic import GameLogic
from data.models import ActiveBoosts, GatheringBonus, ShrineBoost

NOW = datetime(2025, 10, 16, 9, 30)


def make_player(metal_bonus=0, energy_bonus=0, gathering_boost=0, shrine_boosts=None):
    return SimpleNamespace(
        gathering_bonus=GatheringBonus(metal_bonus=metal_bonus, energy_bonus=energy_bonus),
        active_boosts=ActiveBoosts(gathering_boost=gathering_boost),
        shrine_boosts=shrine_boosts or [],
    )


class TestHarvestYield:

    def test_expired_shrine_boosts_are_ignored(self):
        player = make_player(shrine_boosts=[
            ShrineBoost(yield_bonus=0.25, expires_at=NOW + timedelta(minutes=5)),
            ShrineBoost(yield_bonus=0.5, expires_at=NOW - timedelta(minutes=5)),
        ])

        assert GameLogic.active_shrine_bonus_pct(player, NOW) == 25

    def test_yield_combines_permanent_and_temporary_bonuses(self):
        player = make_player(
            metal_bonus=25,
            energy_bonus=100,
            shrine_boosts=[ShrineBoost(yield_bonus=0.25, expires_at=NOW + timedelta(hours=1))],
        )
        base = random.Random(7).randint(800, 1500)

        amount = GameLogic.calculate_harvest_yield(
            player, "metal", crowd_size=0, now=NOW,
            accrual=ResetWindowAccrual(rng=random.Random(7)),
        )

        assert amount == apply_bonuses(base, 25, 25)

    def test_energy_uses_energy_bonus(self):
        player = make_player(metal_bonus=100, energy_bonus=0)
        base = random.Random(3).randint(800, 1500)

        amount = GameLogic.calculate_harvest_yield(
            player, "energy", crowd_size=0, now=NOW,
            accrual=ResetWindowAccrual(rng=random.Random(3)),
        )

        assert amount == base

    @pytest.mark.parametrize("crowd, expected", [(0, 0.0), (5, 18.75), (10, 25.0), (20, 0.0), (35, 0.0)])
    def test_crowd_bonus_peaks_then_vanishes(self, crowd, expected):
        assert GameLogic.crowd_bonus_pct(crowd) == pytest.approx(expected)


class TestFactorySlots:

    def test_capacity_and_rate_grow_with_level(self):
        assert GameLogic.get_max_slots(1) == 12
        assert GameLogic.get_max_slots(5) == 20
        assert GameLogic.get_regen_rate(0) == 1.0
        assert GameLogic.get_regen_rate(5) == pytest.approx(1.5)

    def test_three_hours_recovers_three_slots(self):
        used, last_regen = GameLogic.apply_slot_regeneration(
            used_slots=5, level=1, last_regen=NOW - timedelta(hours=3), now=NOW,
        )

        assert used == 2
        # Partial progress towards the fourth slot is kept
        assert NOW - timedelta(hours=3) < last_regen < NOW

    def test_no_elapsed_time_changes_nothing(self):
        assert GameLogic.apply_slot_regeneration(5, 1, NOW, NOW) == (5, NOW)

    def test_never_regenerated_recovers_everything(self):
        assert GameLogic.apply_slot_regeneration(7, 3, None, NOW) == (0, NOW)

    def test_emptying_snaps_last_regen_to_now(self):
        used, last_regen = GameLogic.apply_slot_regeneration(2, 1, NOW - timedelta(hours=10), NOW)

        assert used == 0
        assert last_regen == NOW

    def test_missing_level_defaults_to_one(self):
        assert GameLogic.apply_slot_regeneration(5, None, NOW - timedelta(hours=3), NOW)[0] == 2

    def test_time_until_next_slot(self):
        # Level 10 regenerates a slot every 30 minutes
        assert GameLogic.time_until_next_slot(10, NOW - timedelta(minutes=15), NOW) == timedelta(minutes=15)
        assert GameLogic.time_until_next_slot(10, NOW - timedelta(hours=2), NOW) == timedelta(0)
        assert GameLogic.time_until_next_slot(10, None, NOW) == timedelta(0)
