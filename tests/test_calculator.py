"""
测试伤害计算 (calculator.py) 与状态效果 (effects.py)
"""

import random
from unittest.mock import MagicMock

import pytest

from duelsim.config import Config
from duelsim.models import (
    ArcPhase, BehaviorFlag, EffectKind, EffectSpec, OutcomeCategory, StatusEffect, LocationConfig
)
from duelsim.combat.arc import ArcStateMachine
from duelsim.combat.calculator import DamageCalculator
from duelsim.combat.effects import StatusEffectManager
from tests.conftest import make_move, make_fighter

OPENING = ArcStateMachine.modifiers(ArcPhase.OPENING)


def scripted_rng(*values):
    """按顺序返回预设随机数的随机源"""
    rng = MagicMock(spec=random.Random)
    rng.random.side_effect = list(values)
    return rng


def _effect(kind, potency=0.0, duration=2, source="Test"):
    return StatusEffect(kind=kind, duration=duration, potency=potency, source_move=source, turn_applied=1)


class TestMitigation:
    """减伤计算"""

    def test_base_formula(self):
        defender = make_fighter("d", defense=100)
        assert DamageCalculator.calculate_mitigation(defender, OPENING) == pytest.approx(0.5)

    def test_defense_up_ignored_by_piercing(self):
        defender = make_fighter("d", defense=100)
        defender.effects.append(_effect(EffectKind.DEFENSE_UP, 0.2))

        assert DamageCalculator.calculate_mitigation(defender, OPENING) == pytest.approx(0.7)
        assert DamageCalculator.calculate_mitigation(defender, OPENING, piercing=True) == pytest.approx(0.5)

    def test_capped(self):
        defender = make_fighter("d", defense=900)
        defender.effects.append(_effect(EffectKind.DEFENSE_UP, 0.5))
        assert DamageCalculator.calculate_mitigation(defender, OPENING) == Config.DEFENSE_REDUCTION_CAP

    def test_desperation_lowers_defense(self):
        defender = make_fighter("d", defense=100, health=4)
        assert DamageCalculator.calculate_mitigation(defender, OPENING) == pytest.approx(0.35)


class TestCategorize:
    """伤害分级"""

    @pytest.mark.parametrize("damage,expected", [
        (0, OutcomeCategory.MISS),
        (4.9, OutcomeCategory.GLANCE),
        (5, OutcomeCategory.HIT),
        (14.9, OutcomeCategory.HIT),
        (15, OutcomeCategory.DEVASTATING),
        (25, OutcomeCategory.OVERWHELMING),
    ])
    def test_thresholds(self, damage, expected):
        assert DamageCalculator.categorize(damage, False) == expected


class TestResolveStrike:
    """单次攻击结算"""

    def test_plain_hit(self, arena):
        attacker = make_fighter("a", power=100)
        defender = make_fighter("d", defense=0, evasion=0.0)
        move = make_move("jab", power=10)

        outcome = DamageCalculator.resolve_strike(attacker, defender, move, 10, OPENING, arena, 1,
                                                  scripted_rng(0.5, 0.99))
        assert not outcome.is_miss
        assert not outcome.is_crit
        assert outcome.damage == 10.0
        assert outcome.category == OutcomeCategory.HIT

    def test_evasion_miss(self, arena):
        defender = make_fighter("d", evasion=0.5)
        outcome = DamageCalculator.resolve_strike(make_fighter("a"), defender, make_move("jab"), 10,
                                                  OPENING, arena, 1, scripted_rng(0.1))
        assert outcome.is_miss
        assert outcome.damage == 0.0
        assert outcome.category == OutcomeCategory.MISS

    def test_staggered_defender_cannot_evade(self, arena):
        defender = make_fighter("d", evasion=1.0, defense=0)
        defender.set_flag(BehaviorFlag.STAGGERED, current_turn=1)
        outcome = DamageCalculator.resolve_strike(make_fighter("a"), defender, make_move("jab"), 10,
                                                  OPENING, arena, 2, scripted_rng(0.0, 0.99))
        assert not outcome.is_miss

    def test_crit_multiplies_and_may_stagger(self, arena):
        defender = make_fighter("d", defense=0)
        move = make_move("jab", power=10, crit_chance=0.5, crit_multiplier=2.0)
        outcome = DamageCalculator.resolve_strike(make_fighter("a"), defender, move, 10,
                                                  OPENING, arena, 1, scripted_rng(0.9, 0.1, 0.1))
        assert outcome.is_crit
        assert outcome.staggered
        assert outcome.damage == 20.0

    def test_location_exposed_and_momentum(self):
        location = LocationConfig(id="volcano", name="Volcano", element_modifiers={"fire": 1.5})
        attacker = make_fighter("a", momentum=5)
        defender = make_fighter("d", defense=0)
        defender.set_flag(BehaviorFlag.EXPOSED, current_turn=1)
        move = make_move("flame", power=10, crit_chance=0, element="fire")

        outcome = DamageCalculator.resolve_strike(attacker, defender, move, 10, OPENING, location, 2,
                                                  scripted_rng(0.9, 0.9))
        # 10 × 1.1 (势头) × 1.5 (场地) × 1.25 (破绽)
        assert outcome.damage == pytest.approx(20.6)


class TestStatusEffects:
    """状态效果施加与结算"""

    def test_apply_scales_duration_with_arc(self, rng):
        target = make_fighter("t")
        spec = EffectSpec(kind=EffectKind.BURN, duration=3, potency=2.0)
        effect = StatusEffectManager.apply(target, spec, "Flame", 1,
                                           ArcStateMachine.modifiers(ArcPhase.RESOLUTION), rng)
        # 3 × 0.25 = 0.75 → 至少 1 回合
        assert effect.duration == 1

    def test_same_source_refreshes_instead_of_stacking(self, rng):
        target = make_fighter("t")
        spec = EffectSpec(kind=EffectKind.BURN, duration=3, potency=2.0)
        StatusEffectManager.apply(target, spec, "Flame", 1, OPENING, rng)
        StatusEffectManager.apply(target, spec, "Flame", 3, OPENING, rng)
        assert len(target.effects) == 1
        assert target.effects[0].turn_applied == 3

    def test_chance_roll_can_fail(self):
        target = make_fighter("t")
        spec = EffectSpec(kind=EffectKind.SLOW, chance=0.3, duration=2, potency=0.5)
        assert StatusEffectManager.apply(target, spec, "Gust", 1, OPENING, scripted_rng(0.8)) is None
        assert target.effects == []

    def test_turn_start_burn_heal_and_stun(self):
        fighter = make_fighter("t", health=50)
        fighter.effects = [
            _effect(EffectKind.BURN, 3.0, duration=2),
            _effect(EffectKind.HEAL_OVER_TIME, 5.0, duration=1),
            _effect(EffectKind.STUN, duration=1),
        ]
        report = StatusEffectManager.process_turn_start(fighter)

        assert fighter.health == 52
        assert report.stunned
        assert set(report.expired) == {EffectKind.HEAL_OVER_TIME, EffectKind.STUN}
        assert [e.kind for e in fighter.effects] == [EffectKind.BURN]
        assert fighter.effects[0].duration == 1

    def test_burn_never_drops_health_below_zero(self):
        fighter = make_fighter("t", health=1)
        fighter.effects = [_effect(EffectKind.BURN, 5.0)]
        StatusEffectManager.process_turn_start(fighter)
        assert fighter.health == 0
        assert not fighter.is_alive()
