"""
测试回合结算器 (resolver.py)
每个用例只推进一回合, 直接检查状态与日志
"""

from duelsim.models import (
    BehaviorFlag, EffectKind, EscalationReason, LogType, MoveType, StatusEffect
)
from duelsim.combat.engine import BattleSimulator
from tests.conftest import make_move, make_fighter


def _one_turn(fighter_a, fighter_b, arena, seed=1):
    """A 方行动一回合, 返回 (模拟器, 回合摘要)"""
    sim = BattleSimulator(fighter_a, fighter_b, arena, seed=seed)
    sim.state.advance_turn()
    report = sim.resolver.execute_turn(sim.state)
    return sim, report


def _types(sim):
    return [e.type for e in sim.state.battle_log]


class TestTurnFlow:
    """回合流程"""

    def test_regular_turn_logs_move_and_decision(self, arena):
        sim, report = _one_turn(make_fighter("a"), make_fighter("b"), arena)

        assert report.move.id == "strike"
        assert not report.used_fallback
        assert _types(sim)[:2] == [LogType.TURN, LogType.MOVE]
        assert sim.state.ai_log[0].chosen_action == "strike"
        assert sim.state.ai_log[0].perceived_state["opponent_health"] == sim.fighter_b.health
        assert sim.fighter_a.history == ["strike"]
        assert sim.fighter_a.chi == 11      # 10 + 每回合回复 1

    def test_stunned_fighter_skips_action(self, arena):
        a = make_fighter("a")
        a.effects = [StatusEffect(kind=EffectKind.STUN, duration=1, potency=0,
                                  source_move="Freeze", turn_applied=0)]
        sim, report = _one_turn(a, make_fighter("b"), arena)

        assert report.stunned
        assert report.move is None
        assert LogType.MOVE not in _types(sim)
        assert sim.state.ai_log == []
        assert not sim.fighter_a.has_effect(EffectKind.STUN)

    def test_burn_can_knock_out_before_acting(self, arena):
        a = make_fighter("a", health=1)
        a.effects = [StatusEffect(kind=EffectKind.BURN, duration=2, potency=5,
                                  source_move="Blue Fire", turn_applied=0)]
        sim, report = _one_turn(a, make_fighter("b"), arena)

        assert report.knocked_out == "a"
        assert sim.fighter_a.health == 0
        assert _types(sim)[-2:] == [LogType.STATUS, LogType.KO]
        assert LogType.MOVE not in _types(sim)


class TestFallbackPath:
    """没有可用招式时的保底路径"""

    def test_exhausted_and_desperate_uses_desperate_strike(self, arena):
        cooling = make_move("cooling", cooldown=3)
        pricey = make_move("pricey", chi_cost=15)
        a = make_fighter("a", moves=[cooling, pricey], health=5, chi=2, cooldowns={"cooling": 3})
        sim, report = _one_turn(a, make_fighter("b"), arena)

        assert report.used_fallback
        assert report.move.id == "desperate_strike"
        assert LogType.DESPERATION in _types(sim)
        move_log = next(e for e in sim.state.battle_log if e.type == LogType.MOVE)
        assert move_log.meta["fallback"] is True
        assert sim.state.ai_log[0].chosen_action == "desperate_strike"

    def test_desperation_logged_once(self, arena):
        a = make_fighter("a", health=20)
        sim = BattleSimulator(a, make_fighter("b"), arena, seed=1)
        for _ in range(2):
            sim.state.advance_turn()
            sim.state.active_index = 0
            sim.resolver.execute_turn(sim.state)

        assert _types(sim).count(LogType.DESPERATION) == 1
        assert sim.fighter_a.is_desperate


class TestEscalation:
    """强制升级与模式打破"""

    def test_repetition_forces_different_move(self, arena):
        jab = make_move("jab")
        heavy = make_move("heavy", power=12, tags=["high_damage"])
        a = make_fighter("a", moves=[jab, heavy], history=["jab"] * 5, damage_history=[5.0] * 5)
        sim, report = _one_turn(a, make_fighter("b"), arena)

        assert report.escalation == EscalationReason.REPETITION
        assert report.move.id == "heavy"
        assert sim.fighter_a.has_flag(BehaviorFlag.ESCALATED, sim.state.turn)
        assert sim.fighter_a.escalation_counts[EscalationReason.REPETITION] == 1

        escalation = next(e for e in sim.state.battle_log if e.type == LogType.ESCALATION)
        assert escalation.meta["reason"] == "repetition"
        pattern_break = next(e for e in sim.state.battle_log if e.type == LogType.PATTERN_BREAK)
        assert pattern_break.meta == {"stale_move": "jab", "new_move": "heavy"}


class TestMechanics:
    """伤害、势头与行为标记"""

    def test_missed_finisher_leaves_attacker_exposed(self, arena):
        finale = make_move("finale", type=MoveType.FINISHER, power=30, unlock={"health_at_most": 100})
        a = make_fighter("a", moves=[finale])
        b = make_fighter("b", evasion=1.0)
        sim, report = _one_turn(a, b, arena)

        assert report.damage == 0
        assert sim.fighter_b.health == 100
        assert sim.fighter_a.has_flag(BehaviorFlag.EXPOSED, sim.state.turn)
        assert sim.fighter_a.momentum == -1

    def test_crit_swings_momentum_by_two(self, arena):
        a = make_fighter("a", moves=[make_move("sure_crit", crit_chance=1.0)])
        sim, report = _one_turn(a, make_fighter("b"), arena)

        assert report.damage > 0
        assert sim.fighter_a.momentum == 2
        assert sim.fighter_b.momentum == -2
        move_log = next(e for e in sim.state.battle_log if e.type == LogType.MOVE)
        assert move_log.meta["is_crit"]
        assert move_log.meta["target_health"] == sim.fighter_b.health

    def test_debuff_lands_on_opponent(self, arena):
        scorch = make_move("scorch", crit_chance=0,
                           applies_effect={"kind": "BURN", "chance": 1.0, "duration": 2, "potency": 3})
        sim, _ = _one_turn(make_fighter("a", moves=[scorch]), make_fighter("b"), arena)

        assert sim.fighter_b.has_effect(EffectKind.BURN)
        assert not sim.fighter_a.has_effect(EffectKind.BURN)
        applied = [e for e in sim.state.battle_log if e.action == "Effect Applied"]
        assert applied and applied[0].target == "B"

    def test_buff_lands_on_self(self, arena):
        guard = make_move("guard", type=MoveType.DEFENSE_BUFF, power=0,
                          applies_effect={"kind": "DEFENSE_UP", "duration": 2, "potency": 0.2})
        sim, report = _one_turn(make_fighter("a", moves=[guard]), make_fighter("b"), arena)

        assert report.damage == 0
        assert sim.fighter_a.has_effect(EffectKind.DEFENSE_UP)
        assert sim.fighter_b.health == 100

    def test_recovery_move_restores_chi(self, arena):
        meditate = make_move("meditate", type=MoveType.DEFENSE_BUFF, power=4, tags=["recovery"])
        sim, _ = _one_turn(make_fighter("a", moves=[meditate], chi=0), make_fighter("b"), arena)

        assert sim.fighter_a.chi == 5       # 回合回复 1 + 招式回复 4

    def test_knockout_logged(self, arena):
        a = make_fighter("a", moves=[make_move("smash", power=50, crit_chance=0)])
        b = make_fighter("b", health=3)
        sim, report = _one_turn(a, b, arena)

        assert report.knocked_out == "b"
        assert sim.state.battle_log[-1].type == LogType.KO
