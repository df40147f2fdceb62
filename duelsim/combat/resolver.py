"""
回合结算器
编排单个角色的一次完整行动: 台账 → 状态效果 → 升级判定 → AI 选招 → 机械结算 → 模式记录 → 弧线推进 → 叙事与日志
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from ..config import Config
from ..models import (
    BattleState, Fighter, MoveConfig, LogEntry, LogType, AiLogEntry,
    BehaviorFlag, EffectKind, EffectCategory, EscalationReason, MoveType
)
from ..narrative.composer import NarrativeComposer, TurnOutcome
from .arc import ArcStateMachine, ArcTransition
from .calculator import DamageCalculator, StrikeOutcome
from .effects import StatusEffectManager
from .mental import MentalStateTracker
from .ledger import ResourceLedger
from .patterns import PatternDetector
from .scorer import ActionScorer, ActionChoice

logger = logging.getLogger(__name__)


@dataclass
class TurnReport:
    """单回合结算摘要"""
    turn: int
    actor_id: str
    move: Optional[MoveConfig] = None
    damage: float = 0.0
    stunned: bool = False
    knocked_out: Optional[str] = None
    escalation: Optional[EscalationReason] = None
    transition: Optional[ArcTransition] = None
    used_fallback: bool = False


class TurnResolver:
    """回合结算器 (BattleState 的唯一修改者)"""

    def __init__(
        self,
        ledger: ResourceLedger,
        detector: PatternDetector,
        scorer: ActionScorer,
        arc_machine: ArcStateMachine,
        composer: NarrativeComposer,
        rng: random.Random,
    ) -> None:
        self.ledger = ledger
        self.detector = detector
        self.scorer = scorer
        self.arc_machine = arc_machine
        self.composer = composer
        self.rng = rng

    def execute_turn(self, state: BattleState) -> TurnReport:
        """执行当前行动方的一回合。

        回合流程:
        1. 冷却倒数、行为标记过期
        2. 状态效果结算 (灼烧/持续回复/眩晕), 真气回复
        3. 绝境判定
        4. 强制升级判定
        5. AI 选招 (无可用招式时走保底招式)
        6. 台账记账并结算伤害与状态
        7. 更新模式侦测器
        8. 评估弧线转移
        9. 叙事与日志, 心理状态更新

        Args:
            state: 当前战斗状态 (turn 已由调用方推进)

        Returns:
            TurnReport: 本回合摘要
        """
        actor = state.active_fighter
        opponent = state.opponent_of(actor)
        turn = state.turn
        report = TurnReport(turn=turn, actor_id=actor.id)

        state.add_log(LogEntry(
            turn=turn, actor=actor.name, type=LogType.TURN,
            action="Turn Start", result=f"{actor.name} acts",
            meta={"arc_phase": state.arc_phase.value, "health": actor.health, "chi": actor.chi},
        ))

        # 1. 冷却与标记
        self.ledger.tick(actor)
        actor.expire_flags(turn)

        # 2. 状态效果
        effects_report = StatusEffectManager.process_turn_start(actor)
        for tick in effects_report.ticks:
            if tick.kind == EffectKind.STUN:
                continue
            self._log_status_tick(state, actor, tick.kind, tick.source_move, tick.amount)

        if not actor.is_alive():
            self._log_knockout(state, actor, "status effects")
            report.knocked_out = actor.id
            return report

        arc = ArcStateMachine.modifiers(state.arc_phase)
        self.ledger.regenerate(actor, Config.CHI_REGEN_PER_TURN + arc.chi_regen_bonus)

        # 3. 绝境
        self._check_desperation(state, actor, opponent)

        if effects_report.stunned:
            report.stunned = True
            state.add_log(LogEntry(
                turn=turn, actor=actor.name, type=LogType.STATUS,
                action="Stunned", target=actor.name, result="Cannot act this turn",
                narrative=self.composer.compose_status(actor, EffectKind.STUN.value, "stun", "stun"),
                meta={"effect_type": EffectKind.STUN.value},
            ))
            return report

        # 4. 强制升级
        escalation = self._check_escalation(state, actor, opponent)
        report.escalation = escalation

        # 5. 选招
        pattern_before = self.detector.get_pattern_state(actor)
        choice = self.scorer.choose(actor, opponent, state, escalation)
        move = choice.move
        report.move = move
        report.used_fallback = choice.is_fallback

        # 6. 机械结算
        self.ledger.apply_use(actor, move.id, move)
        power = self.ledger.effective_power(actor, move)
        strike = self._resolve_mechanics(state, actor, opponent, move, power)
        damage = strike.damage if strike else 0.0
        report.damage = damage

        # 7. 模式记录
        self.detector.record(actor, move.id, damage)
        pattern_break = pattern_before.is_stale and move.id != pattern_before.stale_move

        # 8. 弧线
        transition = self.arc_machine.evaluate(state)
        report.transition = transition

        # 9. 叙事与日志
        outcome = TurnOutcome(
            turn=turn,
            actor=actor,
            target=opponent,
            move=move,
            damage=damage,
            category=strike.category if strike else None,
            is_crit=bool(strike and strike.is_crit),
            escalation=escalation,
            pattern_break=pattern_break,
            arc_shift=transition is not None,
        )
        narrative = self.composer.compose_turn(outcome)
        self._log_move(state, actor, opponent, move, power, strike, choice, narrative)
        self._log_decision(state, actor, opponent, choice, escalation, narrative)
        self._apply_move_effect(state, actor, opponent, move, strike)
        self._update_mental_states(state, actor, opponent, strike)

        if pattern_break:
            state.add_log(LogEntry(
                turn=turn, actor=actor.name, type=LogType.PATTERN_BREAK,
                action="Pattern Break", result=f"Breaks a run of {pattern_before.stale_move}",
                meta={"stale_move": pattern_before.stale_move, "new_move": move.id},
            ))

        if transition is not None:
            state.add_log(LogEntry(
                turn=turn, actor="Narrator", type=LogType.ARC,
                action="Arc Transition",
                result=f"{transition.from_phase.value} -> {transition.to_phase.value}",
                narrative=transition.narrative,
                meta={"from": transition.from_phase.value, "to": transition.to_phase.value,
                      "priority": transition.priority},
            ))

        if not opponent.is_alive():
            self._log_knockout(state, opponent, move.name)
            report.knocked_out = opponent.id

        return report

    # ========== 机械结算 ==========

    def _resolve_mechanics(
        self,
        state: BattleState,
        actor: Fighter,
        opponent: Fighter,
        move: MoveConfig,
        power: float,
    ) -> Optional[StrikeOutcome]:
        """伤害、势头与行为标记; 非伤害招式返回 None"""
        turn = state.turn

        if move.has_tag("recovery"):
            self.ledger.regenerate(actor, power)

        if not move.is_damaging:
            return None

        arc = ArcStateMachine.modifiers(state.arc_phase)
        strike = DamageCalculator.resolve_strike(
            actor, opponent, move, power, arc, state.location, turn, self.rng
        )

        # 踉跄只抵消一次闪避
        opponent.clear_flag(BehaviorFlag.STAGGERED)

        if strike.is_miss:
            actor.shift_momentum(-1)
            if move.type == MoveType.FINISHER or move.has_tag("high_damage"):
                actor.set_flag(BehaviorFlag.EXPOSED, turn)
            return strike

        strike.damage = opponent.take_damage(strike.damage)
        opponent.clear_flag(BehaviorFlag.EXPOSED)

        swing = 2 if strike.is_crit else 1
        actor.shift_momentum(swing)
        opponent.shift_momentum(-swing)

        if strike.staggered:
            opponent.set_flag(BehaviorFlag.STAGGERED, turn)

        return strike

    def _apply_move_effect(
        self,
        state: BattleState,
        actor: Fighter,
        opponent: Fighter,
        move: MoveConfig,
        strike: Optional[StrikeOutcome],
    ) -> None:
        spec = move.applies_effect
        if spec is None or (strike is not None and strike.is_miss):
            return
        if not opponent.is_alive() and spec.category == EffectCategory.DEBUFF:
            return

        holder = actor if spec.category == EffectCategory.BUFF else opponent
        arc = ArcStateMachine.modifiers(state.arc_phase)
        effect = StatusEffectManager.apply(holder, spec, move.name, state.turn, arc, self.rng)
        if effect is None:
            return

        state.add_log(LogEntry(
            turn=state.turn, actor=actor.name, type=LogType.STATUS,
            action="Effect Applied", target=holder.name,
            result=f"{holder.name} is affected by {effect.kind.value} from {move.name} ({effect.duration} turns)",
            narrative=self.composer.compose_status(holder, effect.kind.value, move.name, "applied"),
            meta={"effect_type": effect.kind.value, "category": effect.category.value,
                  "duration": effect.duration, "potency": effect.potency, "source_move": move.id},
        ))

    # ========== 判定 ==========

    def _check_desperation(self, state: BattleState, actor: Fighter, opponent: Fighter) -> None:
        if actor.is_desperate or actor.get_health_percentage() > Config.DESPERATION_HEALTH:
            return
        actor.is_desperate = True
        state.add_log(LogEntry(
            turn=state.turn, actor=actor.name, type=LogType.DESPERATION,
            action="Desperation", result=f"{actor.name} is fighting on the edge ({actor.health:g} HP)",
            narrative=self.composer.compose_desperation(actor, opponent, state.turn),
            meta={"health": actor.health},
        ))

    def _check_escalation(self, state: BattleState, actor: Fighter, opponent: Fighter) -> Optional[EscalationReason]:
        """新触发的升级会记录日志; 升级标记未过期时沿用上次的原因"""
        reason = self.detector.should_force_escalation(state, actor)
        if reason is None:
            if actor.has_flag(BehaviorFlag.ESCALATED, state.turn):
                return actor.last_escalation_reason
            return None

        self.detector.mark_escalated(actor, reason, state.turn)
        actor.set_flag(BehaviorFlag.ESCALATED, state.turn)
        logger.debug(f"[Resolver] turn {state.turn}: {actor.name} 强制升级 ({reason.value})")
        state.add_log(LogEntry(
            turn=state.turn, actor=actor.name, type=LogType.ESCALATION,
            action="Forced Escalation", result=f"Escalation forced: {reason.value}",
            narrative=self.composer.compose_escalation(actor, opponent, reason, state.turn),
            meta={"reason": reason.value,
                  "average_damage": round(self.detector.average_recent_damage(actor), 2)},
        ))
        return reason

    def _update_mental_states(
        self,
        state: BattleState,
        actor: Fighter,
        opponent: Fighter,
        strike: Optional[StrikeOutcome],
    ) -> None:
        """命中时对手累积压力, 落空时行动方累积压力 (势头下滑/露出破绽)"""
        if strike is None:
            return
        if strike.is_miss:
            fighter = actor
            level = MentalStateTracker.update(actor, state.turn)
        elif opponent.is_alive():
            fighter = opponent
            level = MentalStateTracker.update(opponent, state.turn,
                                              damage_taken=strike.damage, crit_taken=strike.is_crit)
        else:
            return
        if level is None:
            return

        state.add_log(LogEntry(
            turn=state.turn, actor=fighter.name, type=LogType.STATUS,
            action="Mental State", target=fighter.name,
            result=f"{fighter.name} is now {level.value} (stress {fighter.stress:.0f})",
            narrative=self.composer.compose_status(fighter, level.value, "pressure", level.value),
            meta={"mental_state": level.value, "stress": round(fighter.stress, 1)},
        ))

    # ========== 日志 ==========

    def _log_move(
        self,
        state: BattleState,
        actor: Fighter,
        opponent: Fighter,
        move: MoveConfig,
        power: float,
        strike: Optional[StrikeOutcome],
        choice: ActionChoice,
        narrative: str,
    ) -> None:
        if strike is None:
            result = f"{actor.name} uses {move.name}"
        elif strike.is_miss:
            result = "Miss"
        else:
            result = f"{strike.damage:g} damage" + (" (critical)" if strike.is_crit else "")

        state.add_log(LogEntry(
            turn=state.turn, actor=actor.name, type=LogType.MOVE,
            action=move.name, target=opponent.name if move.is_damaging else actor.name,
            result=result, narrative=narrative,
            meta={
                "move_id": move.id,
                "move_type": move.type.value,
                "power": power,
                "chi_cost": move.chi_cost,
                "damage": strike.damage if strike else 0.0,
                "outcome": strike.category.value if strike else None,
                "is_crit": bool(strike and strike.is_crit),
                "fallback": choice.is_fallback,
                "actor_health": actor.health,
                "actor_chi": actor.chi,
                "target_health": opponent.health,
            },
        ))

    def _log_decision(
        self,
        state: BattleState,
        actor: Fighter,
        opponent: Fighter,
        choice: ActionChoice,
        escalation: Optional[EscalationReason],
        narrative: str,
    ) -> None:
        state.ai_log.append(AiLogEntry(
            turn=state.turn,
            agent=actor.name,
            perceived_state={
                "health": actor.health,
                "chi": actor.chi,
                "momentum": actor.momentum,
                "opponent_health": opponent.health,
                "arc_phase": state.arc_phase.value,
                "cooldowns": {k: v for k, v in actor.cooldowns.items() if v > 0},
                "escalation": escalation.value if escalation else None,
                "unavailable": dict(choice.unavailable),
                "mental_state": actor.mental_state.value,
                "stress": round(actor.stress, 1),
            },
            considered_actions=choice.considered,
            chosen_action=choice.move.id,
            reasoning=choice.reasoning,
            narrative=narrative,
        ))

    def _log_status_tick(self, state: BattleState, fighter: Fighter, kind: EffectKind,
                         source_move: str, amount: float) -> None:
        verb = "burn damage" if kind == EffectKind.BURN else "health recovered"
        state.add_log(LogEntry(
            turn=state.turn, actor=fighter.name, type=LogType.STATUS,
            action=kind.value, target=fighter.name, result=f"{amount:g} {verb}",
            narrative=self.composer.compose_status(fighter, kind.value, source_move, kind.value.lower()),
            meta={"effect_type": kind.value, "amount": amount, "source_move": source_move},
        ))

    def _log_knockout(self, state: BattleState, fighter: Fighter, cause: str) -> None:
        state.add_log(LogEntry(
            turn=state.turn, actor=fighter.name, type=LogType.KO,
            action="Knockout", target=fighter.name, result=f"{fighter.name} is knocked out",
            meta={"cause": cause},
        ))
