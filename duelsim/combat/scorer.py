"""
行动评分器 (AI)
对当前可用招式按多个独立因子加性打分, 输出最佳招式及可审计的候选列表
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..config import Config
from ..models import (
    Fighter, MoveConfig, MoveType, BattleState, EscalationReason,
    EffectKind, EffectCategory, ConsideredAction
)
from .arc import ArcStateMachine
from .ledger import ResourceLedger
from .patterns import PatternDetector
from .fallback import select_fallback_move, FALLBACK_MOVES
from .mental import MentalStateTracker


@dataclass
class ActionChoice:
    """评分结果"""
    move: MoveConfig
    score: float
    considered: List[ConsideredAction] = field(default_factory=list)
    is_fallback: bool = False
    reasoning: str = ""
    unavailable: Dict[str, str] = field(default_factory=dict)   # 招式 ID -> 不可用原因


class ActionScorer:
    """行动评分器

    评分因子 (全部加性):
    - 基础威力
    - 克制对手的主导招式 / 惩罚对手的僵化模式
    - 自身生命档位 (低血偏防守/回复/绝境, 高血偏进攻)
    - 对手生命档位 (对手濒危时的收割加成)
    - 真气压力 (真气少偏廉价招式, 真气充裕偏强力招式)
    - 标签加成 (piercing / high_damage)
    - 终结技、绝境招式满足解锁条件时的加成
    - 暴击期望
    - 阶段激进度
    - 强制升级时的进攻加成 / 防守惩罚
    - 重复上一招与冗余增益的惩罚
    """

    def __init__(
        self,
        ledger: ResourceLedger,
        detector: PatternDetector,
        top_n: int = Config.AI_CONSIDERED_TOP_N,
    ) -> None:
        self.ledger = ledger
        self.detector = detector
        self.top_n = top_n

    # ========== 候选集合 ==========

    def eligible_moves(
        self,
        fighter: Fighter,
        opponent: Fighter,
        state: BattleState,
        rejected: Optional[Dict[str, str]] = None,
    ) -> List[MoveConfig]:
        """台账可用 ∧ 场地允许 ∧ 终结技已解锁 的招式 (保持角色配置顺序)

        传入 rejected 时, 被排除的招式及其原因会写入该字典。
        """
        arc = ArcStateMachine.modifiers(state.arc_phase)
        opponent_health = opponent.get_health_percentage()

        eligible: List[MoveConfig] = []
        for move in fighter.moves:
            reason = self.ledger.unavailable_reason(fighter, move.id, move, opponent_health, state.arc_phase)
            if reason is None and not state.location.permits(move):
                reason = "not possible at this location"
            if reason is None and move.type == MoveType.FINISHER and not arc.unlocks_finishers and move.unlock is None:
                reason = f"finishers locked in {state.arc_phase.value}"
            if reason is not None:
                if rejected is not None:
                    rejected[move.id] = reason
                continue
            eligible.append(move)
        return eligible

    # ========== 评分 ==========

    def score_move(
        self,
        move: MoveConfig,
        fighter: Fighter,
        opponent: Fighter,
        state: BattleState,
        escalation: Optional[EscalationReason] = None,
    ) -> Tuple[float, List[str]]:
        """计算单个招式的得分。

        Args:
            move: 候选招式
            fighter: 行动方
            opponent: 对手
            state: 当前战斗状态
            escalation: 本回合的强制升级原因 (可选)

        Returns:
            (得分, 理由列表)
        """
        reasons: List[str] = []
        arc = ArcStateMachine.modifiers(state.arc_phase)
        power = self.ledger.effective_power(fighter, move)
        damaging = move.is_damaging

        # 1. 基础威力
        score = power * Config.SCORE_POWER_WEIGHT
        reasons.append(f"base power {power:g}")

        # 2. 克制对手模式
        opp_pattern = self.detector.get_pattern_state(opponent, window=Config.DAMAGE_WINDOW)
        if opp_pattern.dominant_move and move.counters:
            dominant = opponent.get_move(opp_pattern.dominant_move) or FALLBACK_MOVES.get(opp_pattern.dominant_move)
            if dominant is not None:
                traits = {dominant.type.value, *dominant.tags}
                if traits.intersection(move.counters):
                    score += Config.COUNTER_BONUS
                    reasons.append(f"counters {dominant.name}")
        if opp_pattern.is_stale and damaging:
            score += Config.STALE_PUNISH_BONUS
            reasons.append("punishes predictable opponent")

        # 3. 自身生命档位
        health = fighter.get_health_percentage()
        if health <= Config.LOW_HEALTH_THRESHOLD:
            if move.type == MoveType.DEFENSE_BUFF or move.has_tag("recovery"):
                score += Config.LOW_HEALTH_DEFENSE_BONUS
                reasons.append("low health favors defense")
            if move.has_tag("desperation"):
                score += Config.LOW_HEALTH_DESPERATION_BONUS
                reasons.append("low health favors desperation")
        elif health >= Config.HIGH_HEALTH_THRESHOLD and damaging:
            score += Config.HIGH_HEALTH_OFFENSE_BONUS
            reasons.append("healthy enough to press")

        # 4. 对手生命档位
        if opponent.get_health_percentage() <= Config.OPPONENT_CRITICAL_HEALTH and damaging:
            score += Config.FINISHING_BONUS
            reasons.append("opponent is critical")
            if move.type == MoveType.FINISHER:
                score += Config.FINISHER_FINISHING_BONUS
                reasons.append("finisher can end it")

        # 5. 真气压力
        chi_ratio = fighter.chi / fighter.max_chi if fighter.max_chi else 0.0
        if chi_ratio < Config.LOW_CHI_RATIO:
            bonus = Config.LOW_CHI_BONUS * (1.0 - min(1.0, move.chi_cost / fighter.max_chi))
            score += bonus
            reasons.append(f"low chi favors cheap moves (+{bonus:.1f})")
        elif chi_ratio > Config.HIGH_CHI_RATIO and damaging:
            bonus = power * Config.HIGH_CHI_POWER_WEIGHT
            score += bonus
            reasons.append(f"chi to spare (+{bonus:.1f})")

        # 6. 标签加成
        if move.has_tag("piercing"):
            if opponent.has_effect(EffectKind.DEFENSE_UP):
                score += Config.PIERCING_VS_DEFENSE_BONUS
                reasons.append("pierces raised guard")
            else:
                score += Config.PIERCING_BONUS
                reasons.append("piercing")
        if move.has_tag("high_damage"):
            score += Config.HIGH_DAMAGE_BONUS
            reasons.append("high damage")

        # 7. 解锁加成
        if move.unlock is not None and (move.type == MoveType.FINISHER or move.has_tag("desperation")):
            score += Config.UNLOCK_BONUS
            reasons.append("unlock condition met")

        # 8. 暴击期望
        if damaging and move.crit_chance > 0:
            expected = power * move.crit_chance * (move.crit_multiplier - 1.0)
            score += expected
            reasons.append(f"crit expectation +{expected:.1f}")

        # 9. 阶段激进度
        if damaging and arc.ai_risk != 1.0:
            risk = (arc.ai_risk - 1.0) * power * Config.ARC_RISK_WEIGHT
            score += risk
            reasons.append(f"{state.arc_phase.value} aggression {risk:+.1f}")

        # 10. 强制升级
        if escalation is not None:
            if damaging and (move.type == MoveType.FINISHER or move.has_tag("high_damage")):
                score += Config.ESCALATION_BONUS
                reasons.append(f"escalation ({escalation.value}) demands power")
            elif damaging:
                score += Config.ESCALATION_BONUS / 2
                reasons.append(f"escalation ({escalation.value}) favors attack")
            if move.type == MoveType.DEFENSE_BUFF or move.has_tag(PatternDetector.REPOSITION_TAG):
                score -= Config.ESCALATION_DEFENSIVE_PENALTY
                reasons.append("escalation punishes passivity")

        # 11. 性格倾向 (随心理状态偏移)
        lean = self._personality_lean(move, fighter)
        if abs(lean) >= 0.05:
            score += lean
            reasons.append(f"{fighter.mental_state.value} temperament {lean:+.1f}")

        # 12. 惩罚项
        if fighter.history and fighter.history[-1] == move.id:
            score -= Config.REPEAT_PENALTY
            reasons.append("repeats last move")
        spec = move.applies_effect
        if spec is not None:
            holder = fighter if spec.category == EffectCategory.BUFF else opponent
            if holder.has_effect(spec.kind):
                score -= Config.REDUNDANT_BUFF_PENALTY
                reasons.append(f"{spec.kind.value} already active")

        return round(score, 3), reasons

    @staticmethod
    def _personality_lean(move: MoveConfig, fighter: Fighter) -> float:
        """性格维度偏离中性的加减分: 进攻看激进度, 高风险招式再看冒险倾向, 防守看防御倾向"""
        profile = MentalStateTracker.effective_profile(fighter)
        weight = Config.PERSONALITY_WEIGHT
        if move.is_damaging:
            lean = (profile.aggression - 0.5) * weight
            if move.type == MoveType.FINISHER or move.has_tag("high_damage"):
                lean += (profile.risk_tolerance - 0.5) * weight
            return round(lean, 3)
        if move.type == MoveType.DEFENSE_BUFF or move.has_tag("recovery"):
            return round((profile.defensive_bias - 0.5) * weight, 3)
        return 0.0

    # ========== 决策 ==========

    def choose(
        self,
        fighter: Fighter,
        opponent: Fighter,
        state: BattleState,
        escalation: Optional[EscalationReason] = None,
    ) -> ActionChoice:
        """选择本回合的招式。

        最高分胜出, 同分按角色配置中的顺序 (稳定排序)。
        没有任何可用招式时走保底路径, 永不抛出异常。

        Returns:
            ActionChoice: 选中的招式、得分与前 N 名候选
        """
        unavailable: Dict[str, str] = {}
        eligible = self.eligible_moves(fighter, opponent, state, rejected=unavailable)

        if not eligible:
            fallback = select_fallback_move(fighter)
            reason = f"no legal move; falling back to {fallback.name}"
            if unavailable:
                reason += " (" + ", ".join(f"{k}: {v}" for k, v in unavailable.items()) + ")"
            return ActionChoice(
                move=fallback,
                score=0.0,
                considered=[ConsideredAction(fallback.id, fallback.name, 0.0, [reason])],
                is_fallback=True,
                reasoning=reason,
                unavailable=unavailable,
            )

        scored = []
        for index, move in enumerate(eligible):
            score, reasons = self.score_move(move, fighter, opponent, state, escalation)
            scored.append((score, index, move, reasons))
        scored.sort(key=lambda item: (-item[0], item[1]))

        best_score, _, best_move, best_reasons = scored[0]
        considered = [
            ConsideredAction(move.id, move.name, score, reasons)
            for score, _, move, reasons in scored[:self.top_n]
        ]
        reasoning = f"{best_move.name} scored {best_score:.1f}: " + "; ".join(best_reasons[:4])

        return ActionChoice(
            move=best_move,
            score=best_score,
            considered=considered,
            is_fallback=False,
            reasoning=reasoning,
            unavailable=unavailable,
        )
