"""
状态效果管理
负责施加、结算 (回合开始) 与移除状态效果
"""

import random
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import Fighter, EffectSpec, EffectKind, StatusEffect
from .arc import ArcModifiers


@dataclass
class EffectTick:
    """一次效果结算记录"""
    kind: EffectKind
    source_move: str
    amount: float = 0.0


@dataclass
class TurnStartReport:
    """回合开始时的效果结算汇总"""
    ticks: List[EffectTick] = field(default_factory=list)
    stunned: bool = False
    expired: List[EffectKind] = field(default_factory=list)


class StatusEffectManager:
    """状态效果管理器"""

    @staticmethod
    def apply(
        target: Fighter,
        spec: EffectSpec,
        source_move: str,
        turn: int,
        arc: ArcModifiers,
        rng: random.Random,
    ) -> Optional[StatusEffect]:
        """按概率施加状态效果。

        持续时间受阶段修正缩放 (至少 1 回合); 同一招式的同类效果刷新而不叠加。

        Returns:
            Optional[StatusEffect]: 成功施加的效果, 未触发时为 None
        """
        if spec.chance < 1.0 and rng.random() >= spec.chance:
            return None

        duration = max(1, round(spec.duration * arc.status_duration_scale))
        effect = StatusEffect(
            kind=spec.kind,
            duration=duration,
            potency=spec.potency,
            source_move=source_move,
            turn_applied=turn,
        )

        target.effects = [
            e for e in target.effects
            if not (e.kind == spec.kind and e.source_move == source_move)
        ]
        target.effects.append(effect)
        return effect

    @staticmethod
    def process_turn_start(fighter: Fighter) -> TurnStartReport:
        """在角色行动前结算所有效果并倒数持续时间"""
        report = TurnStartReport()
        still_active: List[StatusEffect] = []

        for effect in fighter.effects:
            if effect.kind == EffectKind.BURN:
                dealt = fighter.take_damage(round(effect.potency, 1))
                report.ticks.append(EffectTick(effect.kind, effect.source_move, dealt))
            elif effect.kind == EffectKind.HEAL_OVER_TIME:
                healed = fighter.heal(round(effect.potency, 1))
                report.ticks.append(EffectTick(effect.kind, effect.source_move, healed))
            elif effect.kind == EffectKind.STUN:
                report.stunned = True
                report.ticks.append(EffectTick(effect.kind, effect.source_move))

            effect.duration -= 1
            if effect.duration > 0:
                still_active.append(effect)
            else:
                report.expired.append(effect.kind)

        fighter.effects = still_active
        return report
