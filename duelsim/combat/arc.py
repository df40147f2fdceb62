"""
叙事弧状态机
按优先级有序的静态转移表推进战斗阶段, 并向结算与 AI 提供全局修正
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..models import ArcPhase, BattleState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArcModifiers:
    """阶段全局修正"""
    damage_multiplier: float
    defense_bonus: float           # 叠加到减伤比例上
    chi_regen_bonus: float
    status_duration_scale: float
    ai_risk: float                 # AI 激进度, 1.0 为中性
    unlocks_finishers: bool


@dataclass(frozen=True)
class ArcTransition:
    """弧线转移规则"""
    from_phase: ArcPhase
    to_phase: ArcPhase
    priority: int
    predicate: Callable[[BattleState], bool]
    narrative: str


def _any_health_below(threshold: float) -> Callable[[BattleState], bool]:
    return lambda s: any(f.health < threshold for f in s.fighters)


def _all_health_at_most(threshold: float) -> Callable[[BattleState], bool]:
    return lambda s: all(f.health <= threshold for f in s.fighters)


def _turn_after(turn: int) -> Callable[[BattleState], bool]:
    return lambda s: s.turn > turn


# 转移表 (同一起点内按 priority 降序评估, 表内顺序作为同优先级的次序)
ARC_TRANSITIONS: List[ArcTransition] = [
    # 双方同时濒危 → 暮光
    ArcTransition(ArcPhase.CLIMAX, ArcPhase.TWILIGHT, 100, _all_health_at_most(10),
                  "Both fighters stagger at the edge of collapse; the battle hangs by a thread."),
    ArcTransition(ArcPhase.FALLING_ACTION, ArcPhase.TWILIGHT, 100, _all_health_at_most(15),
                  "Exhaustion closes in on both sides; whoever stands last will win."),

    # 血量驱动 (开局即遭重创时跳过高潮)
    ArcTransition(ArcPhase.OPENING, ArcPhase.FALLING_ACTION, 20, _any_health_below(20),
                  "One devastating blow and the duel is already tilting toward its end."),
    ArcTransition(ArcPhase.OPENING, ArcPhase.CLIMAX, 10, _any_health_below(40),
                  "A brutal exchange rips away the preliminaries; the duel erupts into its climax!"),
    ArcTransition(ArcPhase.RISING_ACTION, ArcPhase.CLIMAX, 10, _any_health_below(40),
                  "The pressure breaks loose; the fight surges to its peak!"),

    # 回合驱动 (主路径)
    ArcTransition(ArcPhase.OPENING, ArcPhase.RISING_ACTION, 5, _turn_after(5),
                  "The initial probing ends; the real battle begins!"),
    ArcTransition(ArcPhase.RISING_ACTION, ArcPhase.CLIMAX, 5, _turn_after(18),
                  "Every exchange grows heavier; the duel reaches its climax."),
    ArcTransition(ArcPhase.CLIMAX, ArcPhase.FALLING_ACTION, 5, _any_health_below(30),
                  "The peak has passed; wounds begin to tell."),
    ArcTransition(ArcPhase.FALLING_ACTION, ArcPhase.RESOLUTION, 5, _any_health_below(10),
                  "One fighter falters; the end is in sight."),

    # 回合驱动 (兜底, 保证战斗不会停在某一阶段)
    ArcTransition(ArcPhase.OPENING, ArcPhase.RISING_ACTION, 1, _turn_after(10),
                  "Patience wears thin; both fighters commit to the battle."),
    ArcTransition(ArcPhase.RISING_ACTION, ArcPhase.CLIMAX, 1, _turn_after(25),
                  "The long struggle finally boils over."),
    ArcTransition(ArcPhase.CLIMAX, ArcPhase.FALLING_ACTION, 1, _turn_after(35),
                  "The fury of the climax begins to ebb."),
    ArcTransition(ArcPhase.FALLING_ACTION, ArcPhase.RESOLUTION, 1, _turn_after(45),
                  "The duel drags toward its inevitable conclusion."),
]


ARC_MODIFIERS: Dict[ArcPhase, ArcModifiers] = {
    ArcPhase.OPENING: ArcModifiers(1.0, 0.0, 0.0, 1.0, 0.8, False),
    ArcPhase.RISING_ACTION: ArcModifiers(1.05, 0.0, 0.5, 1.0, 1.0, False),
    ArcPhase.CLIMAX: ArcModifiers(1.1, 0.0, 1.0, 0.75, 1.5, True),
    ArcPhase.FALLING_ACTION: ArcModifiers(1.2, -0.1, 1.5, 0.5, 1.8, True),
    ArcPhase.RESOLUTION: ArcModifiers(1.3, -0.2, 2.0, 0.25, 2.0, True),
    ArcPhase.TWILIGHT: ArcModifiers(1.5, -0.25, 2.0, 1.0, 2.0, True),
}


class ArcStateMachine:
    """叙事弧状态机

    状态 (当前阶段与历史) 保存在 BattleState 中, 本类只负责评估与推进。
    阶段只能沿转移表前进, 已进入过的阶段不会再次进入。
    """

    def __init__(self, transitions: Optional[List[ArcTransition]] = None) -> None:
        self.transitions: List[ArcTransition] = list(transitions if transitions is not None else ARC_TRANSITIONS)

    def candidates(self, phase: ArcPhase) -> List[ArcTransition]:
        """当前阶段可用的规则, 按优先级降序 (稳定排序)"""
        rules = [t for t in self.transitions if t.from_phase == phase]
        return sorted(rules, key=lambda t: t.priority, reverse=True)

    def evaluate(self, state: BattleState) -> Optional[ArcTransition]:
        """评估并应用第一条成立的转移。

        Args:
            state: 当前战斗状态 (阶段与历史会被就地更新)

        Returns:
            Optional[ArcTransition]: 被应用的规则, 未发生转移时为 None
        """
        for rule in self.candidates(state.arc_phase):
            if rule.to_phase in state.arc_history:
                continue
            if rule.predicate(state):
                self._enter(state, rule.to_phase)
                return rule
        return None

    def force(self, state: BattleState, target: ArcPhase) -> bool:
        """外部触发的阶段切换; 目标已访问过或位于当前阶段之前时不做任何事 (暮光为终点)"""
        if target in state.arc_history:
            logger.debug(f"[Arc] 忽略重复阶段触发: {target.value}")
            return False
        if not self.is_forward(state.arc_phase, target):
            logger.debug(f"[Arc] 忽略回退阶段触发: {state.arc_phase.value} -> {target.value}")
            return False
        self._enter(state, target)
        return True

    @staticmethod
    def modifiers(phase: ArcPhase) -> ArcModifiers:
        return ARC_MODIFIERS[phase]

    @staticmethod
    def is_forward(current: ArcPhase, target: ArcPhase) -> bool:
        order = list(ArcPhase)
        if current == ArcPhase.TWILIGHT:
            return False
        return order.index(target) > order.index(current)

    @staticmethod
    def _enter(state: BattleState, target: ArcPhase) -> None:
        logger.debug(f"[Arc] {state.arc_phase.value} -> {target.value} (turn {state.turn})")
        state.arc_phase = target
        state.arc_history.append(target)
