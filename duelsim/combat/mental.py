"""
心理状态
承受伤害、被暴击、势头下滑与露出破绽都会累积压力;
压力越过阈值 (乘以韧性) 后心理状态加重, 并让性格向冒进方向偏移
"""

import logging
from typing import Optional

from ..config import Config
from ..models import BehaviorFlag, Fighter, MentalState, PersonalityProfile

logger = logging.getLogger(__name__)


class MentalStateTracker:
    """压力累积与心理状态判定 (无状态, 数据存放在 Fighter 上)"""

    @staticmethod
    def level_for(stress: float, resilience: float) -> MentalState:
        for name, threshold in Config.MENTAL_THRESHOLDS:
            if stress > threshold * resilience:
                return MentalState(name)
        return MentalState.STABLE

    @staticmethod
    def stress_from(fighter: Fighter, damage_taken: float, crit_taken: bool, current_turn: int) -> float:
        """本次行动给该角色带来的压力"""
        stress = damage_taken * Config.STRESS_DAMAGE_RATIO
        if crit_taken:
            stress += Config.STRESS_CRIT_RECEIVED
        if fighter.momentum < 0:
            stress += abs(fighter.momentum) * Config.STRESS_MOMENTUM_WEIGHT
        if fighter.has_flag(BehaviorFlag.EXPOSED, current_turn):
            stress += Config.STRESS_EXPOSED
        return stress

    @classmethod
    def update(
        cls,
        fighter: Fighter,
        current_turn: int,
        damage_taken: float = 0.0,
        crit_taken: bool = False,
    ) -> Optional[MentalState]:
        """累积压力并重新判定心理状态。

        心理状态只会加重; 崩溃后不再累积。

        Returns:
            状态发生变化时返回新状态, 否则 None
        """
        if fighter.mental_state == MentalState.BROKEN:
            return None

        fighter.stress += cls.stress_from(fighter, damage_taken, crit_taken, current_turn)
        level = cls.level_for(fighter.stress, fighter.profile.resilience)

        order = list(MentalState)
        if order.index(level) <= order.index(fighter.mental_state):
            return None

        logger.debug(f"[Mental] {fighter.name}: {fighter.mental_state.value} -> {level.value} "
                     f"(stress {fighter.stress:.0f})")
        fighter.mental_state = level
        return level

    @staticmethod
    def effective_profile(fighter: Fighter) -> PersonalityProfile:
        """叠加心理状态偏移后的性格"""
        deltas = Config.MENTAL_SHIFTS.get(fighter.mental_state.value)
        if not deltas:
            return fighter.profile
        return fighter.profile.shifted(deltas, Config.MENTAL_SHIFT_CAP)
