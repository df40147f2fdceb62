"""
模式与升级侦测器
读取角色的招式历史环形缓冲, 判断重复/僵化, 汇总伤害趋势, 并在战斗停滞时建议强制升级
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import Config
from ..models import Fighter, BattleState, EscalationReason


@dataclass
class PatternState:
    """某名角色当前的招式模式"""
    recent_moves: List[str] = field(default_factory=list)
    frequency: Dict[str, int] = field(default_factory=dict)
    dominant_move: Optional[str] = None
    is_stale: bool = False
    stale_move: Optional[str] = None


class PatternDetector:
    """模式与升级侦测器

    与弧线状态机相互独立: 弧线表按血量/回合推进叙事阶段, 本侦测器只看单个角色的行为是否停滞,
    二者任一触发都会提高战斗烈度。
    """

    REPOSITION_TAG = "reposition"

    def __init__(
        self,
        history_length: int = Config.HISTORY_LENGTH,
        stale_run_length: int = Config.STALE_RUN_LENGTH,
    ) -> None:
        self.history_length = history_length
        self.stale_run_length = stale_run_length

    # ========== 历史记录 ==========

    def record(self, fighter: Fighter, move_id: str, damage: float) -> None:
        """记录一次行动 (超出长度的旧记录被丢弃)"""
        fighter.history.append(move_id)
        if len(fighter.history) > self.history_length:
            del fighter.history[:-self.history_length]

        fighter.damage_history.append(damage)
        if len(fighter.damage_history) > self.history_length:
            del fighter.damage_history[:-self.history_length]

    def get_pattern_state(self, fighter: Fighter, window: Optional[int] = None) -> PatternState:
        """获取角色的招式模式。

        Args:
            fighter: 目标角色
            window: 统计最近多少次行动 (默认整个缓冲)

        Returns:
            PatternState: 最近招式、频次、主导招式与是否僵化
        """
        recent = fighter.history[-window:] if window else list(fighter.history)
        frequency = dict(Counter(recent))

        dominant = None
        if frequency:
            # 频次相同时取最近出现的招式
            dominant = max(reversed(recent), key=lambda m: frequency[m])

        tail = fighter.history[-self.stale_run_length:]
        is_stale = len(tail) >= self.stale_run_length and len(set(tail)) == 1

        return PatternState(
            recent_moves=recent,
            frequency=frequency,
            dominant_move=dominant,
            is_stale=is_stale,
            stale_move=tail[-1] if is_stale else None,
        )

    def is_overused(self, fighter: Fighter, move_id: str) -> bool:
        """该招式是否正是造成僵化的那一招"""
        state = self.get_pattern_state(fighter)
        return state.is_stale and state.stale_move == move_id

    # ========== 伤害趋势 ==========

    def average_recent_damage(self, fighter: Fighter, window: int = Config.DAMAGE_WINDOW) -> float:
        recent = fighter.damage_history[-window:]
        if not recent:
            return 0.0
        return sum(recent) / len(recent)

    def total_recent_damage(self, fighter: Fighter, window: int = Config.DAMAGE_WINDOW) -> float:
        return sum(fighter.damage_history[-window:])

    def no_damage_streak(self, fighter: Fighter) -> int:
        streak = 0
        for dmg in reversed(fighter.damage_history):
            if dmg > 0:
                break
            streak += 1
        return streak

    def reposition_count(self, fighter: Fighter) -> int:
        count = 0
        for move_id in fighter.history:
            move = fighter.get_move(move_id)
            if move and move.has_tag(self.REPOSITION_TAG):
                count += 1
        return count

    # ========== 强制升级 ==========

    def should_force_escalation(self, state: BattleState, fighter: Fighter) -> Optional[EscalationReason]:
        """判断是否需要对该角色强制升级。

        判定顺序:
        1. 升级冷却中 → None
        2. 回合 >= 30 且近期平均伤害 < 1.5 → DAMAGE
        3. 招式僵化 → REPETITION
        4. 回合 >= 20 且 (平均伤害 < 1.0 或连续无伤害 >= 4) → STALEMATE
        5. 历史中的走位招式 >= 5 → REPOSITION

        Args:
            state: 当前战斗状态
            fighter: 即将行动的角色

        Returns:
            Optional[EscalationReason]: 升级原因, 无需升级时为 None
        """
        turn = state.turn
        if fighter.last_escalation_turn is not None and turn - fighter.last_escalation_turn < Config.ESCALATION_COOLDOWN:
            return None

        if not fighter.history:
            return None

        avg_damage = self.average_recent_damage(fighter)

        if turn >= Config.ESCALATION_DAMAGE_TURN and avg_damage < Config.ESCALATION_DAMAGE_AVG:
            return EscalationReason.DAMAGE

        if self.get_pattern_state(fighter).is_stale:
            return EscalationReason.REPETITION

        if turn >= Config.STALEMATE_TURN and (
            avg_damage < Config.STALEMATE_DAMAGE_AVG
            or self.no_damage_streak(fighter) >= Config.STALEMATE_NO_DAMAGE_STREAK
        ):
            return EscalationReason.STALEMATE

        if self.reposition_count(fighter) >= Config.REPOSITION_LIMIT:
            return EscalationReason.REPOSITION

        return None

    def mark_escalated(self, fighter: Fighter, reason: EscalationReason, turn: int) -> None:
        """记录一次升级事件 (进入冷却并累计次数)"""
        fighter.last_escalation_turn = turn
        fighter.last_escalation_reason = reason
        fighter.escalation_counts[reason] = fighter.escalation_counts.get(reason, 0) + 1

    def should_break_stalemate(self, fighter: Fighter) -> bool:
        """僵局升级次数达到上限后, 战斗由回合结算强制收尾"""
        return fighter.escalation_counts.get(EscalationReason.STALEMATE, 0) >= Config.STALEMATE_BREAK_LIMIT
