"""
资源与冷却台账
管理每名角色的真气消耗、招式冷却、使用次数 (已消耗次数) 与收益递减惩罚
"""

from typing import Optional, TYPE_CHECKING
from ..models import Fighter, MoveConfig, ArcPhase
from ..exceptions import MoveUnavailableError

if TYPE_CHECKING:
    from .patterns import PatternDetector


class ResourceLedger:
    """资源/冷却台账

    使用次数 uses 统一表示"本场已使用次数", 与 max_uses 比较时一律使用 uses < max_uses。
    """

    def __init__(self, detector: Optional['PatternDetector'] = None) -> None:
        """
        Args:
            detector: 模式侦测器, 用于排除被判定为滥用的招式 (可选)
        """
        self.detector = detector

    def apply_use(self, fighter: Fighter, move_id: str, move: MoveConfig) -> None:
        """记录一次招式使用。

        流程:
        1. 校验真气、冷却与次数上限, 不满足则抛出 MoveUnavailableError
        2. 扣除真气
        3. 设置冷却为招式冷却长度
        4. 使用次数 +1
        5. 若配置了收益递减且此前使用次数 >= 阈值, 更新常驻威力惩罚

        Args:
            fighter: 使用招式的角色
            move_id: 招式 ID
            move: 招式定义

        Raises:
            MoveUnavailableError: 招式当前不可用
        """
        reason = self._resource_block(fighter, move_id, move)
        if reason:
            raise MoveUnavailableError(fighter.id, move_id, reason)

        fighter.spend_chi(move.chi_cost)

        if move.cooldown > 0:
            fighter.cooldowns[move_id] = move.cooldown

        prior_uses = fighter.uses.get(move_id, 0)
        fighter.uses[move_id] = prior_uses + 1

        rule = move.diminishing_returns
        if rule and prior_uses >= rule.uses_before_decay:
            extra_uses = prior_uses - rule.uses_before_decay + 1
            penalty = extra_uses * rule.decay_per_use
            fighter.penalties[move_id] = min(penalty, move.power - rule.power_floor)

    def tick(self, fighter: Fighter) -> None:
        """每名角色每回合调用一次, 所有非零冷却减一"""
        for move_id, remaining in fighter.cooldowns.items():
            if remaining > 0:
                fighter.cooldowns[move_id] = remaining - 1

    def is_available(
        self,
        fighter: Fighter,
        move_id: str,
        move: MoveConfig,
        opponent_health: float = 100.0,
        phase: ArcPhase = ArcPhase.OPENING,
    ) -> bool:
        return self.unavailable_reason(fighter, move_id, move, opponent_health, phase) is None

    def unavailable_reason(
        self,
        fighter: Fighter,
        move_id: str,
        move: MoveConfig,
        opponent_health: float = 100.0,
        phase: ArcPhase = ArcPhase.OPENING,
    ) -> Optional[str]:
        """返回第一个不满足的可用条件, 全部满足时返回 None"""
        reason = self._resource_block(fighter, move_id, move)
        if reason:
            return reason

        if move.unlock and not move.unlock.is_met(fighter.get_health_percentage(), opponent_health, phase):
            return "unlock condition not met"

        if self.detector and self.detector.is_overused(fighter, move_id):
            return "overused"

        return None

    def effective_power(self, fighter: Fighter, move: MoveConfig) -> float:
        """扣除收益递减惩罚后的威力, 不低于递减下限"""
        penalty = fighter.penalties.get(move.id, 0.0)
        floor = move.diminishing_returns.power_floor if move.diminishing_returns else 0.0
        return max(floor, move.power - penalty)

    def regenerate(self, fighter: Fighter, amount: float) -> None:
        fighter.gain_chi(amount)

    def _resource_block(self, fighter: Fighter, move_id: str, move: MoveConfig) -> Optional[str]:
        if fighter.cooldowns.get(move_id, 0) > 0:
            return "on cooldown"
        if fighter.chi < move.chi_cost:
            return "insufficient chi"
        uses = fighter.uses.get(move_id, 0)
        if move.max_uses is not None and uses >= move.max_uses:
            return "max uses reached"
        if move.once_per_battle and uses > 0:
            return "already used this battle"
        return None
