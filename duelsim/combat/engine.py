"""
战斗引擎
包含先手判定和战斗主循环 (回合内的结算交给 TurnResolver)
"""

import copy
import logging
import random
from typing import Optional

from ..config import Config
from ..models import (
    Fighter, LocationConfig, BattleState, BattleResult, LogEntry, LogType, EndReason
)
from ..exceptions import BattleConcludedError
from ..narrative.pool import NarrativeLinePool
from ..narrative.composer import NarrativeComposer
from ..narrative.memory import NarrativeMemory
from .arc import ArcStateMachine
from .ledger import ResourceLedger
from .patterns import PatternDetector
from .scorer import ActionScorer
from .resolver import TurnResolver

logger = logging.getLogger(__name__)


class BattleSimulator:
    """战斗模拟器主控

    每个实例持有自己的台账、侦测器、弧线状态机、叙事记忆与随机源,
    同一进程内的多场战斗互不影响。
    """

    def __init__(
        self,
        fighter_a: Fighter,
        fighter_b: Fighter,
        location: LocationConfig,
        pool: Optional[NarrativeLinePool] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        max_turns: int = Config.MAX_TURNS,
    ) -> None:
        """初始化战斗模拟器。

        Args:
            fighter_a: A 方角色
            fighter_b: B 方角色
            location: 场地
            pool: 叙事台词池 (缺省时全部走程序化叙事)
            seed: 随机种子, 与 rng 二选一
            rng: 外部注入的随机源 (优先于 seed)
            max_turns: 回合上限

        Raises:
            ValueError: 双方 ID 相同或回合上限非法
        """
        if fighter_a.id == fighter_b.id:
            raise ValueError(f"双方角色 ID 不能相同: {fighter_a.id}")
        if max_turns < 1:
            raise ValueError(f"回合上限必须为正数: {max_turns}")

        self.rng: random.Random = rng or random.Random(seed)
        self.max_turns: int = max_turns
        self.state: BattleState = BattleState(fighters=[fighter_a, fighter_b], location=location)

        self.detector = PatternDetector()
        self.ledger = ResourceLedger(self.detector)
        self.scorer = ActionScorer(self.ledger, self.detector)
        self.arc_machine = ArcStateMachine()
        self.composer = NarrativeComposer(pool or NarrativeLinePool(), self.rng, NarrativeMemory(self.rng))
        self.resolver = TurnResolver(
            self.ledger, self.detector, self.scorer, self.arc_machine, self.composer, self.rng
        )

    @property
    def fighter_a(self) -> Fighter:
        return self.state.fighters[0]

    @property
    def fighter_b(self) -> Fighter:
        return self.state.fighters[1]

    def run_battle(self) -> BattleResult:
        """运行完整的战斗流程。

        战斗流程:
        1. 重置叙事记忆, 按速度决定先手 (同速 A 方先手)
        2. 双方交替行动, 每次行动计为一回合, 直到:
           - 任一方生命归零
           - 达到回合上限
           - 僵局升级次数达到上限
        3. 执行战斗结算, 判定胜负

        胜负判定规则:
        - 击倒胜: 对方生命归零 (双方同时归零为平局)
        - 判定胜: 回合上限或僵局时剩余生命更高
        - 平局: 剩余生命相同

        Returns:
            BattleResult: 胜者、结束原因、最终角色快照与完整日志

        Raises:
            BattleConcludedError: 同一实例重复运行
        """
        state = self.state
        if state.is_over:
            raise BattleConcludedError("该战斗已经结束, 请创建新的 BattleSimulator")

        self.composer.reset()
        state.active_index = 0 if self.fighter_a.speed >= self.fighter_b.speed else 1
        logger.info(
            f"[Engine] 战斗开始: {self.fighter_a.name} vs {self.fighter_b.name} "
            f"@ {state.location.name}, 先手 {state.active_fighter.name}"
        )

        end_reason: Optional[EndReason] = None
        while end_reason is None:
            if not self.fighter_a.is_alive() or not self.fighter_b.is_alive():
                end_reason = EndReason.KNOCKOUT
                break

            if state.turn >= self.max_turns:
                end_reason = EndReason.TURN_CAP
                break

            if any(self.detector.should_break_stalemate(f) for f in state.fighters):
                end_reason = EndReason.STALEMATE
                break

            state.advance_turn()
            self.resolver.execute_turn(state)
            state.active_index = 1 - state.active_index

        return self._conclude_battle(end_reason)

    def _conclude_battle(self, reason: EndReason) -> BattleResult:
        """结算胜负、写入终局日志并冻结战斗状态"""
        state = self.state
        a, b = self.fighter_a, self.fighter_b

        if reason == EndReason.KNOCKOUT:
            if a.is_alive() and not b.is_alive():
                winner, loser = a, b
            elif b.is_alive() and not a.is_alive():
                winner, loser = b, a
            else:
                winner, loser = None, None
        elif a.health > b.health:
            winner, loser = a, b
        elif b.health > a.health:
            winner, loser = b, a
        else:
            winner, loser = None, None

        victory_line, defeat_line = self.composer.compose_conclusion(winner, loser, (a, b))
        meta = {
            "end_reason": reason.value,
            "health": {a.id: a.health, b.id: b.health},
            "arc_phase": state.arc_phase.value,
        }

        if winner is None:
            state.add_log(LogEntry(
                turn=state.turn, actor="Narrator", type=LogType.DRAW,
                action="Draw", result=f"{a.name} and {b.name} draw ({reason.value})",
                narrative=victory_line, meta=meta,
            ))
        else:
            state.add_log(LogEntry(
                turn=state.turn, actor=winner.name, type=LogType.VICTORY,
                action="Victory", target=loser.name,
                result=f"{winner.name} defeats {loser.name} ({reason.value})",
                narrative=victory_line if defeat_line is None else f"{victory_line} {defeat_line}",
                meta=meta,
            ))

        state.conclude(winner.id if winner else None, reason)
        logger.info(
            f"[Engine] 战斗结束 (turn {state.turn}, {reason.value}): "
            f"{winner.name if winner else '平局'}"
        )

        return BattleResult(
            winner_id=state.winner_id,
            end_reason=reason,
            turns=state.turn,
            location_id=state.location.id,
            fighters=[copy.deepcopy(f) for f in state.fighters],
            arc_history=list(state.arc_history),
            battle_log=list(state.battle_log),
            ai_log=list(state.ai_log),
        )
