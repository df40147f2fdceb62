"""
叙事组装器 (Narrative Composer)

职责：把一回合的机械结果翻译为文本。
流程：选择叙事轨道 → 招式台词 + 结果台词 → 追加插入语 (升级 / 绝境 / 模式打破)。
池中缺失的键由 FallbackNarrator 生成程序化句子兜底, 永不失败。
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from ..config import Config
from ..models import Fighter, MoveConfig, OutcomeCategory, EscalationReason
from .constants import NarrativeTrack, NarrativeCategory, MoveContext, TRACK_ROTATION
from .pool import NarrativeLinePool, PoolEntry
from .memory import NarrativeMemory
from .fallback import FallbackNarrator

logger = logging.getLogger(__name__)


@dataclass
class TurnOutcome:
    """一回合机械结果 (叙事输入)"""
    turn: int
    actor: Fighter
    target: Fighter
    move: MoveConfig
    damage: float = 0.0
    category: Optional[OutcomeCategory] = None   # 不造成伤害的招式为 None
    is_crit: bool = False
    escalation: Optional[EscalationReason] = None
    pattern_break: bool = False
    arc_shift: bool = False


class NarrativeComposer:
    """
    叙事组装器, 每场战斗一个实例。

    轨道选择优先级：
    1. 暴击或任一方低血 → 情感
    2. 打破模式 → 环境
    3. 开局几回合 → 技术
    4. 其余轮转, 跳过该角色最近用过的轨道
    """

    def __init__(
        self,
        pool: NarrativeLinePool,
        rng: random.Random,
        memory: Optional[NarrativeMemory] = None,
    ):
        self.pool = pool
        self.memory = memory or NarrativeMemory(rng)
        self.fallback = FallbackNarrator(self.memory)

        self._rotation_index: Dict[str, int] = {}
        self._recent_tracks: Dict[str, List[NarrativeTrack]] = {}
        self._last_escalation_insert: Dict[str, int] = {}
        self._last_desperation_insert: Dict[str, int] = {}
        self._warned_keys: Set[str] = set()

    def reset(self) -> None:
        self.memory.reset()
        self._rotation_index.clear()
        self._recent_tracks.clear()
        self._last_escalation_insert.clear()
        self._last_desperation_insert.clear()
        self._warned_keys.clear()

    # ========== 轨道选择 ==========

    def select_track(self, outcome: TurnOutcome) -> NarrativeTrack:
        fighter_id = outcome.actor.id
        low_health = min(outcome.actor.get_health_percentage(),
                         outcome.target.get_health_percentage()) <= Config.NARRATIVE_LOW_HEALTH

        if outcome.is_crit or low_health:
            track = NarrativeTrack.EMOTIONAL
        elif outcome.pattern_break:
            track = NarrativeTrack.ENVIRONMENTAL
        elif outcome.turn <= Config.EARLY_TURNS:
            track = NarrativeTrack.TECHNICAL
        else:
            track = self._rotate(fighter_id)

        recent = self._recent_tracks.setdefault(fighter_id, [])
        recent.append(track)
        del recent[:-max(1, Config.TRACK_COOLDOWN_ACTIONS)]
        return track

    def _rotate(self, fighter_id: str) -> NarrativeTrack:
        start = self._rotation_index.get(fighter_id, 0)
        cooling = self._recent_tracks.get(fighter_id, [])[-Config.TRACK_COOLDOWN_ACTIONS:] if Config.TRACK_COOLDOWN_ACTIONS else []
        for offset in range(len(TRACK_ROTATION)):
            pos = (start + offset) % len(TRACK_ROTATION)
            if TRACK_ROTATION[pos] not in cooling:
                self._rotation_index[fighter_id] = pos + 1
                return TRACK_ROTATION[pos]
        # 全部冷却中: 按轮转位置取
        self._rotation_index[fighter_id] = start + 1
        return TRACK_ROTATION[start % len(TRACK_ROTATION)]

    # ========== 回合叙事 ==========

    def compose_turn(self, outcome: TurnOutcome) -> str:
        """组装一回合的叙事文本"""
        actor, target, move = outcome.actor, outcome.target, outcome.move
        variables = self._variables(actor, target, move)
        parts: List[str] = []

        # 1. 招式台词 (缺失时整句走程序化兜底)
        contexts = self._move_contexts(outcome)
        entry = self.pool.lookup_move(move.id, contexts)
        if entry is None:
            self._warn_missing(f"move:{move.id}:{contexts[0].value}")
            parts.append(self.fallback.generate(actor.id, actor.name, move.name, contexts[0].value, target.name))
        else:
            parts.append(self._pick(actor.id, entry, variables))

            # 2. 结果台词
            if outcome.category is not None:
                track = self.select_track(outcome)
                result_entry = self.pool.lookup(NarrativeCategory(outcome.category.value), track.value)
                if result_entry is None:
                    self._warn_missing(f"outcome:{outcome.category.value}:{track.value}")
                else:
                    parts.append(self._pick(actor.id, result_entry, variables))

        # 3. 插入语
        if outcome.pattern_break:
            line = self._category_line(actor, NarrativeCategory.PATTERN_BREAK, variables)
            if line:
                parts.append(line)

        if self._is_dramatic(outcome) and self._cooled(self._last_escalation_insert, actor.id,
                                                       outcome.turn, Config.ESCALATION_INSERT_COOLDOWN):
            line = self._category_line(actor, NarrativeCategory.ESCALATION, variables)
            if line:
                parts.append(line)
                self._last_escalation_insert[actor.id] = outcome.turn

        if actor.get_health_percentage() <= Config.DESPERATION_INSERT_HEALTH and self._cooled(
                self._last_desperation_insert, actor.id, outcome.turn, Config.DESPERATION_INSERT_COOLDOWN):
            line = self._category_line(actor, NarrativeCategory.DESPERATION, variables)
            if line:
                parts.append(line)
                self._last_desperation_insert[actor.id] = outcome.turn

        return " ".join(parts)

    def compose_escalation(self, fighter: Fighter, opponent: Fighter, reason: EscalationReason, turn: int) -> str:
        """强制升级事件的叙事 (同时占用升级插入语的冷却)"""
        self._last_escalation_insert[fighter.id] = turn
        variables = self._variables(fighter, opponent, None)
        variables["reason"] = reason.value
        line = self._category_line(fighter, NarrativeCategory.ESCALATION, variables)
        return line or self.fallback.generate(fighter.id, fighter.name, "escalation", "trigger", opponent.name)

    def compose_desperation(self, fighter: Fighter, opponent: Fighter, turn: int) -> str:
        """进入绝境状态的叙事 (同时占用绝境插入语的冷却)"""
        self._last_desperation_insert[fighter.id] = turn
        line = self._category_line(fighter, NarrativeCategory.DESPERATION, self._variables(fighter, opponent, None))
        return line or self.fallback.generate(fighter.id, fighter.name, "desperation", "trigger", opponent.name)

    def compose_status(self, fighter: Fighter, effect_kind: str, source_move: str, variant: str) -> str:
        """状态效果叙事; variant 为效果种类小写或 'applied'"""
        variables = {"actor": fighter.name, "target": fighter.name, "move": source_move,
                     "effect": effect_kind}
        entry = self.pool.lookup(NarrativeCategory.STATUS, variant)
        if entry is None:
            self._warn_missing(f"outcome:status:{variant}")
            return self.fallback.generate(fighter.id, fighter.name, effect_kind, "trigger")
        return self._pick(fighter.id, entry, variables)

    def compose_conclusion(
        self,
        winner: Optional[Fighter],
        loser: Optional[Fighter],
        fighters: Tuple[Fighter, Fighter],
    ) -> Tuple[str, Optional[str]]:
        """
        终局台词。

        Returns:
            (胜者台词, 败者台词); 平局时为 (平局台词, None)
        """
        if winner is None or loser is None:
            a, b = fighters
            line = self._category_line(a, NarrativeCategory.DRAW, self._variables(a, b, None))
            return line or f"{a.name} and {b.name} fight to a standstill.", None

        victory = self._category_line(winner, NarrativeCategory.VICTORY, self._variables(winner, loser, None))
        if victory is None:
            victory = self.fallback.generate(winner.id, winner.name, "victory", "victory", loser.name)
        defeat = self._category_line(loser, NarrativeCategory.DEFEAT, self._variables(loser, winner, None))
        if defeat is None:
            defeat = self.fallback.generate(loser.id, loser.name, "defeat", "defeat", winner.name)
        return victory, defeat

    # ========== 辅助方法 ==========

    @staticmethod
    def _move_contexts(outcome: TurnOutcome) -> List[MoveContext]:
        if outcome.category is None:
            return [MoveContext.USE, MoveContext.HIT]
        if outcome.category == OutcomeCategory.MISS:
            return [MoveContext.MISS]
        if outcome.is_crit:
            return [MoveContext.CRIT, MoveContext.HIT]
        return [MoveContext.HIT]

    @staticmethod
    def _is_dramatic(outcome: TurnOutcome) -> bool:
        return (
            outcome.is_crit
            or outcome.damage >= Config.DRAMATIC_DAMAGE
            or outcome.escalation is not None
            or outcome.arc_shift
        )

    @staticmethod
    def _cooled(last: Dict[str, int], fighter_id: str, turn: int, cooldown: int) -> bool:
        previous = last.get(fighter_id)
        return previous is None or turn - previous >= cooldown

    @staticmethod
    def _variables(actor: Fighter, target: Fighter, move: Optional[MoveConfig]) -> Dict[str, str]:
        return {
            "actor": actor.name,
            "target": target.name,
            "move": move.name if move else "",
        }

    def _category_line(self, fighter: Fighter, category: NarrativeCategory,
                       variables: Dict[str, str]) -> Optional[str]:
        entry = self.pool.lookup(category, character_id=fighter.character_id or fighter.id)
        if entry is None:
            self._warn_missing(f"outcome:{category.value}")
            return None
        return self._pick(fighter.id, entry, variables)

    def _pick(self, fighter_id: str, entry: PoolEntry, variables: Dict[str, str]) -> str:
        selection = self.memory.select(fighter_id, entry.key, entry.lines)
        try:
            return selection.text.format(**variables)
        except (KeyError, IndexError, AttributeError, ValueError):
            logger.warning(f"[Composer] 台词占位符无法替换: {entry.key} -> {selection.text!r}")
            return selection.text

    def _warn_missing(self, key: str) -> None:
        if key not in self._warned_keys:
            self._warned_keys.add(key)
            logger.warning(f"[Composer] 叙事池缺少条目, 使用程序化叙事兜底: {key}")
