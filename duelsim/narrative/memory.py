"""
叙事防重复记忆

按 (角色, 台词池) 记录最近使用的台词, 冷却窗口内的台词不会再次被选中;
池中台词全部处于冷却时强制选择最久未用的一条, 保证永远有台词可用。
另有战斗级集合: 同一池的台词在整池轮换一遍之前不会原样重复。

每个 BattleSimulator 持有自己的 NarrativeMemory 实例, 战斗之间状态完全隔离。
"""

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Sequence, Set, Tuple

from ..config import Config

logger = logging.getLogger(__name__)

MemoryKey = Tuple[str, str]   # (fighter_id, pool_key)


@dataclass(frozen=True)
class LineSelection:
    """选择结果"""
    text: str
    forced: bool = False     # 池已耗尽, 强制选择了最久未用的台词


class NarrativeMemory:
    """叙事防重复记忆"""

    def __init__(self, rng: random.Random, window: int = Config.NARRATION_COOLDOWN_WINDOW) -> None:
        """
        Args:
            rng: 战斗随机源 (与模拟器共享, 保证可复现)
            window: 冷却窗口 (同一角色同一池最近 window 次选择内不重复)
        """
        if window < 1:
            raise ValueError("冷却窗口至少为 1")
        self.rng = rng
        self.window = window
        self._recent: Dict[MemoryKey, Deque[str]] = {}
        self._last_used: Dict[MemoryKey, Dict[str, int]] = {}
        self._battle_used: Dict[str, Set[str]] = {}
        self._selections = 0

    def reset(self) -> None:
        """清空全部记忆 (战斗开始时调用)"""
        self._recent.clear()
        self._last_used.clear()
        self._battle_used.clear()
        self._selections = 0

    def select(self, fighter_id: str, pool_key: str, candidates: Sequence[str]) -> LineSelection:
        """从候选台词中选出一条并记录。

        算法:
        1. 排除该 (角色, 池) 冷却窗口内用过的台词
        2. 优先选择本场战斗尚未在该池中出现过的台词 (整池用完后开启新一轮)
        3. 用战斗随机源在剩余候选中抽取
        4. 若全部处于冷却, 强制选择最久未用的台词

        Args:
            fighter_id: 角色 ID
            pool_key: 台词池键
            candidates: 候选台词 (不可为空)

        Returns:
            LineSelection: 选中的台词
        """
        if not candidates:
            raise ValueError(f"台词池为空: {pool_key}")

        key = (fighter_id, pool_key)
        recent = self._recent.setdefault(key, deque(maxlen=self.window))
        last_used = self._last_used.setdefault(key, {})
        battle_used = self._battle_used.setdefault(pool_key, set())

        unique = list(dict.fromkeys(candidates))
        eligible = [line for line in unique if line not in recent]

        if not eligible:
            # 池已耗尽: 最久未用的台词 (同为最久时取池内顺序靠前者)
            text = min(unique, key=lambda line: last_used.get(line, -1))
            logger.debug(f"[Memory] 台词池耗尽, 强制复用: {pool_key}")
            self._record(key, pool_key, text)
            return LineSelection(text=text, forced=True)

        if all(line in battle_used for line in unique):
            # 整池已轮换一遍, 开始新一轮
            battle_used.clear()

        fresh = [line for line in eligible if line not in battle_used]
        text = self.rng.choice(fresh or eligible)
        self._record(key, pool_key, text)
        return LineSelection(text=text)

    def recent_lines(self, fighter_id: str, pool_key: str) -> List[str]:
        return list(self._recent.get((fighter_id, pool_key), ()))

    def battle_used_lines(self, pool_key: str) -> Set[str]:
        return set(self._battle_used.get(pool_key, set()))

    def _record(self, key: MemoryKey, pool_key: str, text: str) -> None:
        self._selections += 1
        self._recent[key].append(text)
        self._last_used[key][text] = self._selections
        self._battle_used[pool_key].add(text)
