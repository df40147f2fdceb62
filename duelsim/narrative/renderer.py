"""
渲染器 - 将战斗结果渲染为文本或JSON格式
提供文本渲染（控制台输出）和JSON渲染（HTTP API）两种方式
"""

import json
from typing import Any, Dict, List, Optional

from ..models import BattleResult, LogEntry, LogType


class TextRenderer:
    """文本渲染器 - 生成控制台友好的战报

    职责：
    1. 将 BattleResult 的战斗日志渲染为逐回合的叙事文本
    2. 支持按日志类型高亮（使用ANSI颜色代码）
    3. 结尾附上胜负与弧线历程

    使用方式：
        renderer = TextRenderer()
        print(renderer.render_result(result))
    """

    # ANSI颜色代码
    COLOR_RESET = "\033[0m"
    COLOR_RED = "\033[91m"
    COLOR_GREEN = "\033[92m"
    COLOR_YELLOW = "\033[93m"
    COLOR_BLUE = "\033[94m"
    COLOR_MAGENTA = "\033[95m"
    COLOR_CYAN = "\033[96m"

    # 不单独成行的日志类型
    SILENT_TYPES = (LogType.TURN,)

    def render_result(self, result: BattleResult, use_color: bool = False) -> str:
        """渲染完整战报

        Args:
            result: 战斗结果
            use_color: 是否使用ANSI颜色代码（默认False）

        Returns:
            完整战报文本
        """
        a, b = result.fighters
        lines = []
        lines.append("=" * 80)
        lines.append(f"{a.name} vs {b.name} @ {result.location_id}")
        lines.append("=" * 80)

        current_turn = None
        for entry in result.battle_log:
            if entry.type in self.SILENT_TYPES:
                continue
            if entry.turn != current_turn and entry.type not in (LogType.VICTORY, LogType.DRAW):
                current_turn = entry.turn
                lines.append("")
                lines.append(f"--- TURN {entry.turn} ---")
            lines.append(self.render_entry(entry, use_color))

        lines.append("")
        lines.append("=" * 80)
        lines.append(self._summary(result))
        lines.append("Arc: " + " -> ".join(p.value for p in result.arc_history))
        for fighter in result.fighters:
            lines.append(f"  {fighter.name}: {fighter.health:g} HP, {fighter.chi:g} chi")
        lines.append("=" * 80)

        return "\n".join(lines)

    def render_entry(self, entry: LogEntry, use_color: bool = False) -> str:
        """渲染单条日志: 有叙事时输出叙事, 否则输出机械结果"""
        tag = self._format_tag(entry.type, use_color)
        body = entry.narrative or f"{entry.actor}: {entry.action} - {entry.result}"
        if entry.type == LogType.MOVE and entry.narrative:
            body = f"{body} ({entry.result})"
        return f"{tag} {body}"

    def _summary(self, result: BattleResult) -> str:
        if result.is_draw:
            return f"DRAW after {result.turns} turns ({result.end_reason.value})"
        winner = next(f for f in result.fighters if f.id == result.winner_id)
        return f"WINNER: {winner.name} after {result.turns} turns ({result.end_reason.value})"

    def _format_tag(self, log_type: LogType, use_color: bool) -> str:
        if not use_color:
            return f"[{log_type.value}]"
        return f"{self._get_type_color(log_type)}[{log_type.value}]{self.COLOR_RESET}"

    def _get_type_color(self, log_type: LogType) -> str:
        """根据日志类型返回对应的颜色代码"""
        if log_type in (LogType.KO, LogType.DESPERATION):
            return self.COLOR_RED
        elif log_type == LogType.ESCALATION:
            return self.COLOR_YELLOW
        elif log_type == LogType.ARC:
            return self.COLOR_MAGENTA
        elif log_type == LogType.STATUS:
            return self.COLOR_CYAN
        elif log_type == LogType.PATTERN_BREAK:
            return self.COLOR_BLUE
        else:
            return self.COLOR_GREEN


class JSONRenderer:
    """JSON渲染器 - 生成前端可用的JSON格式数据

    使用方式：
        renderer = JSONRenderer()
        data = renderer.render_result(result)
    """

    def render_result(self, result: BattleResult) -> Dict[str, Any]:
        """渲染战斗结果为字典格式

        Args:
            result: 战斗结果

        Returns:
            字典格式的完整战斗数据 (含叙事文本列表)
        """
        data = result.to_dict()
        data["is_draw"] = result.is_draw
        data["narration"] = self.render_narration(result.battle_log)
        return data

    def render_narration(self, battle_log: List[LogEntry]) -> List[Dict[str, Any]]:
        """仅提取带叙事文本的日志条目"""
        return [
            {"turn": e.turn, "type": e.type.value, "actor": e.actor, "text": e.narrative}
            for e in battle_log
            if e.narrative
        ]

    def render_result_json(self, result: BattleResult, indent: Optional[int] = None) -> str:
        """渲染战斗结果为JSON字符串

        Args:
            result: 战斗结果
            indent: JSON缩进空格数（None表示压缩输出）

        Returns:
            JSON格式字符串
        """
        return json.dumps(self.render_result(result), ensure_ascii=False, indent=indent)
