"""
异常定义
仅在输入非法或调用方违反约定时抛出; 可恢复的情况 (无可用招式、叙事缺失、重复弧线) 在模块内部降级处理
"""


class DuelError(Exception):
    """对决模拟器异常基类"""


class MoveUnavailableError(DuelError):
    """招式当前不可用 (真气不足 / 冷却中 / 次数耗尽)"""

    def __init__(self, fighter_id: str, move_id: str, reason: str) -> None:
        self.fighter_id = fighter_id
        self.move_id = move_id
        self.reason = reason
        super().__init__(f"{fighter_id} 无法使用 {move_id}: {reason}")


class BattleConcludedError(DuelError):
    """战斗已结束, 状态被冻结"""


class NarrativeConfigError(DuelError):
    """叙事配置非法 (例如招式映射到未定义的叙事类别)"""
