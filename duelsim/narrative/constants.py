from enum import Enum

class NarrativeTrack(str, Enum):
    """
    叙事轨道 - 同一结果的三种描写视角
    """
    TECHNICAL = "technical"          # 招式与技巧
    EMOTIONAL = "emotional"          # 情绪与意志
    ENVIRONMENTAL = "environmental"  # 场地与环境

# 轮转顺序
TRACK_ROTATION = (
    NarrativeTrack.TECHNICAL,
    NarrativeTrack.EMOTIONAL,
    NarrativeTrack.ENVIRONMENTAL,
)

class NarrativeCategory(str, Enum):
    """
    台词池类别 - 伤害结果等级之外还包含各类插入语
    """
    # 伤害结果 (与 OutcomeCategory 取值一致)
    MISS = "miss"
    GLANCE = "glance"
    HIT = "hit"
    DEVASTATING = "devastating"
    OVERWHELMING = "overwhelming"

    # 插入语
    ESCALATION = "escalation"
    DESPERATION = "desperation"
    PATTERN_BREAK = "pattern_break"

    # 终局
    VICTORY = "victory"
    DEFEAT = "defeat"
    DRAW = "draw"

    # 状态效果
    STATUS = "status"

class MoveContext(str, Enum):
    """
    招式台词语境
    """
    HIT = "hit"
    CRIT = "crit"
    MISS = "miss"
    USE = "use"      # 不造成伤害的招式

DEFAULT_VARIANT = "default"

# 台词中允许出现的占位符
LINE_PLACEHOLDERS = frozenset({"actor", "target", "move", "effect", "reason"})
