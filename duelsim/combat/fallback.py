"""
保底招式
当角色没有任何可用招式时使用, 零消耗、零冷却、永远可用
"""

from ..config import Config
from ..models import Fighter, MoveConfig, MoveType

BASIC_STRIKE = MoveConfig(
    id="basic_strike",
    name="Basic Strike",
    type=MoveType.ATTACK,
    power=2,
    chi_cost=0,
    cooldown=0,
    crit_chance=0.0,
    tags=["basic", "fallback"],
)

DESPERATE_STRIKE = MoveConfig(
    id="desperate_strike",
    name="Desperate Strike",
    type=MoveType.ATTACK,
    power=8,
    chi_cost=0,
    cooldown=0,
    tags=["desperation", "fallback"],
)

FALLBACK_MOVES = {m.id: m for m in (BASIC_STRIKE, DESPERATE_STRIKE)}


def select_fallback_move(fighter: Fighter) -> MoveConfig:
    """选择保底招式。

    - 生命 <= 绝境阈值: 绝境一击
    - 否则 (包括真气耗尽): 基础打击
    """
    if fighter.get_health_percentage() <= Config.DESPERATION_HEALTH:
        return DESPERATE_STRIKE
    return BASIC_STRIKE
