"""
角色工厂 (Fighter Factory)
负责将静态配置 (CharacterConfig) 转换为单场战斗使用的运行时角色 (Fighter)
"""

from typing import Optional
from .models import CharacterConfig, Fighter, PersonalityProfile
from .config import Config


class FighterFactory:
    """运行时角色生成工厂"""

    @staticmethod
    def create_fighter(config: CharacterConfig, fighter_id: Optional[str] = None) -> Fighter:
        """
        生成角色运行时实例

        招式定义按引用共享 (MoveConfig 不可变), 其余台账字段全部从零开始。

        Args:
            config: 角色静态配置
            fighter_id: 运行时 ID, 同名角色对战时用于区分双方 (默认沿用配置 ID)

        Returns:
            Fighter: 满血、初始真气的角色
        """
        return Fighter(
            id=fighter_id or config.id,
            name=config.name,
            character_id=config.id,
            max_health=Config.MAX_HEALTH,
            health=Config.MAX_HEALTH,
            max_chi=config.max_chi,
            chi=config.initial_chi,
            power=config.power,
            defense=config.defense,
            evasion=config.evasion,
            speed=config.speed,
            personality=list(config.personality),
            profile=PersonalityProfile.from_tags(config.personality),
            moves=list(config.moves),
        )
