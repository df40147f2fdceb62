"""
数据加载器 (Loader)
负责从 JSON 文件读取并解析为 Pydantic 配置模型 (Configs)
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Type, TypeVar
from pydantic import BaseModel

from .config import Config
from .models import CharacterConfig, LocationConfig

T = TypeVar('T', bound=BaseModel)

logger = logging.getLogger(__name__)


class DataLoader:
    """数据加载器 - 配置表驱动中心"""

    def __init__(self, data_dir: str = Config.DATA_DIR) -> None:
        """
        初始化数据加载器

        Args:
            data_dir: 数据文件目录路径
        """
        self.data_dir: Path = Path(data_dir)

        # 配置容器 (存储静态配置)
        self.characters: Dict[str, CharacterConfig] = {}
        self.locations: Dict[str, LocationConfig] = {}

    def load_all(self) -> None:
        """加载所有静态配置。任何一项校验失败都会直接抛出, 不进入模拟。"""
        # 1. 加载角色 (招式内嵌在角色配置中)
        self._load_from_json("characters.json", CharacterConfig, self.characters)

        # 2. 加载场地
        self._load_from_json("locations.json", LocationConfig, self.locations)

        logger.info(f"[Loader] 已加载 {len(self.characters)} 名角色, {len(self.locations)} 个场地")

    def _load_from_json(self, filename: str, model_cls: Type[T], container: Dict[str, T]) -> None:
        """通用的 JSON 加载方法"""
        file_path = self.data_dir / filename
        if not file_path.exists():
            if "characters" in filename:
                raise FileNotFoundError(f"角色数据文件不存在: {file_path}")
            elif "locations" in filename:
                raise FileNotFoundError(f"场地数据文件不存在: {file_path}")
            else:
                raise FileNotFoundError(f"配置文件不存在: {file_path}")

        with open(file_path, 'r', encoding='utf-8') as f:
            raw_data = json.load(f)

        # 校验失败时 pydantic.ValidationError 直接上抛
        for item in raw_data:
            obj = model_cls.model_validate(item)
            if obj.id in container:  # type: ignore
                raise ValueError(f"{filename} 中存在重复 ID: {obj.id}")  # type: ignore
            container[obj.id] = obj  # type: ignore

    # ============= 获取方法 =============

    def get_character_config(self, character_id: str) -> CharacterConfig:
        if character_id not in self.characters:
            raise KeyError(f"角色配置不存在: {character_id}")
        return self.characters[character_id]

    def get_location_config(self, location_id: str) -> LocationConfig:
        if location_id not in self.locations:
            raise KeyError(f"场地配置不存在: {location_id}")
        return self.locations[location_id]

    def get_all_move_ids(self) -> List[str]:
        """所有角色的招式 ID (用于校验叙事映射)"""
        return sorted({m.id for c in self.characters.values() for m in c.moves})
