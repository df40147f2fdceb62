"""
pytest 共享配置和 Fixtures
这个文件会被 pytest 自动加载，所有测试都可以使用这里定义的 fixtures
"""

import sys
import random
from pathlib import Path
import pytest  # pytest fixture 装饰器需要

# 确保 duelsim 模块能被导入
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# ============================================================================
# 导入项目模块
# ============================================================================
from duelsim.models import (
    MoveConfig, MoveType, LocationConfig, Fighter, BattleState
)
from duelsim.combat.ledger import ResourceLedger
from duelsim.combat.patterns import PatternDetector
from duelsim.combat.scorer import ActionScorer
from duelsim.narrative.loader import NarrativePoolLoader

# ============================================================================
# 测试辅助函数
# ============================================================================

def make_move(move_id: str, **kwargs) -> MoveConfig:
    """
    创建测试招式（不依赖 data/characters.json）

    参数:
        move_id: 招式ID
        **kwargs: 覆盖 MoveConfig 的其他字段
    """
    defaults = {
        "id": move_id,
        "name": move_id.replace("_", " ").title(),
        "type": MoveType.ATTACK,
        "power": 10,
        "chi_cost": 0,
        "cooldown": 0,
    }
    defaults.update(kwargs)
    return MoveConfig.model_validate(defaults)


def make_fighter(fighter_id: str, moves=None, **kwargs) -> Fighter:
    """
    创建测试角色（满血、默认属性）

    参数:
        fighter_id: 角色ID
        moves: 招式列表
        **kwargs: 覆盖 Fighter 的其他字段
    """
    defaults = {
        "id": fighter_id,
        "name": fighter_id.title(),
        "character_id": fighter_id,
        "max_chi": 20,
        "chi": 10,
        "power": 100,
        "defense": 30,
        "evasion": 0.0,
        "speed": 50,
        "moves": moves if moves is not None else [make_move("strike")],
    }
    defaults.update(kwargs)
    return Fighter(**defaults)


def make_state(fighter_a: Fighter, fighter_b: Fighter, location: LocationConfig, turn: int = 1) -> BattleState:
    return BattleState(fighters=[fighter_a, fighter_b], location=location, turn=turn)

# ============================================================================
# 基础 Fixtures（测试数据）
# ============================================================================

@pytest.fixture
def arena():
    """无元素修正、无标签的标准场地"""
    return LocationConfig(id="arena", name="Test Arena")

@pytest.fixture
def rng():
    """固定种子的随机源"""
    return random.Random(1234)

@pytest.fixture
def detector():
    return PatternDetector()

@pytest.fixture
def ledger(detector):
    return ResourceLedger(detector)

@pytest.fixture
def scorer(ledger, detector):
    return ActionScorer(ledger, detector)

@pytest.fixture
def data_dir():
    """项目自带的静态数据目录"""
    return str(project_root / "data")

@pytest.fixture
def pool_path():
    """项目自带的叙事台词池"""
    return str(project_root / "config" / "narrative_pool.yaml")

@pytest.fixture
def narrative_pool(pool_path):
    """加载真实台词池 (不校验招式 ID)"""
    return NarrativePoolLoader.load_from_file(pool_path)
