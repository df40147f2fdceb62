"""
duelsim 包初始化文件
"""

from .config import Config
from .models import (
    MoveConfig, CharacterConfig, LocationConfig, Fighter,
    BattleState, BattleResult, LogEntry, AiLogEntry, ArcPhase, EndReason
)
from .loader import DataLoader
from .factory import FighterFactory

__all__ = [
    'Config',
    'MoveConfig',
    'CharacterConfig',
    'LocationConfig',
    'Fighter',
    'BattleState',
    'BattleResult',
    'LogEntry',
    'AiLogEntry',
    'ArcPhase',
    'EndReason',
    'DataLoader',
    'FighterFactory',
]
