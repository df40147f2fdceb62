"""
combat 包初始化文件
"""

from .ledger import ResourceLedger
from .patterns import PatternDetector, PatternState
from .arc import ArcStateMachine, ArcTransition, ARC_TRANSITIONS
from .calculator import DamageCalculator
from .effects import StatusEffectManager
from .scorer import ActionScorer, ActionChoice
from .resolver import TurnResolver
from .engine import BattleSimulator

__all__ = [
    'ResourceLedger',
    'PatternDetector',
    'PatternState',
    'ArcStateMachine',
    'ArcTransition',
    'ARC_TRANSITIONS',
    'DamageCalculator',
    'StatusEffectManager',
    'ActionScorer',
    'ActionChoice',
    'TurnResolver',
    'BattleSimulator',
]
