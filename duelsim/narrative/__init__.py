"""
narrative 包 - 叙事台词池、防重复记忆与叙事组装
"""

from .constants import NarrativeTrack, NarrativeCategory, MoveContext
from .pool import NarrativeLinePool, PoolEntry
from .loader import NarrativePoolLoader
from .memory import NarrativeMemory, LineSelection
from .fallback import FallbackNarrator
from .composer import NarrativeComposer, TurnOutcome
from .renderer import TextRenderer, JSONRenderer

__all__ = [
    'NarrativeTrack',
    'NarrativeCategory',
    'MoveContext',
    'NarrativeLinePool',
    'PoolEntry',
    'NarrativePoolLoader',
    'NarrativeMemory',
    'LineSelection',
    'FallbackNarrator',
    'NarrativeComposer',
    'TurnOutcome',
    'TextRenderer',
    'JSONRenderer',
]
