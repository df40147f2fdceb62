"""
Narrative line pool.

Read-only content store. Lines are organized as:
- moves: move narrative category -> context (hit/crit/miss/use) -> lines
- outcomes: narrative category -> variant (track / status kind / default) -> lines
- characters: character id -> narrative category -> lines (per-character overrides)

All lookups return Optional values; a miss is a checked case handled by the composer.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .constants import NarrativeCategory, MoveContext, DEFAULT_VARIANT


@dataclass(frozen=True)
class PoolEntry:
    """A resolved set of candidate lines plus the key used for repetition memory."""
    key: str
    lines: List[str]


class NarrativeLinePool:
    """
    Narrative line pool shared by reference between battles.
    Memory state never lives here; see NarrativeMemory.
    """
    def __init__(
        self,
        moves: Optional[Dict[str, Dict[str, List[str]]]] = None,
        outcomes: Optional[Dict[str, Dict[str, List[str]]]] = None,
        characters: Optional[Dict[str, Dict[str, List[str]]]] = None,
        move_categories: Optional[Dict[str, str]] = None,
    ):
        self._moves = moves or {}
        self._outcomes = outcomes or {}
        self._characters = characters or {}
        self._move_categories = move_categories or {}

    @property
    def move_categories(self) -> Dict[str, str]:
        return dict(self._move_categories)

    def move_category(self, move_id: str) -> Optional[str]:
        """Explicit move id -> narrative category mapping resolved at load time."""
        return self._move_categories.get(move_id)

    def lookup_move(self, move_id: str, contexts: Sequence[MoveContext]) -> Optional[PoolEntry]:
        """First non-empty context pool for the move's category, in the given order."""
        category = self.move_category(move_id)
        if category is None:
            return None
        by_context = self._moves.get(category, {})
        for context in contexts:
            lines = by_context.get(context.value)
            if lines:
                return PoolEntry(f"move:{category}:{context.value}", list(lines))
        return None

    def lookup(
        self,
        category: NarrativeCategory,
        variant: Optional[str] = None,
        character_id: Optional[str] = None,
    ) -> Optional[PoolEntry]:
        """
        Resolve lines for a category.

        Order: character override -> requested variant -> default variant.
        """
        if character_id:
            lines = self._characters.get(character_id, {}).get(category.value)
            if lines:
                return PoolEntry(f"character:{character_id}:{category.value}", list(lines))

        by_variant = self._outcomes.get(category.value, {})
        if variant:
            lines = by_variant.get(variant)
            if lines:
                return PoolEntry(f"outcome:{category.value}:{variant}", list(lines))

        lines = by_variant.get(DEFAULT_VARIANT)
        if lines:
            return PoolEntry(f"outcome:{category.value}:{DEFAULT_VARIANT}", list(lines))
        return None

    def has_category(self, category: NarrativeCategory) -> bool:
        return bool(self._outcomes.get(category.value))
