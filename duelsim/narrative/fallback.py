"""
Procedural fallback narration.

Used when the pool has no entry for a move or category, so narration can never fail.
"""

import re
from typing import Dict, List, Optional

from .memory import NarrativeMemory


class FallbackNarrator:
    """
    Templated sentences built from character + formatted move name + outcome.

    Template selection goes through the same NarrativeMemory as pool lines,
    so fallback text is also repetition-bounded.
    """

    TEMPLATES: Dict[str, List[str]] = {
        "hit": [
            "{character} lands {mechanic} on {target}.",
            "{character} drives {mechanic} home against {target}.",
            "{mechanic_cap} from {character} finds its mark.",
        ],
        "crit": [
            "{character} unleashes {mechanic} with devastating precision!",
            "{mechanic_cap} from {character} strikes exactly where it hurts!",
        ],
        "miss": [
            "{character} attempts {mechanic}, but {target} slips away.",
            "{mechanic_cap} from {character} cuts only empty air.",
            "{target} reads {mechanic} and evades it cleanly.",
        ],
        "use": [
            "{character} employs {mechanic}.",
            "{character} takes a moment for {mechanic}.",
        ],
        "trigger": [
            "{character}'s {mechanic_bare} takes effect.",
            "{mechanic_cap} surges through {character}.",
        ],
        "victory": [
            "{character} stands victorious.",
            "{character} claims the duel.",
        ],
        "defeat": [
            "{character} can fight no longer.",
            "{character} falls.",
        ],
        "default": [
            "{character} acts with {mechanic}.",
        ],
    }

    def __init__(self, memory: NarrativeMemory):
        self.memory = memory

    @staticmethod
    def split_words(name: str) -> str:
        """'fireBlast' / 'fire_blast' / 'Fire Blast' -> 'Fire Blast'"""
        spaced = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', name)
        words = re.split(r'[\s_\-]+', spaced.strip())
        return " ".join(w[:1].upper() + w[1:] for w in words if w)

    @staticmethod
    def format_move_name(name: str) -> str:
        """Readable move name with an indefinite article: 'an Air Blast', 'a Fire Jet'."""
        words = FallbackNarrator.split_words(name)
        if not words:
            return "a move"
        article = "an" if words[0].lower() in "aeiou" else "a"
        return f"{article} {words}"

    def generate(
        self,
        character_id: str,
        character: str,
        move_name: str,
        context: str,
        target: Optional[str] = None,
    ) -> str:
        templates = self.TEMPLATES.get(context) or self.TEMPLATES["default"]
        pool_key = f"fallback:{context if context in self.TEMPLATES else 'default'}"
        selection = self.memory.select(character_id, pool_key, templates)

        mechanic = self.format_move_name(move_name)
        return selection.text.format(
            character=character,
            target=target or "the opponent",
            mechanic=mechanic,
            mechanic_cap=mechanic[:1].upper() + mechanic[1:],
            mechanic_bare=self.split_words(move_name),
        )
