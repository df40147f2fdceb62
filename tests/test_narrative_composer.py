"""
测试叙事组装器 (composer.py) 与程序化兜底叙事 (fallback.py)
"""

import logging
import random

import pytest

from duelsim.models import OutcomeCategory, EscalationReason
from duelsim.narrative.composer import NarrativeComposer, TurnOutcome
from duelsim.narrative.constants import NarrativeTrack
from duelsim.narrative.fallback import FallbackNarrator
from duelsim.narrative.memory import NarrativeMemory
from duelsim.narrative.pool import NarrativeLinePool
from tests.conftest import make_move, make_fighter


@pytest.fixture
def small_pool():
    """最小台词池: 一个招式类别 + 三条轨道的命中台词 + 插入语"""
    return NarrativeLinePool(
        moves={"strike": {
            "hit": ["{actor} hits {target} with {move}."],
            "miss": ["{actor} misses with {move}."],
        }},
        outcomes={
            "hit": {
                "technical": ["TECH"],
                "emotional": ["EMO"],
                "environmental": ["ENV"],
            },
            "escalation": {"default": ["ESCALATE"]},
            "desperation": {"default": ["DESPERATE"]},
            "pattern_break": {"default": ["BREAK"]},
            "victory": {"default": ["{actor} wins."]},
            "defeat": {"default": ["{actor} loses."]},
            "draw": {"default": ["Nobody wins."]},
        },
        characters={"hero": {"victory": ["The hero prevails over {target}."]}},
        move_categories={"jab": "strike"},
    )


def _outcome(actor, target, move, turn=10, **kwargs):
    defaults = {"damage": 8.0, "category": OutcomeCategory.HIT}
    defaults.update(kwargs)
    return TurnOutcome(turn=turn, actor=actor, target=target, move=move, **defaults)


class TestComposeTurn:
    """回合叙事组装"""

    def test_move_line_plus_outcome_line(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        text = composer.compose_turn(_outcome(a, b, make_move("jab"), turn=1))
        assert text == "Hero hits Rival with Jab. TECH"

    def test_miss_uses_miss_context(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        text = composer.compose_turn(_outcome(a, b, make_move("jab"), turn=1,
                                              damage=0.0, category=OutcomeCategory.MISS))
        assert text.startswith("Hero misses with Jab.")

    def test_missing_move_falls_back_with_warning(self, caplog):
        composer = NarrativeComposer(NarrativeLinePool(), random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")

        with caplog.at_level(logging.WARNING):
            text = composer.compose_turn(_outcome(a, b, make_move("air_blast", name="Air Blast")))

        assert "Hero" in text
        assert "Air Blast" in text
        assert any("[Composer]" in r.message for r in caplog.records)

    def test_escalation_insert_is_rate_limited(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        move = make_move("jab")

        first = composer.compose_turn(_outcome(a, b, move, turn=10, escalation=EscalationReason.STALEMATE))
        second = composer.compose_turn(_outcome(a, b, move, turn=12, escalation=EscalationReason.STALEMATE))
        later = composer.compose_turn(_outcome(a, b, move, turn=14, escalation=EscalationReason.STALEMATE))

        assert first.endswith("ESCALATE")
        assert "ESCALATE" not in second
        assert later.endswith("ESCALATE")

    def test_desperation_and_pattern_break_inserts(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero", health=15), make_fighter("rival")
        text = composer.compose_turn(_outcome(a, b, make_move("jab"), pattern_break=True))
        assert "BREAK" in text
        assert text.endswith("DESPERATE")

    def test_bad_placeholder_returns_raw_line(self, caplog):
        pool = NarrativeLinePool(moves={"strike": {"hit": ["{actor} uses {weapon}"]}},
                                 move_categories={"jab": "strike"})
        composer = NarrativeComposer(pool, random.Random(1))
        with caplog.at_level(logging.WARNING):
            text = composer.compose_turn(_outcome(make_fighter("a"), make_fighter("b"), make_move("jab"),
                                                  category=None))
        assert text == "{actor} uses {weapon}"

    @pytest.mark.parametrize("line", [
        "Don't listen to {target.o}!",
        "{actor} grins :-{ and strikes",
        "{0} strikes first",
    ])
    def test_malformed_line_never_aborts_the_turn(self, line, caplog):
        """格式错误的台词原样输出并记录警告, 战斗继续"""
        pool = NarrativeLinePool(moves={"strike": {"hit": [line]}}, move_categories={"jab": "strike"})
        composer = NarrativeComposer(pool, random.Random(1))
        with caplog.at_level(logging.WARNING):
            text = composer.compose_turn(_outcome(make_fighter("a"), make_fighter("b"), make_move("jab"),
                                                  category=None))
        assert text == line
        assert any("[Composer]" in r.message for r in caplog.records)


class TestTrackSelection:
    """叙事轨道选择"""

    def test_precedence(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        move = make_move("jab")

        assert composer.select_track(_outcome(a, b, move, is_crit=True)) == NarrativeTrack.EMOTIONAL
        assert composer.select_track(_outcome(a, b, move, pattern_break=True)) == NarrativeTrack.ENVIRONMENTAL
        assert composer.select_track(_outcome(a, b, move, turn=2)) == NarrativeTrack.TECHNICAL
        low = make_fighter("rival", health=25)
        assert composer.select_track(_outcome(a, low, move)) == NarrativeTrack.EMOTIONAL

    def test_rotation_never_repeats_back_to_back(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        tracks = [composer.select_track(_outcome(a, b, make_move("jab"), turn=10 + i)) for i in range(9)]

        assert set(tracks) == set(NarrativeTrack)
        assert all(x != y for x, y in zip(tracks, tracks[1:]))


class TestConclusion:
    """终局台词"""

    def test_character_override_for_victory(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        hero, rival = make_fighter("hero"), make_fighter("rival")
        victory, defeat = composer.compose_conclusion(hero, rival, (hero, rival))
        assert victory == "The hero prevails over Rival."
        assert defeat == "Rival loses."

    def test_draw(self, small_pool):
        composer = NarrativeComposer(small_pool, random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        assert composer.compose_conclusion(None, None, (a, b)) == ("Nobody wins.", None)

    def test_empty_pool_still_narrates(self):
        composer = NarrativeComposer(NarrativeLinePool(), random.Random(1))
        a, b = make_fighter("hero"), make_fighter("rival")
        victory, defeat = composer.compose_conclusion(a, b, (a, b))
        assert "Hero" in victory
        assert "Rival" in defeat


class TestFallbackNarrator:
    """程序化叙事"""

    @pytest.mark.parametrize("raw,expected", [
        ("air_blast", "Air Blast"),
        ("fireBlast", "Fire Blast"),
        ("Water Whip", "Water Whip"),
    ])
    def test_split_words(self, raw, expected):
        assert FallbackNarrator.split_words(raw) == expected

    def test_article(self):
        assert FallbackNarrator.format_move_name("air_blast") == "an Air Blast"
        assert FallbackNarrator.format_move_name("Fire Jets") == "a Fire Jets"
        assert FallbackNarrator.format_move_name("") == "a move"

    def test_templates_rotate_through_memory(self):
        narrator = FallbackNarrator(NarrativeMemory(random.Random(2)))
        texts = [narrator.generate("a", "Aang", "Air Blast", "miss", "Azula") for _ in range(3)]
        assert len(set(texts)) == 3
