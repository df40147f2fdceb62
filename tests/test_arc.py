"""
测试叙事弧状态机 (arc.py)
"""

from duelsim.models import ArcPhase
from duelsim.combat.arc import ArcStateMachine, ArcTransition, ARC_TRANSITIONS, ARC_MODIFIERS
from tests.conftest import make_fighter, make_state


def _always(state):
    return True


class TestArcTable:
    """静态转移表与修正"""

    def test_every_phase_has_modifiers(self):
        assert set(ARC_MODIFIERS) == set(ArcPhase)

    def test_finishers_unlock_from_climax(self):
        assert not ArcStateMachine.modifiers(ArcPhase.OPENING).unlocks_finishers
        assert not ArcStateMachine.modifiers(ArcPhase.RISING_ACTION).unlocks_finishers
        assert ArcStateMachine.modifiers(ArcPhase.CLIMAX).unlocks_finishers

    def test_candidates_sorted_by_priority(self):
        machine = ArcStateMachine()
        priorities = [t.priority for t in machine.candidates(ArcPhase.OPENING)]
        assert priorities == sorted(priorities, reverse=True)

    def test_table_has_no_backward_edges(self):
        order = list(ArcPhase)
        for rule in ARC_TRANSITIONS:
            assert order.index(rule.to_phase) > order.index(rule.from_phase)


class TestArcEvaluation:
    """转移评估"""

    def test_turn_driven_rising_action(self, arena):
        state = make_state(make_fighter("a"), make_fighter("b"), arena, turn=6)
        rule = ArcStateMachine().evaluate(state)

        assert rule is not None
        assert state.arc_phase == ArcPhase.RISING_ACTION
        assert state.arc_history == [ArcPhase.OPENING, ArcPhase.RISING_ACTION]

    def test_nothing_fires_early(self, arena):
        state = make_state(make_fighter("a"), make_fighter("b"), arena, turn=2)
        assert ArcStateMachine().evaluate(state) is None
        assert state.arc_history == [ArcPhase.OPENING]

    def test_heavy_damage_jumps_to_climax(self, arena):
        state = make_state(make_fighter("a", health=35), make_fighter("b"), arena, turn=2)
        ArcStateMachine().evaluate(state)
        assert state.arc_phase == ArcPhase.CLIMAX

    def test_crushing_opening_blow_skips_to_falling_action(self, arena):
        state = make_state(make_fighter("a", health=15), make_fighter("b"), arena, turn=2)
        rule = ArcStateMachine().evaluate(state)

        assert rule.to_phase == ArcPhase.FALLING_ACTION
        assert state.arc_history == [ArcPhase.OPENING, ArcPhase.FALLING_ACTION]

    def test_falling_action_checked_before_climax(self):
        """血量 < 20 的规则条件更严格, 必须先于血量 < 40 的规则评估"""
        machine = ArcStateMachine()
        opening = [(t.to_phase, t.priority) for t in machine.candidates(ArcPhase.OPENING)]
        assert opening[0] == (ArcPhase.FALLING_ACTION, 20)

    def test_priority_beats_table_order(self, arena):
        table = [
            ArcTransition(ArcPhase.OPENING, ArcPhase.RISING_ACTION, 1, _always, "low"),
            ArcTransition(ArcPhase.OPENING, ArcPhase.CLIMAX, 9, _always, "high"),
        ]
        state = make_state(make_fighter("a"), make_fighter("b"), arena)
        rule = ArcStateMachine(table).evaluate(state)
        assert rule.narrative == "high"

    def test_visited_target_is_skipped(self, arena):
        table = [
            ArcTransition(ArcPhase.CLIMAX, ArcPhase.RISING_ACTION, 9, _always, "backwards"),
            ArcTransition(ArcPhase.CLIMAX, ArcPhase.RESOLUTION, 1, _always, "forwards"),
        ]
        state = make_state(make_fighter("a"), make_fighter("b"), arena)
        state.arc_phase = ArcPhase.CLIMAX
        state.arc_history = [ArcPhase.OPENING, ArcPhase.RISING_ACTION, ArcPhase.CLIMAX]

        rule = ArcStateMachine(table).evaluate(state)
        assert rule.narrative == "forwards"
        assert len(state.arc_history) == len(set(state.arc_history))

    def test_force_to_visited_phase_is_noop(self, arena):
        state = make_state(make_fighter("a"), make_fighter("b"), arena)
        machine = ArcStateMachine()

        assert machine.force(state, ArcPhase.CLIMAX) is True
        assert machine.force(state, ArcPhase.CLIMAX) is False
        assert machine.force(state, ArcPhase.OPENING) is False
        assert state.arc_history == [ArcPhase.OPENING, ArcPhase.CLIMAX]

    def test_force_never_moves_backward(self, arena):
        """进入高潮后不能再被拉回铺垫阶段; 暮光之后不再有任何切换"""
        state = make_state(make_fighter("a"), make_fighter("b"), arena)
        machine = ArcStateMachine()

        assert machine.force(state, ArcPhase.CLIMAX) is True
        assert machine.force(state, ArcPhase.RISING_ACTION) is False
        assert state.arc_phase == ArcPhase.CLIMAX

        assert machine.force(state, ArcPhase.TWILIGHT) is True
        assert machine.force(state, ArcPhase.RESOLUTION) is False
        assert state.arc_history == [ArcPhase.OPENING, ArcPhase.CLIMAX, ArcPhase.TWILIGHT]

    def test_is_forward(self):
        assert ArcStateMachine.is_forward(ArcPhase.OPENING, ArcPhase.FALLING_ACTION)
        assert not ArcStateMachine.is_forward(ArcPhase.FALLING_ACTION, ArcPhase.CLIMAX)
        assert ArcStateMachine.is_forward(ArcPhase.RESOLUTION, ArcPhase.TWILIGHT)
        assert not ArcStateMachine.is_forward(ArcPhase.TWILIGHT, ArcPhase.RESOLUTION)

    def test_history_never_repeats_over_long_run(self, arena):
        a, b = make_fighter("a"), make_fighter("b")
        state = make_state(a, b, arena, turn=0)
        machine = ArcStateMachine()
        for turn in range(1, 60):
            state.turn = turn
            a.health = max(0.0, 100 - turn * 2)
            b.health = max(0.0, 100 - turn * 1.8)
            machine.evaluate(state)

        assert len(state.arc_history) == len(set(state.arc_history))
        assert state.arc_history[0] == ArcPhase.OPENING
