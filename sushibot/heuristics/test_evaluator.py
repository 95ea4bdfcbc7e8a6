"""
Tests for the state evaluator and its sub-features.

Test Coverage:
    - Individual feature values
    - Weighted sums and presets
    - Preset switching on a live evaluator
    - Graceful degradation on malformed states
    - Blended evaluation
"""

import logging

import pytest

from sushibot.game.constants import CardType
from sushibot.game.state import SushiGoState
from sushibot.heuristics import features
from sushibot.heuristics.evaluator import (
    PRESETS,
    BlendedEvaluator,
    FeatureWeights,
    StateEvaluator,
    get_preset,
    realized_score,
)

T = CardType


def make_state(played, hand_sizes=None, scores=None, round_counter=0):
    """Fully specified boards with hidden hands of the given sizes."""
    num_players = len(played)
    hand_sizes = hand_sizes or [5] * num_players
    return SushiGoState(
        num_players=num_players,
        round_counter=round_counter,
        hands=[None] * num_players,
        hand_sizes=list(hand_sizes),
        played=[list(board) for board in played],
        scores=list(scores or [0.0] * num_players),
    )


@pytest.fixture
def midgame_state():
    """Three players in round 1 with a mix of open sets."""
    return make_state(
        played=[
            [T.TEMPURA, T.SASHIMI, T.SASHIMI, T.DUMPLING, T.DUMPLING,
             T.WASABI, T.CHOPSTICKS, T.MAKI_3, T.PUDDING, T.PUDDING],
            [T.TEMPURA, T.SASHIMI, T.SASHIMI, T.WASABI, T.MAKI_2, T.MAKI_1, T.PUDDING],
            [T.MAKI_1],
        ],
        scores=[5.0, 3.0, 1.0],
        round_counter=1,
    )


class BrokenState(SushiGoState):
    """State whose board accessor fails."""

    def get_played_count(self, card_type, player_id):
        raise AttributeError("board unavailable")


def failing_board(error):
    """State class whose board accessor raises the given error."""

    class FailingBoard(SushiGoState):
        def get_played_count(self, card_type, player_id):
            raise error

    return FailingBoard


class TestFeatures:
    """Tests for individual sub-features."""

    def test_immediate(self, midgame_state):
        """Test realized points."""
        assert features.immediate(midgame_state, 0) == 5.0

    def test_set_progress(self, midgame_state):
        """Test partial credit for tempura, sashimi and dumplings."""
        # 2.5 odd tempura + 7.0 sashimi pair + (6 - 3) / 2 dumplings
        assert features.set_progress(midgame_state, 0) == pytest.approx(11.0)

    def test_set_progress_completed_sets_get_nothing(self):
        """Test finished sets carry no partial credit."""
        state = make_state([[T.TEMPURA] * 2 + [T.SASHIMI] * 3 + [T.DUMPLING] * 5, []])
        assert features.set_progress(state, 0) == 0.0

    def test_set_progress_single_sashimi(self):
        """Test the first sashimi is worth less than the second."""
        state = make_state([[T.SASHIMI], []])
        assert features.set_progress(state, 0) == 3.0

    def test_synergy_unused_wasabi_and_chopsticks(self, midgame_state):
        """Test unused wasabi and chopsticks are rewarded."""
        assert features.synergy(midgame_state, 0) == pytest.approx(6.0)

    def test_synergy_excess_nigiri(self):
        """Test nigiri without wasabi is a small penalty."""
        state = make_state([[T.SALMON_NIGIRI, T.EGG_NIGIRI, T.WASABI, T.SQUID_NIGIRI], []])
        assert features.synergy(state, 0) == pytest.approx(-1.0)

    @pytest.mark.parametrize(
        "boards,expected",
        [
            ([[T.MAKI_3], [T.MAKI_2], [T.MAKI_1]], 6.0),
            ([[T.MAKI_2], [T.MAKI_2], [T.MAKI_1]], 4.0),
            ([[T.MAKI_2], [T.MAKI_3], [T.MAKI_1]], 2.0),
            ([[T.MAKI_1], [T.MAKI_3], [T.MAKI_1]], 1.5),
            ([[], [T.MAKI_3], [T.MAKI_1]], 0.0),
            ([[], [], []], 0.0),
        ],
    )
    def test_maki_standing(self, boards, expected):
        """Test maki tiers against the two best opponents."""
        assert features.maki_standing(make_state(boards), 0) == expected

    def test_pudding_standing_weighted_by_round(self):
        """Test pudding value grows with the round."""
        boards = [[T.PUDDING] * 2, [T.PUDDING], []]
        early = make_state(boards, round_counter=0)
        late = make_state(boards, round_counter=2)

        assert features.pudding_standing(early, 0) == 0.0
        assert features.pudding_standing(late, 0) == pytest.approx(4.0)

    def test_pudding_tied_lead_and_last_place(self):
        """Test a shared lead scores half and sole last place is penalized."""
        tied = make_state([[T.PUDDING], [T.PUDDING], []], round_counter=3)
        last = make_state([[], [T.PUDDING], [T.PUDDING]], round_counter=3)

        assert features.pudding_standing(tied, 0) == pytest.approx(3.0)
        assert features.pudding_standing(last, 0) == pytest.approx(-6.0)

    def test_competitive(self, midgame_state):
        """Test competitive sums maki and pudding standing."""
        # Tied maki lead (4.0) + pudding lead at round 1 (6 / 3)
        assert features.competitive(midgame_state, 0) == pytest.approx(6.0)

    def test_future_potential(self, midgame_state):
        """Test hand size plus early-round bonus."""
        assert features.future_potential(midgame_state, 0) == pytest.approx(4.0)
        late = make_state([[], []], hand_sizes=[4, 4], round_counter=2)
        assert features.future_potential(late, 0) == pytest.approx(2.0)

    def test_blocking(self, midgame_state):
        """Test opponents' open sets."""
        # Player 1: odd tempura, partial sashimi, wasabi; player 2: nothing open
        assert features.blocking(midgame_state, 0) == pytest.approx(3.5)

    def test_risk(self):
        """Test open sets that cannot finish are penalized."""
        state = make_state(
            [[T.TEMPURA, T.SASHIMI, T.WASABI], []], hand_sizes=[1, 1]
        )
        assert features.risk(state, 0) == pytest.approx(-6.5)

    def test_risk_is_zero_with_room_to_finish(self, midgame_state):
        """Test a large hand has no risk."""
        assert features.risk(midgame_state, 0) == 0.0


class TestStateEvaluator:
    """Tests for StateEvaluator."""

    def test_default_preset_is_balanced(self):
        """Test default construction."""
        evaluator = StateEvaluator()
        assert evaluator.preset == "balanced"
        assert evaluator.weights == PRESETS["balanced"]
        assert repr(evaluator) == "StateEvaluator(balanced)"

    def test_balanced_score(self, midgame_state):
        """Test the balanced weighted sum."""
        evaluator = StateEvaluator("balanced")
        # Blocking 3.5 from player 1's open sets; no risk with 5 cards left
        expected = 1.0 * 5 + 0.8 * 11 + 0.6 * 6 + 0.7 * 6 + 0.5 * 4 + 1.0 * 3.5
        assert evaluator.score(midgame_state, 0) == pytest.approx(expected)

    def test_score_only_equals_realized_points(self, midgame_state):
        """Test score-only ignores every other feature."""
        evaluator = StateEvaluator("score-only")
        for player_id in range(3):
            assert evaluator.score(midgame_state, player_id) == midgame_state.scores[player_id]

    def test_custom_weights(self, midgame_state):
        """Test custom coefficients."""
        evaluator = StateEvaluator(weights=FeatureWeights(immediate=1.0, set_progress=2.0))
        assert evaluator.preset is None
        assert evaluator.score(midgame_state, 0) == pytest.approx(27.0)

    def test_switch_preset(self, midgame_state):
        """Test presets switch on a live evaluator."""
        evaluator = StateEvaluator("score-only")
        assert evaluator.score(midgame_state, 0) == 5.0

        evaluator.set_preset("strategic")

        expected = 0.8 * 5 + 1.2 * 11 + 1.0 * 6 + 0.6 * 6 + 0.9 * 4 + 1.0 * 3.5
        assert evaluator.preset == "strategic"
        assert evaluator.score(midgame_state, 0) == pytest.approx(expected)

    def test_unknown_preset_raises(self):
        """Test unknown preset names are rejected."""
        with pytest.raises(ValueError):
            StateEvaluator("reckless")
        evaluator = StateEvaluator()
        with pytest.raises(ValueError):
            evaluator.set_preset("reckless")
        assert evaluator.preset == "balanced"

    def test_get_preset(self):
        """Test preset lookup."""
        assert get_preset("aggressive").immediate == 1.2
        with pytest.raises(ValueError):
            get_preset("nope")

    def test_breakdown_lists_every_feature(self, midgame_state):
        """Test breakdown is unweighted and complete."""
        breakdown = StateEvaluator("score-only").breakdown(midgame_state, 0)

        assert list(breakdown) == list(features.FEATURES)
        assert breakdown["set_progress"] == pytest.approx(11.0)
        assert breakdown["blocking"] == pytest.approx(3.5)

    @pytest.mark.parametrize(
        "preset,blocking_weight",
        [("score-only", 0.0), ("balanced", 1.0), ("aggressive", 0.8), ("strategic", 1.0)],
    )
    def test_opponent_open_tempura_moves_preset_score(self, midgame_state, preset, blocking_weight):
        """Test blocking counts toward preset scores."""
        evaluator = StateEvaluator(preset)
        before = evaluator.score(midgame_state, 0)

        midgame_state.played[2].append(T.TEMPURA)

        assert evaluator.score(midgame_state, 0) - before == pytest.approx(blocking_weight)

    def test_unfinishable_set_lowers_preset_score(self):
        """Test risk counts toward preset scores."""
        open_tempura = make_state([[T.TEMPURA], []], hand_sizes=[1, 1])
        no_tempura = make_state([[], []], hand_sizes=[1, 1])
        evaluator = StateEvaluator("balanced")

        # set_progress +2.5 * 0.8, risk -2.0 * 1.0
        difference = evaluator.score(open_tempura, 0) - evaluator.score(no_tempura, 0)
        assert difference == pytest.approx(0.8 * 2.5 - 2.0)

    def test_value_function_is_callable(self, midgame_state):
        """Test the evaluator can be handed to a search as a plain callable."""
        evaluator = StateEvaluator("balanced")
        value_fn = evaluator.as_value_function()

        assert value_fn(midgame_state, 0) == evaluator.score(midgame_state, 0)
        assert evaluator(midgame_state, 0) == evaluator.score(midgame_state, 0)


class TestDegradation:
    """Tests for evaluation on malformed states."""

    @pytest.mark.parametrize(
        "error", [OverflowError("boom"), RuntimeError("engine not ready"), ZeroDivisionError()]
    )
    def test_any_accessor_error_falls_back_to_realized_score(self, error):
        """Test errors outside the usual lookup failures are recovered too."""
        state = failing_board(error)(num_players=3, scores=[4.0, 0.0, 0.0])

        assert StateEvaluator("balanced").score(state, 0) == 4.0
        assert StateEvaluator("strategic").breakdown(state, 0)["set_progress"] == 0.0

    def test_failure_is_recorded_on_the_result(self):
        """Test the error that stopped a feature is kept on its result."""
        state = failing_board(RuntimeError("engine not ready"))(num_players=2)

        result = StateEvaluator().evaluate_feature("blocking", state, 0)

        assert not result.ok
        assert isinstance(result.error, RuntimeError)
        assert result.value == 0.0

    def test_failing_feature_falls_back_to_realized_score(self):
        """Test a broken board accessor yields the raw score exactly."""
        state = BrokenState(num_players=3, scores=[12.0, 0.0, 0.0])

        assert StateEvaluator("balanced").score(state, 0) == 12.0

    def test_failure_is_logged_once_per_feature(self, caplog):
        """Test repeated failures do not flood the log."""
        state = BrokenState(num_players=3, scores=[12.0, 0.0, 0.0])
        evaluator = StateEvaluator("balanced")

        with caplog.at_level(logging.WARNING, logger="sushibot.heuristics.evaluator"):
            for _ in range(5):
                evaluator.score(state, 0)

        messages = [r.getMessage() for r in caplog.records]
        assert sum("'set_progress'" in m for m in messages) == 1
        assert sum("'competitive'" in m for m in messages) == 1

    def test_breakdown_scores_failed_features_as_zero(self):
        """Test failed features contribute 0 while the rest still report."""
        state = BrokenState(num_players=2, scores=[7.0, 0.0])

        breakdown = StateEvaluator("balanced").breakdown(state, 0)

        assert breakdown["immediate"] == 7.0
        assert breakdown["set_progress"] == 0.0
        assert breakdown["future_potential"] == pytest.approx(3.0)

    def test_unreadable_score_gives_zero(self):
        """Test a state without a readable score evaluates to 0."""

        class NoScore(SushiGoState):
            def get_game_score(self, player_id):
                raise KeyError(player_id)

        state = NoScore(num_players=2)
        assert realized_score(state, 0) == 0.0
        assert StateEvaluator("balanced").score(state, 0) == 0.0

    def test_score_accessor_runtime_error_gives_zero(self):
        """Test a score accessor failing with any error still evaluates to 0."""

        class NotReady(SushiGoState):
            def get_game_score(self, player_id):
                raise RuntimeError("engine not ready")

        assert StateEvaluator("score-only").score(NotReady(num_players=2), 0) == 0.0

    def test_non_finite_score_gives_zero(self):
        """Test NaN never reaches the search."""
        state = make_state([[], []], scores=[float("nan"), 0.0])

        assert StateEvaluator("score-only").score(state, 0) == 0.0


class Exploding:
    """Evaluator that always fails."""

    def score(self, state, player_id):
        raise ValueError("boom")

    def __repr__(self):
        return "Exploding()"


class TestBlendedEvaluator:
    """Tests for BlendedEvaluator."""

    def test_blend(self, midgame_state):
        """Test alpha * primary + (1 - alpha) * secondary."""
        primary = StateEvaluator("score-only")
        secondary = StateEvaluator("balanced")
        blended = BlendedEvaluator(primary, secondary, alpha=0.7)

        expected = 0.7 * primary.score(midgame_state, 0) + 0.3 * secondary.score(midgame_state, 0)
        assert blended.score(midgame_state, 0) == pytest.approx(expected)
        assert blended.as_value_function()(midgame_state, 0) == pytest.approx(expected)

    @pytest.mark.parametrize("alpha,expected", [(1.5, 1.0), (-0.2, 0.0), (0.25, 0.25)])
    def test_alpha_is_clamped(self, alpha, expected):
        """Test alpha outside [0, 1] is clamped."""
        blended = BlendedEvaluator(StateEvaluator(), StateEvaluator(), alpha=alpha)
        assert blended.alpha == expected

    def test_extreme_alpha_uses_one_side(self, midgame_state):
        """Test alpha 1 ignores the secondary evaluator."""
        blended = BlendedEvaluator(StateEvaluator("score-only"), StateEvaluator("strategic"), alpha=1.0)
        assert blended.score(midgame_state, 0) == pytest.approx(5.0)

    def test_failing_sub_evaluator_uses_realized_score(self, midgame_state):
        """Test a raising evaluator is replaced by the raw score."""
        blended = BlendedEvaluator(Exploding(), StateEvaluator("score-only"), alpha=0.5)

        assert blended.score(midgame_state, 0) == pytest.approx(5.0)

    def test_blend_survives_accessor_errors(self):
        """Test both sides falling back gives the realized score."""
        state = failing_board(RuntimeError("engine not ready"))(
            num_players=3, scores=[4.0, 0.0, 0.0]
        )
        blended = BlendedEvaluator(StateEvaluator("balanced"), StateEvaluator("strategic"), alpha=0.5)

        assert blended.score(state, 0) == pytest.approx(4.0)

    def test_alpha_is_read_only(self):
        """Test alpha stays fixed after construction."""
        blended = BlendedEvaluator(StateEvaluator(), StateEvaluator(), alpha=0.3)

        with pytest.raises(AttributeError):
            blended.alpha = 0.9
        assert blended.alpha == 0.3
