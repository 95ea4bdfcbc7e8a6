"""
Sub-features of the Sushi Go! state evaluator.

Each feature reads a fully observed state through the ObservedState
accessors and returns a number of "points-equivalent" value for one player.
Features may raise on a malformed state; the evaluator catches and records
the failure per feature.

Features:
    - immediate: points already banked
    - set_progress: convex partial credit toward tempura, sashimi, dumpling sets
    - synergy: wasabi vs nigiri balance, chopsticks
    - competitive: maki standing, pudding standing weighted by game phase
    - future_potential: remaining hand size, early-round bonus
    - blocking: opponents' incomplete sets we could deny
    - risk: our incomplete sets that can no longer complete (negative)
"""

from typing import Callable, Dict, List

from sushibot.game.constants import (
    DUMPLING_SCORES,
    MAKI_ICONS,
    NIGIRI_TYPES,
    NUM_ROUNDS,
    CardType,
)
from sushibot.game.state import ObservedState

FeatureFn = Callable[[ObservedState, int], float]


# ============================================================================
# Helpers
# ============================================================================


def _count(state: ObservedState, player_id: int, card_type: CardType) -> int:
    return state.get_played_count(card_type, player_id)


def _maki_icons(state: ObservedState, player_id: int) -> int:
    return sum(
        icons * _count(state, player_id, card_type)
        for card_type, icons in MAKI_ICONS.items()
    )


def _nigiri(state: ObservedState, player_id: int) -> int:
    return sum(_count(state, player_id, card_type) for card_type in NIGIRI_TYPES)


def _opponents(state: ObservedState, player_id: int) -> List[int]:
    return [p for p in range(state.num_players) if p != player_id]


# ============================================================================
# Features
# ============================================================================


def immediate(state: ObservedState, player_id: int) -> float:
    """Points the player has already banked."""
    return float(state.get_game_score(player_id))


def set_progress(state: ObservedState, player_id: int) -> float:
    """
    Partial credit toward multi-card set bonuses.

    Credit accelerates as a set nears completion: the second sashimi of a
    triple is worth more than the first.
    """
    progress = 0.0

    # Tempura pair = 5 points
    if _count(state, player_id, CardType.TEMPURA) % 2 == 1:
        progress += 2.5

    # Sashimi triple = 10 points
    sashimi = _count(state, player_id, CardType.SASHIMI) % 3
    if sashimi == 1:
        progress += 3.0
    elif sashimi == 2:
        progress += 7.0

    # Half the marginal value of the next dumpling
    dumplings = _count(state, player_id, CardType.DUMPLING)
    if 0 < dumplings < len(DUMPLING_SCORES) - 1:
        progress += (DUMPLING_SCORES[dumplings + 1] - DUMPLING_SCORES[dumplings]) * 0.5

    return progress


def synergy(state: ObservedState, player_id: int) -> float:
    """
    Enabler / payoff balance.

    Unused wasabi keeps the option of tripling a future nigiri; nigiri in
    excess of wasabi is value that can no longer be boosted. Chopsticks
    grant an extra pick later.
    """
    value = 0.0
    wasabi = _count(state, player_id, CardType.WASABI)
    nigiri = _nigiri(state, player_id)

    if wasabi > nigiri:
        value += (wasabi - nigiri) * 4.0
    elif nigiri > wasabi:
        value -= (nigiri - wasabi) * 0.5

    value += _count(state, player_id, CardType.CHOPSTICKS) * 2.0
    return value


def maki_standing(state: ObservedState, player_id: int) -> float:
    """Tiered reward for maki icon standing against the two best opponents."""
    ours = _maki_icons(state, player_id)
    best = second = 0
    for opponent in _opponents(state, player_id):
        theirs = _maki_icons(state, opponent)
        if theirs > best:
            best, second = theirs, best
        elif theirs > second:
            second = theirs

    if ours > best:
        return 6.0
    if ours == best and best > 0:
        return 4.0
    if ours > second:
        return 2.0
    if ours == second and second > 0:
        return 1.5
    return 0.0


def pudding_standing(state: ObservedState, player_id: int) -> float:
    """
    Pudding lead / last-place value, scored only at game end.

    Weighted by game phase so later rounds count more.
    """
    opponents = _opponents(state, player_id)
    if not opponents:
        return 0.0

    ours = _count(state, player_id, CardType.PUDDING)
    others = [_count(state, p, CardType.PUDDING) for p in opponents]
    most, fewest = max(others), min(others)
    weight = state.round_counter / NUM_ROUNDS

    value = 0.0
    if ours > most:
        value += 6.0 * weight
    elif ours == most and most > 0:
        value += 3.0 * weight
    if ours < fewest:
        value -= 6.0 * weight
    return value


def competitive(state: ObservedState, player_id: int) -> float:
    """Relative standing in shared tallies (maki now, pudding at game end)."""
    return maki_standing(state, player_id) + pudding_standing(state, player_id)


def future_potential(state: ObservedState, player_id: int) -> float:
    """Value of cards still to come: hand size plus a decaying early bonus."""
    potential = state.get_hand_size(player_id) * 0.5
    if state.round_counter == 0:
        potential += 3.0
    elif state.round_counter == 1:
        potential += 1.5
    return potential


def blocking(state: ObservedState, player_id: int) -> float:
    """Opponents' open sets that a pick could deny."""
    value = 0.0
    for opponent in _opponents(state, player_id):
        if _count(state, opponent, CardType.TEMPURA) % 2 == 1:
            value += 1.0
        if _count(state, opponent, CardType.SASHIMI) % 3 in (1, 2):
            value += 1.5
        if _count(state, opponent, CardType.WASABI) > 0:
            value += 1.0
    return value


def risk(state: ObservedState, player_id: int) -> float:
    """Penalty for open sets the remaining hand is too small to finish."""
    cards_left = state.get_hand_size(player_id)
    penalty = 0.0

    if _count(state, player_id, CardType.TEMPURA) % 2 == 1 and cards_left < 2:
        penalty += 2.0

    missing_sashimi = 3 - _count(state, player_id, CardType.SASHIMI) % 3
    if missing_sashimi != 3 and cards_left < missing_sashimi:
        penalty += 3.0

    if _count(state, player_id, CardType.WASABI) > 0 and cards_left < 2:
        penalty += 1.5

    return -penalty


FEATURES: Dict[str, FeatureFn] = {
    "immediate": immediate,
    "set_progress": set_progress,
    "synergy": synergy,
    "competitive": competitive,
    "future_potential": future_potential,
    "blocking": blocking,
    "risk": risk,
}
