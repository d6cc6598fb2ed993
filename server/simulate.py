"""
Crazy Eights AI Simulation Runner

Runs CPU-vs-CPU games with the same policy in both seats to check the
engine and measure the policy. No server/websocket needed - runs games
directly against the turn engine.

Usage:
    python simulate.py [num_games]
    python simulate.py detail

Examples:
    python simulate.py 100       # Run 100 games and print statistics
    python simulate.py detail    # Play one game move by move
"""

import random
import sys
from collections import Counter
from typing import Optional

from ai import CPUDecision, CrazyEightsAI, apply_decision
from game import GameState, GameStatus, Turn, ordered_deck, start_game

# With no reshuffle a game can stall once the deck is empty and neither
# seat can play; such games are stopped here and counted as stalled.
MAX_TURNS = 500

FULL_DECK_IDS = sorted(c.id for c in ordered_deck())


class ConservationError(AssertionError):
    """A move lost or duplicated a card."""


def check_conservation(state: GameState) -> None:
    """Raise ConservationError unless the four piles hold each card exactly once."""
    ids = sorted(c.id for c in state.all_cards())
    if ids != FULL_DECK_IDS:
        counts = Counter(ids)
        duplicated = [card_id for card_id, n in counts.items() if n > 1]
        missing = sorted(set(FULL_DECK_IDS) - set(counts))
        raise ConservationError(
            f"Card conservation broken: duplicated={duplicated} missing={missing}"
        )


class SimulationStats:
    """Track simulation statistics."""

    def __init__(self):
        self.games_played = 0
        self.stalled_games = 0
        self.total_turns = 0
        self.wins: dict[str, int] = {}
        self.decisions: dict[str, dict] = {}  # seat -> {action: count}
        self.wild_eights = 0
        self.wild_suits: Counter = Counter()

    def record_game(self, winner: Optional[Turn], turns: int):
        self.games_played += 1
        self.total_turns += turns
        if winner is None:
            self.stalled_games += 1
            return
        self.wins[winner.value] = self.wins.get(winner.value, 0) + 1

    def record_turn(self, seat: Turn, decision: CPUDecision):
        actions = self.decisions.setdefault(seat.value, {})
        actions[decision.action] = actions.get(decision.action, 0) + 1
        if decision.chosen_suit is not None:
            self.wild_eights += 1
            self.wild_suits[decision.chosen_suit.value] += 1

    def report(self) -> str:
        lines = [
            "=" * 50,
            "SIMULATION RESULTS",
            "=" * 50,
            f"Games played: {self.games_played}",
            f"Stalled games (turn cap {MAX_TURNS}): {self.stalled_games}",
            f"Total turns: {self.total_turns}",
            f"Avg turns/game: {self.total_turns / max(1, self.games_played):.1f}",
            "",
            "WIN RATES:",
        ]

        finished = self.games_played - self.stalled_games
        for seat in Turn:
            wins = self.wins.get(seat.value, 0)
            pct = wins / max(1, finished) * 100
            lines.append(f"  {seat.value}: {wins} wins ({pct:.1f}%)")

        lines.append("")
        lines.append("DECISION BREAKDOWN:")
        for seat, actions in sorted(self.decisions.items()):
            total = sum(actions.values())
            lines.append(f"  {seat}:")
            for action, count in sorted(actions.items()):
                pct = count / max(1, total) * 100
                lines.append(f"    {action}: {count} ({pct:.1f}%)")

        lines.append("")
        lines.append(f"WILD EIGHTS PLAYED: {self.wild_eights}")
        for suit, count in self.wild_suits.most_common():
            lines.append(f"  named {suit}: {count}")

        return "\n".join(lines)


def run_game(
    stats: Optional[SimulationStats] = None,
    rng: Optional[random.Random] = None,
    verbose: bool = False,
) -> tuple[GameState, int]:
    """
    Play one CPU-vs-CPU game to completion or to the turn cap.

    Card conservation is checked after every move.

    Returns:
        The final state and the number of moves made.
    """
    state = start_game(rng)
    check_conservation(state)
    turns = 0

    if verbose:
        print(f"\nOpening discard: {state.discard_top.id}")
        print("-" * 50)

    while state.status == GameStatus.PLAYING and turns < MAX_TURNS:
        seat = state.current_turn
        decision = CrazyEightsAI.choose_action(state, seat)
        if decision is None:
            break

        new_state = apply_decision(state, decision, seat)
        if new_state is state:
            raise RuntimeError(f"Policy chose an illegal move for {seat.value}: {decision}")
        check_conservation(new_state)

        if stats:
            stats.record_turn(seat, decision)
        if verbose:
            hand = [c.id for c in state.hand_for(seat)]
            print(f"\nTurn {turns + 1}: {seat.value}")
            print(f"  Hand: {hand}")
            print(f"  Discard: {state.discard_top.id}"
                  + (f" (wild {state.wild_suit.value})" if state.wild_suit else ""))
            if decision.action == "play":
                named = f", naming {decision.chosen_suit.value}" if decision.chosen_suit else ""
                print(f"  Action: play {decision.card_id}{named}")
            else:
                print(f"  Action: draw ({len(new_state.deck)} left in deck)")

        state = new_state
        turns += 1

    if stats:
        stats.record_game(state.winner, turns)
    return state, turns


def run_simulation(num_games: int = 10, verbose: bool = True):
    """Run multiple games and report statistics."""

    print(f"\nRunning {num_games} CPU-vs-CPU games...")
    print("=" * 50)

    stats = SimulationStats()

    for i in range(num_games):
        state, turns = run_game(stats)
        if verbose:
            result = state.winner.value if state.winner else "stalled"
            print(f"Game {i + 1}/{num_games}: {result} after {turns} turns")

    print("\n")
    print(stats.report())


def run_detailed_game():
    """Run a single game with detailed output."""

    print("\nRunning detailed CPU-vs-CPU game...")
    print("=" * 50)

    state, turns = run_game(verbose=True)

    print("\n" + "=" * 50)
    print("RESULT")
    print("=" * 50)
    if state.winner:
        print(f"Winner: {state.winner.value} after {turns} turns")
    else:
        print(f"Stalled after {turns} turns")
    for seat in Turn:
        print(f"  {seat.value}: {[c.id for c in state.hand_for(seat)]}")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "detail":
        run_detailed_game()
    else:
        num_games = int(sys.argv[1]) if len(sys.argv) > 1 else 10
        run_simulation(num_games)
