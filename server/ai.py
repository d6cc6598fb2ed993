"""CPU opponent for Crazy Eights."""

import asyncio
import logging
import os
import random
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Optional

from constants import CPU_DELAY_SCALE
from game import (
    Card, GameState, GameStatus, Suit, Turn,
    draw_card, is_playable, play_card,
)

if TYPE_CHECKING:
    from room import Room


# Debug logging configuration
# Set AI_DEBUG=1 environment variable to enable detailed AI decision logging
AI_DEBUG = os.environ.get("AI_DEBUG", "0") == "1"

# Create a dedicated logger for AI decisions
ai_logger = logging.getLogger("crazyeights.ai")
if AI_DEBUG:
    ai_logger.setLevel(logging.DEBUG)


def ai_log(message: str):
    """Log AI decision info when AI_DEBUG is enabled."""
    if AI_DEBUG:
        ai_logger.debug(message)


# =============================================================================
# CPU Turn Timing Configuration (seconds)
# =============================================================================
# All values are multiplied by the table's delay scale (CPU_DELAY_SCALE).

CPU_TIMING = {
    # Pause before the CPU commits to a move
    "thinking": (0.8, 1.2),
}

# Suit named for an eight when the CPU holds nothing else to count
DEFAULT_WILD_SUIT = Suit.HEARTS


@dataclass
class CPUDecision:
    """
    A move chosen by the CPU.

    Attributes:
        action: "play" or "draw".
        card_id: Card to play (play only).
        chosen_suit: Suit to name when the card is an eight.
        reason: Short explanation for logs.
    """

    action: str
    card_id: Optional[str] = None
    chosen_suit: Optional[Suit] = None
    reason: str = ""


def get_thinking_time(scale: float = CPU_DELAY_SCALE) -> float:
    """Random CPU "thinking" time in seconds, scaled; 0 when scale is 0."""
    if scale <= 0:
        return 0.0
    low, high = CPU_TIMING["thinking"]
    return random.uniform(low, high) * scale


class CrazyEightsAI:
    """
    Greedy Crazy Eights policy.

    Plays the first legal card in hand order, names its most common suit
    for an eight, and draws when nothing is playable. No lookahead.
    """

    @staticmethod
    def choose_wild_suit(hand: Iterable[Card]) -> Suit:
        """
        Pick the suit to name after playing an eight.

        Counts suits over the non-eight cards in ``hand`` and returns the most
        frequent one. Ties go to the earlier suit in hearts, diamonds, clubs,
        spades order. With no non-eight cards the answer is hearts.
        """
        counts = Counter(card.suit for card in hand if not card.is_eight)
        if not counts:
            return DEFAULT_WILD_SUIT
        # max() keeps the first maximal element, so Suit order breaks ties
        return max(Suit, key=lambda suit: counts[suit])

    @staticmethod
    def choose_card(state: GameState, player: Turn = Turn.AI) -> Optional[Card]:
        """Return the first playable card in ``player``'s hand, if any."""
        top = state.discard_top
        if top is None:
            return None
        for card in state.hand_for(player):
            if is_playable(card, top, state.wild_suit):
                return card
        return None

    @staticmethod
    def choose_action(state: GameState, player: Turn = Turn.AI) -> Optional[CPUDecision]:
        """
        Decide the CPU's move for the current snapshot.

        Args:
            state: Current snapshot.
            player: Seat the policy is playing for.

        Returns:
            The decision, or None if ``player`` cannot act in this state.
        """
        if state.status != GameStatus.PLAYING or state.current_turn != player:
            return None

        card = CrazyEightsAI.choose_card(state, player)
        if card is None:
            ai_log(f"  {player.value}: nothing playable on {state.discard_top.id}, drawing")
            return CPUDecision(action="draw", reason="no playable card")

        if card.is_eight:
            rest = [c for c in state.hand_for(player) if c.id != card.id]
            suit = CrazyEightsAI.choose_wild_suit(rest)
            ai_log(f"  {player.value}: playing {card.id}, naming {suit.value}")
            return CPUDecision(
                action="play",
                card_id=card.id,
                chosen_suit=suit,
                reason=f"wild eight, most held suit {suit.value}",
            )

        ai_log(f"  {player.value}: playing {card.id} on {state.discard_top.id}")
        return CPUDecision(action="play", card_id=card.id, reason="first playable card")


def apply_decision(state: GameState, decision: CPUDecision, player: Turn = Turn.AI) -> GameState:
    """Run a CPU decision through the turn engine."""
    if decision.action == "play":
        return play_card(state, decision.card_id, player, decision.chosen_suit)
    return draw_card(state, player)


async def process_cpu_turn(
    room: "Room",
    generation: int,
    broadcast_callback: Callable[[], Awaitable[None]],
) -> Optional[int]:
    """
    Process one CPU move for a table.

    Waits the thinking time, then decides and applies the move under the
    table lock, but only if the table is still at ``generation``. A restart
    or any other change in the meantime makes the move stale and it is
    dropped.

    Args:
        room: Table holding the state.
        generation: Table generation the move was scheduled for.
        broadcast_callback: Coroutine sending the new state to the client.

    Returns:
        The table generation after the move, or None if nothing was applied.
    """
    thinking_time = get_thinking_time(room.cpu_delay_scale)
    ai_log(f"CPU thinking for {thinking_time:.2f}s (table {room.code}, gen {generation})")
    await asyncio.sleep(thinking_time)

    async with room.game_lock:
        if room.generation != generation:
            ai_log(f"CPU move for gen {generation} is stale (table at {room.generation}), dropped")
            return None

        decision = CrazyEightsAI.choose_action(room.state, Turn.AI)
        if decision is None:
            return None

        if not room.commit(apply_decision(room.state, decision, Turn.AI)):
            return None
        move = f"played {decision.card_id}" if decision.action == "play" else "drew"
        ai_logger.info(
            f"CPU {move} ({decision.reason})",
            extra={"room_code": room.code, "seat": Turn.AI.value, "card_id": decision.card_id},
        )
        new_generation = room.generation

    await broadcast_callback()
    return new_generation
