"""
Game logic for Crazy Eights.

This module implements the core game mechanics for a two-player Crazy Eights
game (one human, one CPU): card/deck creation, the playability rule, the
immutable game state snapshot, and the turn engine that moves between
snapshots.

Crazy Eights Rules Summary:
    - Each player is dealt 8 cards; one card starts the discard pile
    - On your turn: play a card matching the discard top by suit or rank,
      or draw one card from the deck
    - Eights are wild: they can always be played, and the player names the
      suit the next card must follow
    - A drawn card that can be played keeps the turn with the drawer
    - First player to empty their hand wins

Every transition returns a new GameState. An operation whose preconditions
fail returns the input state object unchanged, so callers detect a rejected
move with an identity check.
"""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from constants import INITIAL_HAND_SIZE


class Suit(Enum):
    """Card suits for a standard deck, in tie-break order."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class Rank(Enum):
    """Card ranks with their display values."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"


class Turn(Enum):
    """The two seats at the table."""

    PLAYER = "player"
    AI = "ai"


class GameStatus(Enum):
    """
    Status of a Crazy Eights game.

    Flow: WAITING -> PLAYING -> GAME_OVER
    A fresh start_game() is the only way back into PLAYING.
    """

    WAITING = "waiting"      # No cards dealt yet
    PLAYING = "playing"      # Normal gameplay, taking turns
    GAME_OVER = "game_over"  # One hand is empty


def other_player(player: Turn) -> Turn:
    """Return the seat that is not ``player``."""
    return Turn.AI if player == Turn.PLAYER else Turn.PLAYER


@dataclass(frozen=True)
class Card:
    """
    A playing card.

    The id is derived from rank and suit, so a 52-card deck can never hold
    the same card twice.

    Attributes:
        suit: The card's suit.
        rank: The card's rank.
    """

    suit: Suit
    rank: Rank

    @property
    def id(self) -> str:
        """Stable identifier such as ``"8-spades"`` or ``"Q-hearts"``."""
        return f"{self.rank.value}-{self.suit.value}"

    @property
    def is_eight(self) -> bool:
        return self.rank == Rank.EIGHT

    @classmethod
    def from_id(cls, card_id: str) -> "Card":
        """
        Build a card from its id.

        Raises:
            ValueError: If the id does not name a card.
        """
        rank_str, _, suit_str = card_id.partition("-")
        return cls(Suit(suit_str), Rank(rank_str))

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "suit": self.suit.value,
            "rank": self.rank.value,
        }


# =============================================================================
# Deck Factory
# =============================================================================

def ordered_deck() -> list[Card]:
    """Return all 52 cards, suit-major, in enum order."""
    return [Card(suit, rank) for suit in Suit for rank in Rank]


def shuffle(cards: list[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """
    Return a uniformly shuffled copy of ``cards`` (Fisher-Yates).

    Args:
        cards: Cards to shuffle. Not modified.
        rng: Optional random source for reproducible shuffles.

    Returns:
        A new list holding the same cards in random order.
    """
    rng = rng or random
    shuffled = list(cards)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def create_deck(rng: Optional[random.Random] = None) -> tuple[Card, ...]:
    """Build a fresh, shuffled 52-card deck."""
    return tuple(shuffle(ordered_deck(), rng))


# =============================================================================
# Playability Rule
# =============================================================================

def is_playable(card: Card, top: Card, wild_suit: Optional[Suit]) -> bool:
    """
    Check whether ``card`` may be played on ``top``.

    Eights are always playable. While a wild suit is active only that suit
    matches; otherwise the card must match the top card's suit or rank.

    Args:
        card: Candidate card.
        top: Current top of the discard pile.
        wild_suit: Suit named by the last eight played, if any.

    Returns:
        True if the card is a legal play.
    """
    if card.is_eight:
        return True
    if wild_suit is not None:
        return card.suit == wild_suit
    return card.suit == top.suit or card.rank == top.rank


# =============================================================================
# Game State
# =============================================================================

@dataclass(frozen=True)
class GameState:
    """
    Complete snapshot of a Crazy Eights game.

    Snapshots are never mutated; the turn engine returns a new one for every
    accepted move.

    Attributes:
        deck: Draw pile. The last card is the next one drawn.
        player_hand: The human player's cards.
        ai_hand: The CPU player's cards.
        discard_pile: Played cards. The last card is the top.
        current_turn: Seat allowed to act.
        status: Game status.
        winner: Seat that emptied its hand, once the game is over.
        wild_suit: Suit named by the eight on top of the discard pile.
    """

    deck: tuple[Card, ...] = ()
    player_hand: tuple[Card, ...] = ()
    ai_hand: tuple[Card, ...] = ()
    discard_pile: tuple[Card, ...] = ()
    current_turn: Turn = Turn.PLAYER
    status: GameStatus = GameStatus.WAITING
    winner: Optional[Turn] = None
    wild_suit: Optional[Suit] = None

    @property
    def discard_top(self) -> Optional[Card]:
        """Get the top card of the discard pile (if any)."""
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    def hand_for(self, player: Turn) -> tuple[Card, ...]:
        """Return the hand belonging to ``player``."""
        return self.player_hand if player == Turn.PLAYER else self.ai_hand

    def card_in_hand(self, player: Turn, card_id: str) -> Optional[Card]:
        """Find a card by id in ``player``'s hand."""
        for card in self.hand_for(player):
            if card.id == card_id:
                return card
        return None

    def all_cards(self) -> list[Card]:
        """Every card across the four piles."""
        return [*self.deck, *self.player_hand, *self.ai_hand, *self.discard_pile]

    def to_dict(self) -> dict:
        """Full snapshot as a dictionary, including hidden information."""
        return {
            "deck": [c.to_dict() for c in self.deck],
            "player_hand": [c.to_dict() for c in self.player_hand],
            "ai_hand": [c.to_dict() for c in self.ai_hand],
            "discard_pile": [c.to_dict() for c in self.discard_pile],
            "current_turn": self.current_turn.value,
            "status": self.status.value,
            "winner": self.winner.value if self.winner else None,
            "wild_suit": self.wild_suit.value if self.wild_suit else None,
        }

    def get_state(self, for_player: Turn = Turn.PLAYER) -> dict:
        """
        Get the game state as seen by one seat.

        The opponent's hand is reduced to a count and the deck to its size,
        so nothing hidden reaches the client.

        Args:
            for_player: The seat that will receive this state.

        Returns:
            Dict suitable for JSON serialization.
        """
        opponent = other_player(for_player)
        top = self.discard_top
        return {
            "status": self.status.value,
            "current_turn": self.current_turn.value,
            "winner": self.winner.value if self.winner else None,
            "wild_suit": self.wild_suit.value if self.wild_suit else None,
            "hand": [c.to_dict() for c in self.hand_for(for_player)],
            "opponent_card_count": len(self.hand_for(opponent)),
            "deck_remaining": len(self.deck),
            "discard_pile": [c.to_dict() for c in self.discard_pile],
            "discard_top": top.to_dict() if top else None,
            "playable_card_ids": [c.id for c in playable_cards(self, for_player)],
        }


def initial_state() -> GameState:
    """Return the empty snapshot a table holds before the first deal."""
    return GameState()


def playable_cards(state: GameState, player: Turn) -> list[Card]:
    """
    List the cards ``player`` could legally play right now.

    Empty when the game is not in progress or it is not ``player``'s turn.
    """
    top = state.discard_top
    if state.status != GameStatus.PLAYING or state.current_turn != player or top is None:
        return []
    return [c for c in state.hand_for(player) if is_playable(c, top, state.wild_suit)]


# =============================================================================
# Turn Engine
# =============================================================================

def start_game(rng: Optional[random.Random] = None) -> GameState:
    """
    Deal a new game.

    Shuffles a fresh deck, deals eight cards to the player and then
    to the CPU from the front of the deck, and turns up the opening discard
    from the draw end. An eight is never left as the opening discard: it goes
    back to the far end of the deck and the next card is turned up.

    Args:
        rng: Optional random source for a reproducible deal.

    Returns:
        A PLAYING snapshot with the player to act.
    """
    deck = list(create_deck(rng))
    player_hand = deck[:INITIAL_HAND_SIZE]
    ai_hand = deck[INITIAL_HAND_SIZE:INITIAL_HAND_SIZE * 2]
    deck = deck[INITIAL_HAND_SIZE * 2:]

    first_discard = deck.pop()
    while first_discard.is_eight:
        deck.insert(0, first_discard)
        first_discard = deck.pop()

    return GameState(
        deck=tuple(deck),
        player_hand=tuple(player_hand),
        ai_hand=tuple(ai_hand),
        discard_pile=(first_discard,),
        current_turn=Turn.PLAYER,
        status=GameStatus.PLAYING,
        winner=None,
        wild_suit=None,
    )


def _with_hand(state: GameState, player: Turn, hand: tuple[Card, ...], **changes) -> GameState:
    if player == Turn.PLAYER:
        return replace(state, player_hand=hand, **changes)
    return replace(state, ai_hand=hand, **changes)


def play_card(
    state: GameState,
    card_id: str,
    player: Turn,
    chosen_suit: Optional[Suit] = None,
) -> GameState:
    """
    Play a card from ``player``'s hand onto the discard pile.

    The move is rejected (the same state is returned) unless the game is in
    progress, it is ``player``'s turn, the card is in their hand and it is
    playable on the current top.

    Args:
        state: Current snapshot.
        card_id: Id of the card to play.
        player: Seat making the move.
        chosen_suit: Suit to name when the card is an eight.

    Returns:
        The successor snapshot, or ``state`` itself if the move is illegal.
    """
    if state.status != GameStatus.PLAYING or state.current_turn != player:
        return state

    card = state.card_in_hand(player, card_id)
    top = state.discard_top
    if card is None or top is None or not is_playable(card, top, state.wild_suit):
        return state

    hand = tuple(c for c in state.hand_for(player) if c.id != card_id)
    wild_suit = chosen_suit if card.is_eight else None
    discard_pile = state.discard_pile + (card,)

    if not hand:
        return _with_hand(
            state, player, hand,
            discard_pile=discard_pile,
            status=GameStatus.GAME_OVER,
            winner=player,
            wild_suit=wild_suit,
        )

    return _with_hand(
        state, player, hand,
        discard_pile=discard_pile,
        current_turn=other_player(player),
        wild_suit=wild_suit,
    )


def draw_card(state: GameState, player: Turn) -> GameState:
    """
    Draw one card from the deck into ``player``'s hand.

    When the deck is empty the turn simply passes; the discard pile is not
    reshuffled. A drawn card that is playable keeps the turn with the drawer
    so they can play it next; it is never played automatically.

    Args:
        state: Current snapshot.
        player: Seat drawing.

    Returns:
        The successor snapshot, or ``state`` itself if it is not ``player``'s
        turn or the game is not in progress.
    """
    if state.status != GameStatus.PLAYING or state.current_turn != player:
        return state

    if not state.deck:
        return replace(state, current_turn=other_player(player))

    drawn = state.deck[-1]
    hand = state.hand_for(player) + (drawn,)
    top = state.discard_top
    keeps_turn = top is not None and is_playable(drawn, top, state.wild_suit)

    return _with_hand(
        state, player, hand,
        deck=state.deck[:-1],
        current_turn=player if keeps_turn else other_player(player),
    )
