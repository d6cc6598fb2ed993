"""
Table management for Crazy Eights games.

This module owns the one writable copy of each game's state. The engine in
game.py only produces successor snapshots; a Room swaps them in, counts
generations, and runs the CPU opponent as a cancellable background task.

A Room contains:
    - A unique 4-letter code used in logs and metrics
    - The human player's WebSocket connection
    - The current GameState snapshot and its generation number
    - The pending CPU task, if the CPU is on turn
"""

import asyncio
import logging
import random
import string
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from fastapi import WebSocket

from ai import process_cpu_turn
from constants import CPU_DELAY_SCALE, TABLE_CODE_LENGTH
from game import (
    Card, GameState, GameStatus, Suit, Turn,
    draw_card, initial_state, play_card, start_game,
)

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A single human-vs-CPU table.

    Attributes:
        code: 4-letter table code (e.g., "ABCD").
        websocket: The human player's connection (None in tests/simulation).
        state: Current game snapshot.
        generation: Incremented on every accepted state change.
        games_finished: Number of games at this table that reached game over.
        cpu_delay_scale: Multiplier on CPU thinking time (0 = instant).
        game_lock: Serializes every state transition at this table.
        cpu_task: Pending CPU turn, if any.
    """

    code: str
    websocket: Optional[WebSocket] = None
    state: GameState = field(default_factory=initial_state)
    generation: int = 0
    games_finished: int = 0
    cpu_delay_scale: float = CPU_DELAY_SCALE
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    cpu_task: Optional[asyncio.Task] = field(default=None, repr=False)
    _announced_game_over: int = field(default=-1, repr=False)

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def commit(self, new_state: GameState) -> bool:
        """
        Install a successor snapshot.

        Args:
            new_state: Snapshot returned by the engine.

        Returns:
            False if the engine rejected the move (same object returned).
        """
        if new_state is self.state:
            return False
        self.state = new_state
        self.generation += 1
        if new_state.status == GameStatus.GAME_OVER:
            self.games_finished += 1
            logger.info(
                f"Game over at table {self.code}: {new_state.winner.value} wins",
                extra={"room_code": self.code},
            )
        return True

    def start_game(self) -> GameState:
        """Deal a new game, abandoning any game in progress."""
        self.cancel_cpu_turn()
        self.commit(start_game())
        logger.info(
            f"Game started at table {self.code} (gen {self.generation})",
            extra={"room_code": self.code},
        )
        return self.state

    def play_card(
        self,
        card_id: str,
        player: Turn = Turn.PLAYER,
        chosen_suit: Optional[Suit] = None,
    ) -> bool:
        """Play a card for ``player``. Returns True if the move was accepted."""
        return self.commit(play_card(self.state, card_id, player, chosen_suit))

    def draw_card(self, player: Turn = Turn.PLAYER) -> Optional[Card]:
        """
        Draw for ``player``.

        Returns:
            The card drawn, or None if nothing was drawn (illegal request or
            an empty deck, which still passes the turn).
        """
        deck_before = self.state.deck
        if not self.commit(draw_card(self.state, player)):
            return None
        if len(self.state.deck) < len(deck_before):
            return deck_before[-1]
        return None

    # -------------------------------------------------------------------------
    # CPU scheduling
    # -------------------------------------------------------------------------

    def is_cpu_turn(self) -> bool:
        """Check if the CPU should act on the current snapshot."""
        return self.state.status == GameStatus.PLAYING and self.state.current_turn == Turn.AI

    def schedule_cpu_turn(
        self,
        broadcast_callback: Callable[[], Awaitable[None]],
    ) -> Optional[asyncio.Task]:
        """
        Start the CPU's turn in the background if it is on turn.

        Any pending CPU task is cancelled first. The new task is tied to the
        current generation; it keeps moving while the CPU stays on turn (a
        playable draw) and stops as soon as the human is on turn or the table
        changes under it.

        Args:
            broadcast_callback: Coroutine sending state to the client after
                each CPU move.

        Returns:
            The pending task, or None if the CPU is not on turn.
        """
        self.cancel_cpu_turn()
        if not self.is_cpu_turn():
            return None

        self.cpu_task = asyncio.create_task(
            self._run_cpu_turns(self.generation, broadcast_callback)
        )
        return self.cpu_task

    def cancel_cpu_turn(self) -> None:
        """Cancel the pending CPU turn, if any."""
        if self.cpu_task and not self.cpu_task.done():
            if self.cpu_task is not asyncio.current_task():
                self.cpu_task.cancel()
                logger.debug(f"Cancelled pending CPU turn at table {self.code}")
        self.cpu_task = None

    async def _run_cpu_turns(
        self,
        generation: int,
        broadcast_callback: Callable[[], Awaitable[None]],
    ) -> None:
        current = generation
        try:
            while self.is_cpu_turn():
                await self.send({"type": "cpu_thinking"})
                if await process_cpu_turn(self, current, broadcast_callback) is None:
                    break
                # The player may already have answered while we broadcast
                current = self.generation
        except asyncio.CancelledError:
            logger.debug(f"CPU turn cancelled at table {self.code}")
            raise
        except Exception:
            logger.exception(f"CPU turn failed at table {self.code}")

    # -------------------------------------------------------------------------
    # Client messaging
    # -------------------------------------------------------------------------

    async def send(self, message: dict) -> None:
        """
        Send a message to the human player.

        Args:
            message: JSON-serializable message dict.
        """
        if not self.websocket:
            return
        try:
            await self.websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Send to table {self.code} failed: {e}")

    async def send_game_state(self) -> None:
        """Send the player's view of the state plus any turn/result notice."""
        await self.send({
            "type": "game_state",
            "game_state": self.state.get_state(Turn.PLAYER),
        })

        if self.state.status == GameStatus.GAME_OVER:
            if self._announced_game_over != self.generation:
                self._announced_game_over = self.generation
                await self.send({
                    "type": "game_over",
                    "winner": self.state.winner.value,
                })
        elif self.state.status == GameStatus.PLAYING and self.state.current_turn == Turn.PLAYER:
            await self.send({"type": "your_turn"})


class RoomManager:
    """
    Manages all active tables.

    Provides table creation with unique codes, lookup, and cleanup.
    A single RoomManager instance is used by the server.
    """

    def __init__(self) -> None:
        self.rooms: dict[str, Room] = {}

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a unique table code."""
        for _ in range(max_attempts):
            code = "".join(random.choices(string.ascii_uppercase, k=TABLE_CODE_LENGTH))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique table code")

    def create_room(self, websocket: Optional[WebSocket] = None) -> Room:
        """
        Create a new table with a unique code.

        Args:
            websocket: The human player's connection.

        Returns:
            The newly created Room.
        """
        code = self._generate_code()
        room = Room(code=code, websocket=websocket)
        self.rooms[code] = room
        return room

    def remove_room(self, code: str) -> None:
        """Delete a table, cancelling its pending CPU turn."""
        room = self.rooms.pop(code, None)
        if room:
            room.cancel_cpu_turn()

    def games_in_progress(self) -> int:
        """Count tables with a game in PLAYING status."""
        return sum(1 for r in self.rooms.values() if r.state.status == GameStatus.PLAYING)

    def games_finished(self) -> int:
        """Total finished games across active tables."""
        return sum(r.games_finished for r in self.rooms.values())
