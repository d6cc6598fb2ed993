"""WebSocket message handlers for the Crazy Eights table.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket
from pydantic import BaseModel, ValidationError

from game import Suit, Turn
from room import Room

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    current_room: Optional[Room] = None


def new_connection_id() -> str:
    return str(uuid.uuid4())


class PlayCardRequest(BaseModel):
    """play_card message body."""
    card_id: str
    chosen_suit: Optional[str] = None


def parse_suit(value) -> Optional[Suit]:
    """
    Parse an optional suit name from a client message.

    Raises:
        ValueError: If the value is present but not a suit name.
    """
    if value is None or value == "":
        return None
    return Suit(str(value).lower())


# ---------------------------------------------------------------------------
# Game handlers
# ---------------------------------------------------------------------------

async def handle_start_game(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    if not ctx.current_room:
        return

    async with ctx.current_room.game_lock:
        ctx.current_room.start_game()
        await broadcast_game_state(ctx.current_room)


async def handle_play_card(data: dict, ctx: ConnectionContext, *, broadcast_game_state, check_and_run_cpu_turn, **kw) -> None:
    if not ctx.current_room:
        return

    try:
        request = PlayCardRequest(**data)
    except ValidationError:
        await ctx.websocket.send_json({"type": "error", "message": "play_card needs a card_id"})
        return

    card_id = request.card_id
    try:
        chosen_suit = parse_suit(request.chosen_suit)
    except ValueError:
        await ctx.websocket.send_json({
            "type": "error",
            "message": f"Unknown suit: {request.chosen_suit}",
        })
        return

    async with ctx.current_room.game_lock:
        played = ctx.current_room.play_card(card_id, Turn.PLAYER, chosen_suit)
        if played:
            logger.debug(
                f"Player played {card_id}",
                extra={"room_code": ctx.current_room.code, "card_id": card_id},
            )
        # Rejected moves re-send the unchanged state
        await broadcast_game_state(ctx.current_room)

    if played:
        await check_and_run_cpu_turn(ctx.current_room)


async def handle_draw_card(data: dict, ctx: ConnectionContext, *, broadcast_game_state, check_and_run_cpu_turn, **kw) -> None:
    if not ctx.current_room:
        return

    async with ctx.current_room.game_lock:
        generation_before = ctx.current_room.generation
        card = ctx.current_room.draw_card()

        if card:
            await ctx.websocket.send_json({
                "type": "card_drawn",
                "card": card.to_dict(),
            })

        await broadcast_game_state(ctx.current_room)
        changed = ctx.current_room.generation != generation_before

    if changed:
        await check_and_run_cpu_turn(ctx.current_room)


# ---------------------------------------------------------------------------
# Leave handler
# ---------------------------------------------------------------------------

async def handle_leave_game(data: dict, ctx: ConnectionContext, *, handle_player_leave, **kw) -> None:
    if ctx.current_room:
        await handle_player_leave(ctx.current_room)
        ctx.current_room = None


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "start_game": handle_start_game,
    "play_card": handle_play_card,
    "draw_card": handle_draw_card,
    "leave_game": handle_leave_game,
}
