"""
Test suite for WebSocket message handlers.

Tests handler flows and validation using a mock WebSocket and real Rooms.

Run with: pytest test_handlers.py -v
"""

import pytest
from unittest.mock import AsyncMock

from game import Card, GameState, GameStatus, Suit, Turn
from handlers import (
    HANDLERS,
    ConnectionContext,
    handle_draw_card,
    handle_leave_game,
    handle_play_card,
    handle_start_game,
    parse_suit,
)
from room import Room


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def last_message(self) -> dict:
        return self.messages[-1] if self.messages else {}

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


async def broadcast_game_state(room: Room):
    await room.send_game_state()


def hand(*ids):
    return tuple(Card.from_id(i) for i in ids)


def make_ctx(state=None):
    """Create a ConnectionContext seated at a fresh table."""
    ws = MockWebSocket()
    room = Room(code="TEST", websocket=ws, cpu_delay_scale=0)
    if state is not None:
        room.state = state
    return ConnectionContext(websocket=ws, connection_id="conn_123", current_room=room)


def make_state(player=(), ai=("K-clubs", "Q-clubs"), discard=("5-hearts",), deck=(), turn=Turn.PLAYER):
    return GameState(
        deck=hand(*deck),
        player_hand=hand(*player),
        ai_hand=hand(*ai),
        discard_pile=hand(*discard),
        current_turn=turn,
        status=GameStatus.PLAYING,
    )


def deps(**overrides):
    """Handler dependencies with a recording CPU trigger."""
    kw = dict(
        broadcast_game_state=broadcast_game_state,
        check_and_run_cpu_turn=AsyncMock(),
        handle_player_leave=AsyncMock(),
        room_manager=None,
    )
    kw.update(overrides)
    return kw


# =============================================================================
# Suit parsing
# =============================================================================

class TestParseSuit:

    def test_missing_suit(self):
        assert parse_suit(None) is None
        assert parse_suit("") is None

    def test_case_insensitive(self):
        assert parse_suit("Spades") == Suit.SPADES

    def test_unknown_suit(self):
        with pytest.raises(ValueError):
            parse_suit("stars")


# =============================================================================
# Game handlers
# =============================================================================

class TestHandleStartGame:

    @pytest.mark.asyncio
    async def test_deals_and_broadcasts(self):
        ctx = make_ctx()
        await handle_start_game({"type": "start_game"}, ctx, **deps())

        assert ctx.current_room.state.status == GameStatus.PLAYING
        assert ctx.current_room.generation == 1
        state_msg = ctx.websocket.messages_of_type("game_state")[-1]
        assert len(state_msg["game_state"]["hand"]) == 8
        assert ctx.websocket.last_message()["type"] == "your_turn"

    @pytest.mark.asyncio
    async def test_restart_mid_game(self):
        ctx = make_ctx(make_state(player=("2-hearts", "3-hearts")))
        await handle_start_game({"type": "start_game"}, ctx, **deps())
        assert len(ctx.current_room.state.player_hand) == 8


class TestHandlePlayCard:

    @pytest.mark.asyncio
    async def test_legal_play_triggers_cpu(self):
        ctx = make_ctx(make_state(player=("2-hearts", "K-spades")))
        kw = deps()
        await handle_play_card({"type": "play_card", "card_id": "2-hearts"}, ctx, **kw)

        assert ctx.current_room.state.discard_top.id == "2-hearts"
        assert ctx.current_room.state.current_turn == Turn.AI
        kw["check_and_run_cpu_turn"].assert_awaited_once_with(ctx.current_room)

    @pytest.mark.asyncio
    async def test_illegal_play_resends_state(self):
        ctx = make_ctx(make_state(player=("2-spades", "K-spades")))
        kw = deps()
        await handle_play_card({"type": "play_card", "card_id": "2-spades"}, ctx, **kw)

        assert ctx.current_room.generation == 0
        assert len(ctx.websocket.messages_of_type("game_state")) == 1
        kw["check_and_run_cpu_turn"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_eight_with_chosen_suit(self):
        ctx = make_ctx(make_state(player=("8-spades", "K-spades"), discard=("3-hearts",)))
        await handle_play_card(
            {"type": "play_card", "card_id": "8-spades", "chosen_suit": "diamonds"}, ctx, **deps(),
        )
        state_msg = ctx.websocket.messages_of_type("game_state")[-1]
        assert state_msg["game_state"]["wild_suit"] == "diamonds"

    @pytest.mark.asyncio
    async def test_unknown_suit_is_an_error(self):
        ctx = make_ctx(make_state(player=("8-spades", "K-spades")))
        kw = deps()
        await handle_play_card(
            {"type": "play_card", "card_id": "8-spades", "chosen_suit": "stars"}, ctx, **kw,
        )
        assert ctx.websocket.last_message()["type"] == "error"
        assert ctx.current_room.generation == 0
        kw["check_and_run_cpu_turn"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_card_id_is_an_error(self):
        ctx = make_ctx(make_state(player=("2-hearts", "K-spades")))
        await handle_play_card({"type": "play_card"}, ctx, **deps())
        assert ctx.websocket.last_message()["type"] == "error"
        assert ctx.current_room.generation == 0

    @pytest.mark.asyncio
    async def test_winning_play_sends_game_over(self):
        ctx = make_ctx(make_state(player=("2-hearts",)))
        await handle_play_card({"type": "play_card", "card_id": "2-hearts"}, ctx, **deps())
        assert ctx.websocket.last_message() == {"type": "game_over", "winner": "player"}


class TestHandleDrawCard:

    @pytest.mark.asyncio
    async def test_draw_sends_card_and_passes_turn(self):
        ctx = make_ctx(make_state(player=("2-spades",), deck=("9-clubs",)))
        kw = deps()
        await handle_draw_card({"type": "draw_card"}, ctx, **kw)

        drawn = ctx.websocket.messages_of_type("card_drawn")
        assert drawn[0]["card"]["id"] == "9-clubs"
        assert ctx.current_room.state.current_turn == Turn.AI
        kw["check_and_run_cpu_turn"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_playable_draw_keeps_turn(self):
        ctx = make_ctx(make_state(player=("2-spades",), deck=("9-hearts",)))
        await handle_draw_card({"type": "draw_card"}, ctx, **deps())
        assert ctx.current_room.state.current_turn == Turn.PLAYER
        assert ctx.websocket.last_message()["type"] == "your_turn"

    @pytest.mark.asyncio
    async def test_empty_deck_passes_without_card(self):
        ctx = make_ctx(make_state(player=("2-spades",)))
        kw = deps()
        await handle_draw_card({"type": "draw_card"}, ctx, **kw)
        assert ctx.websocket.messages_of_type("card_drawn") == []
        assert ctx.current_room.state.current_turn == Turn.AI
        kw["check_and_run_cpu_turn"].assert_awaited_once()

    @pytest.mark.asyncio
    async def test_draw_out_of_turn_ignored(self):
        ctx = make_ctx(make_state(player=("2-spades",), deck=("9-clubs",), turn=Turn.AI))
        kw = deps()
        await handle_draw_card({"type": "draw_card"}, ctx, **kw)
        assert ctx.current_room.generation == 0
        kw["check_and_run_cpu_turn"].assert_not_awaited()


class TestHandleLeaveGame:

    @pytest.mark.asyncio
    async def test_leave_clears_room(self):
        ctx = make_ctx()
        room = ctx.current_room
        kw = deps()
        await handle_leave_game({"type": "leave_game"}, ctx, **kw)
        kw["handle_player_leave"].assert_awaited_once_with(room)
        assert ctx.current_room is None

    @pytest.mark.asyncio
    async def test_handlers_ignore_missing_room(self):
        ctx = make_ctx()
        ctx.current_room = None
        await handle_start_game({}, ctx, **deps())
        await handle_play_card({"card_id": "2-hearts"}, ctx, **deps())
        await handle_draw_card({}, ctx, **deps())
        assert ctx.websocket.messages == []


class TestDispatch:

    def test_message_types_registered(self):
        assert set(HANDLERS) == {"start_game", "play_card", "draw_card", "leave_game"}
