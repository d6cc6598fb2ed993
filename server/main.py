"""FastAPI WebSocket server for the Crazy Eights card game."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from config import config
from constants import MAX_TABLES
from handlers import HANDLERS, ConnectionContext, new_connection_id
from logging_config import room_code_var, setup_logging
from middleware.request_id import RequestIDMiddleware
from room import Room, RoomManager
from routers.health import router as health_router, set_health_dependencies

# JSON logs in production, colored lines elsewhere
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)

room_manager = RoomManager()


async def _close_all_tables():
    """Cancel CPU turns and close all WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        room.cancel_cpu_turn()
        if room.websocket:
            try:
                await room.websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.debug(f"Closing table {room.code} failed: {e}")
    room_manager.rooms.clear()
    logger.info("All tables closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    set_health_dependencies(room_manager=room_manager)
    logger.info(f"Crazy Eights server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutting down, closing tables")
    await _close_all_tables()
    logger.info("Shutdown done")


app = FastAPI(
    title="Crazy Eights",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

# Request ID middleware (generates/propagates request IDs)
app.add_middleware(RequestIDMiddleware)

app.include_router(health_router)


async def broadcast_game_state(room: Room):
    """Send the current state to the table's human player."""
    await room.send_game_state()


async def check_and_run_cpu_turn(room: Room):
    """Check if the CPU is on turn and start its turn in the background."""
    async def broadcast_cb():
        await broadcast_game_state(room)

    room.schedule_cpu_turn(broadcast_cb)


async def handle_player_leave(room: Room):
    """Tear down a table when its player leaves or disconnects."""
    room_manager.remove_room(room.code)
    logger.info(f"Table {room.code} closed", extra={"room_code": room.code})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    if len(room_manager.rooms) >= MAX_TABLES:
        await websocket.send_json({"type": "error", "message": "Server is full, try again later"})
        await websocket.close(code=1013, reason="Server is full")
        return

    room = room_manager.create_room(websocket)
    room_code_var.set(room.code)
    ctx = ConnectionContext(
        websocket=websocket,
        connection_id=new_connection_id(),
        current_room=room,
    )
    logger.debug(f"WebSocket {ctx.connection_id} seated at table {room.code}")

    # Handlers get the server-level callbacks as keyword arguments
    handler_deps = dict(
        room_manager=room_manager,
        broadcast_game_state=broadcast_game_state,
        check_and_run_cpu_turn=check_and_run_cpu_turn,
        handle_player_leave=handle_player_leave,
    )

    await websocket.send_json({"type": "connected", "room_code": room.code})
    await broadcast_game_state(room)

    try:
        while ctx.current_room:
            data = await websocket.receive_json()
            handler = HANDLERS.get(data.get("type"))
            if handler:
                await handler(data, ctx, **handler_deps)
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {ctx.connection_id} disconnected")
    finally:
        if ctx.current_room:
            await handle_player_leave(ctx.current_room)


# Browser client, when it is checked out next to server/
client_path = os.path.join(os.path.dirname(__file__), "..", "client")
if os.path.exists(client_path):
    @app.get("/")
    async def serve_index():
        return FileResponse(os.path.join(client_path, "index.html"))

    app.mount("/", StaticFiles(directory=client_path), name="static")


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Crazy Eights server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
