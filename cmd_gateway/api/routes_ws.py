# cmd_gateway/api/routes_ws.py

from typing import List

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from loguru import logger
from starlette.websockets import WebSocketState


def is_origin_allowed(origin: str | None, allowed_origins: List[str]) -> bool:
    """
    Decides whether a websocket handshake may proceed.

    Requests without an Origin header come from non-browser clients and are
    accepted; browser origins must be listed, or the list must contain "*".
    """
    if origin is None:
        return True
    if "*" in allowed_origins:
        return True
    return origin.rstrip("/") in {o.rstrip("/") for o in allowed_origins}


async def receive_command(websocket: WebSocket) -> str:
    """Waits for the next frame and returns it as text, whether it was sent as text or bytes."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


async def command_socket(websocket: WebSocket):
    """
    Runs one command per inbound frame and replies with one text frame.

    Commands are handled strictly in order: the next frame is not read until
    the reply to the previous one has been sent.
    """
    settings = websocket.app.state.settings
    gate = websocket.app.state.gate
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"

    origin = websocket.headers.get("origin")
    if not is_origin_allowed(origin, settings.allowed_origins):
        logger.warning(f"Refusing websocket from {client}: origin '{origin}' is not allowed")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info(f"Client connected: {client}")

    try:
        while True:
            command = await receive_command(websocket)
            logger.info(f"Received command from {client}: {command}")

            result = await gate.execute(command)
            await websocket.send_text(result)
    except WebSocketDisconnect as e:
        logger.info(f"Client disconnected: {client} (code {e.code})")
    except Exception as e:
        logger.error(f"Connection error with {client}: {e}")
        if websocket.application_state != WebSocketState.DISCONNECTED:
            try:
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            except Exception as close_error:
                logger.debug(f"Could not close websocket for {client}: {close_error}")


def create_router(ws_path: str) -> APIRouter:
    """Builds a router serving the command socket at the configured path."""
    router = APIRouter()
    router.add_api_websocket_route(ws_path, command_socket)
    return router
