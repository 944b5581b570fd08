"""
Stranger Relay Service - Main Application
Matches anonymous chat clients in pairs and relays their signaling and chat traffic
"""
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from stranger_relay.api_endpoints import api_stats, health, read_root
from stranger_relay.client_websocket import websocket_chat_client
from stranger_relay.config import ServiceConfig
from stranger_relay.delivery import Outboxes
from stranger_relay.session import SessionManager

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def create_app(config: Optional[ServiceConfig] = None) -> FastAPI:
    config = config or ServiceConfig.from_env()

    app = FastAPI(title="Stranger Relay Service")
    app.state.config = config
    app.state.session = SessionManager()
    app.state.outboxes = Outboxes()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allowed_origin],
        allow_methods=["GET", "POST"],
    )

    # Register HTTP endpoints
    app.get("/")(read_root)
    app.get("/health")(health)
    app.get("/api/stats")(api_stats)

    # Register WebSocket endpoints
    @app.websocket("/ws")
    async def ws_chat_client(websocket: WebSocket):
        await websocket_chat_client(websocket, app.state.session, app.state.outboxes, config.allowed_origin)

    return app


def main() -> None:
    config = ServiceConfig.from_env()
    configure_logging(config.log_level)
    logger.info(f"Server is running on port {config.port}, allowing origin {config.allowed_origin}")
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
