"""
Service configuration read from the environment
"""
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel


DEFAULT_PORT = 5000
DEFAULT_ALLOWED_ORIGIN = "https://nepchat-frontend.vercel.app"

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class ServiceConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    # Origin allowed to open the WebSocket and call the HTTP API
    allowed_origin: str = DEFAULT_ALLOWED_ORIGIN
    log_level: LogLevel = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServiceConfig":
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=env.get("PORT", DEFAULT_PORT),
            allowed_origin=env.get("CORS_ORIGIN", DEFAULT_ALLOWED_ORIGIN),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
