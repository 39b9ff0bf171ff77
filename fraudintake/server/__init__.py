"""aiohttp front end for report intake."""

from .server import IntakeServer, ServerConfig

__all__ = ["IntakeServer", "ServerConfig"]
