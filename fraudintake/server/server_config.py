"""Server configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ServerConfig:
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8080
    trust_forwarded_headers: bool = True
