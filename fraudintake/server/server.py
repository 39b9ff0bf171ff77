"""Composed intake server class."""

from __future__ import annotations

from .server_config import ServerConfig
from .server_core import IntakeServerCoreMixin
from .server_public_api import IntakeServerPublicApiMixin
from .server_request import IntakeServerRequestMixin
from .server_routes import IntakeServerRoutesMixin


class IntakeServer(
    IntakeServerCoreMixin,
    IntakeServerRequestMixin,
    IntakeServerPublicApiMixin,
    IntakeServerRoutesMixin,
):
    """HTTP front end for report submission, composed from mixins."""


__all__ = ["ServerConfig", "IntakeServer"]
