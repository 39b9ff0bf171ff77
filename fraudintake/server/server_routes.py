"""Route registration for the intake server."""

from __future__ import annotations


class IntakeServerRoutesMixin:
    """Route registration helper."""

    def _register_routes(self) -> None:
        self._app.router.add_get("/healthz", self._healthz)
        self._app.router.add_post("/api/reports", self._public_api_submit)
        self._app.router.add_get("/api/reports/{report_id}", self._public_api_report)
