"""Read-time augmentation of dashboard widgets."""
from __future__ import annotations

from typing import Any, Awaitable, Callable

from teamhub.core.logging import get_logger
from teamhub.core.schema import Widget

logger = get_logger(__name__)

CHART_REPORT_LIMIT = 10

ReportSource = Callable[[str, int], Awaitable[list[dict[str, Any]]]]
VariantResolver = Callable[[dict[str, Any], dict[str, Any]], Awaitable[dict[str, Any]]]


class WidgetResolver:
    """Resolves each widget variant on every read; nothing is cached."""

    def __init__(self, completed_reports: ReportSource) -> None:
        self._completed_reports = completed_reports
        self._variants: dict[str, VariantResolver] = {
            "chart": self._resolve_chart,
            "table": self._resolve_stored,
            "metric": self._resolve_stored,
            "timeline": self._resolve_stored,
            "map": self._resolve_stored,
        }

    async def resolve(self, dashboard: dict[str, Any]) -> list[dict[str, Any]]:
        resolved: list[dict[str, Any]] = []
        for widget in dashboard.get("widgets") or []:
            variant = self._variants[widget["type"]]
            resolved.append(await variant(widget, dashboard))
        return resolved

    async def _resolve_stored(self, widget: dict[str, Any], dashboard: dict[str, Any]) -> dict[str, Any]:
        return Widget.model_validate(widget).to_api()

    async def _resolve_chart(self, widget: dict[str, Any], dashboard: dict[str, Any]) -> dict[str, Any]:
        stored = Widget.model_validate(widget).to_api()
        try:
            reports = await self._completed_reports(dashboard["team"], CHART_REPORT_LIMIT)
        except Exception:
            logger.warning(
                "Chart widget '%s' on dashboard %s fell back to stored data",
                stored["title"],
                dashboard.get("id"),
                exc_info=True,
            )
            return stored
        stored["data"] = {**stored["data"], "reports": reports[:CHART_REPORT_LIMIT]}
        return stored
