"""Prometheus HTTP API queries."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from kopsai.core.errors import TaskValidationError

from .http import HTTPPlugin


class PrometheusAction(str, Enum):
    QUERY = "query"
    QUERY_RANGE = "query_range"
    ALERTS = "alerts"
    TARGETS = "targets"
    RULES = "rules"


class PrometheusAgent(HTTPPlugin):
    """Query Prometheus metrics, alerts, targets and rules."""

    name = "prometheus_agent"
    description = "Query Prometheus metrics and generate reports"
    version = "1.0.0"

    def base_url(self) -> str | None:
        return self.config.prometheus_url

    def _probe(self) -> bool:
        if not self.base_url():
            return False
        self._get_json("/api/v1/query", {"query": "up"})
        return True

    def execute(self, action: Any, options: Mapping[str, Any]) -> dict[str, Any]:
        prom_action = self.parse_action(action, PrometheusAction)

        if prom_action in (PrometheusAction.QUERY, PrometheusAction.QUERY_RANGE):
            query = options.get("query")
            if not query:
                raise TaskValidationError("prometheus query requires 'query'")
            return self.query(
                query,
                start=options.get("start"),
                end=options.get("end"),
                step=options.get("step"),
                ranged=prom_action is PrometheusAction.QUERY_RANGE,
            )
        if prom_action is PrometheusAction.ALERTS:
            data = self._get_json("/api/v1/alerts")
            return {"alerts": data["data"]["alerts"], "status": data["status"]}
        if prom_action is PrometheusAction.TARGETS:
            data = self._get_json("/api/v1/targets")
            return {"targets": data["data"]["activeTargets"], "status": data["status"]}
        data = self._get_json("/api/v1/rules")
        return {"rules": data["data"]["groups"], "status": data["status"]}

    def query(
        self,
        query: str,
        start: Any = None,
        end: Any = None,
        step: Any = None,
        ranged: bool = False,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"query": query}
        if start is not None:
            params["start"] = start
        if end is not None:
            params["end"] = end
        if ranged:
            params["step"] = step or "60s"
        path = "/api/v1/query_range" if ranged else "/api/v1/query"
        data = self._get_json(path, params)
        return {"query": query, "result": data["data"]["result"], "status": data["status"]}
