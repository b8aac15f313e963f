"""Explicit agent context passed to the registry, plugins and runner."""

from dataclasses import dataclass, field
from typing import cast

from kopsai.config.models import AgentConfig

from .log import StructuredLogger


@dataclass
class AgentContext:
    """Configuration and logger shared by one agent process.

    Created once at start-up and handed down; nothing in the core looks
    these up globally. ``logger`` defaults to a logger named for the
    configured service.
    """

    config: AgentConfig = field(default_factory=AgentConfig)
    logger: StructuredLogger | None = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = StructuredLogger(service=self.config.service_name)

    def get_logger(self, suffix: str) -> StructuredLogger:
        """Return a child logger under the context's logger."""
        return cast(StructuredLogger, self.logger).child(suffix)
