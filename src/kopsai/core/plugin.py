"""Abstract base class for kops-ai plugins."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, TypeVar

from kopsai.config.models import AgentConfig

from .context import AgentContext
from .errors import UnknownAction
from .log import StructuredLogger

A = TypeVar("A", bound=Enum)


@dataclass(frozen=True)
class PluginInfo:
    """Descriptor of a plugin, with availability computed at creation."""

    name: str
    description: str
    version: str
    available: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Plugin(ABC):
    """Base class for all capability modules.

    Subclasses set ``name``, ``description`` and ``version`` as class
    attributes, implement :meth:`execute`, and override :meth:`_probe`
    when readiness depends on an external tool, endpoint or credential.
    """

    # Override in subclasses
    name: str = ""
    description: str = ""
    version: str = "1.0.0"

    def __init__(self, context: AgentContext | None = None) -> None:
        if not self.name:
            raise ValueError(f"{type(self).__name__} must define a non-empty name")
        self.context = context or AgentContext()

    @property
    def config(self) -> AgentConfig:
        return self.context.config

    @property
    def logger(self) -> StructuredLogger:
        return self.context.get_logger(f"plugins.{self.name}")

    @abstractmethod
    def execute(self, action: Any, options: Mapping[str, Any]) -> Any:
        """Perform ``action`` with ``options`` and return the result.

        Faults (network errors, malformed input, missing credentials)
        propagate to the caller unchanged.
        """
        raise NotImplementedError(f"{type(self).__name__} must implement execute()")

    def available(self) -> bool:
        """Readiness probe. Never raises; probe faults count as unavailable."""
        try:
            return bool(self._probe())
        except Exception as e:
            self.logger.debug("Availability probe failed", plugin=self.name, error=str(e))
            return False

    def _probe(self) -> bool:
        """Check readiness. Override in subclasses; may raise."""
        return True

    def info(self) -> PluginInfo:
        """Return the plugin descriptor, probing availability now."""
        return PluginInfo(
            name=self.name,
            description=self.description,
            version=self.version,
            available=self.available(),
        )

    def parse_action(self, action: Any, actions: type[A]) -> A:
        """Map ``action`` onto the plugin's action enum.

        Raises:
            UnknownAction: If ``action`` is not a member of ``actions``.
        """
        if isinstance(action, actions):
            return action
        if isinstance(action, Enum):
            action = action.value
        try:
            return actions(str(action))
        except ValueError:
            raise UnknownAction(
                self.name, action, [a.value for a in actions]
            ) from None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} version={self.version!r}>"
