"""Docker event records."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

CONTAINER_EVENT_TYPE = "container"


@dataclass(frozen=True)
class ContainerEvent:
    """A single event from the Docker daemon's event stream."""

    type: str
    action: str
    time: int  # Seconds since epoch
    actor_id: str = ""
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def name(self) -> str:
        """Container name from the actor attributes, empty if absent."""
        return self.attributes.get("name", "")

    @property
    def verb(self) -> str:
        """Action without its argument (``exec_start: sh -c ls`` -> ``exec_start``)."""
        return self.action.split(":", 1)[0]

    @property
    def is_container(self) -> bool:
        return self.type == CONTAINER_EVENT_TYPE

    @classmethod
    def from_docker(cls, data: Mapping[str, Any]) -> "ContainerEvent":
        """Build an event from a decoded Docker events API message.

        Older daemons only send ``status``/``id``/``from``; those messages get
        an empty type and use ``status`` as the action.
        """
        actor = data.get("Actor") or {}
        return cls(
            type=data.get("Type") or "",
            action=data.get("Action") or data.get("status") or "",
            time=int(data.get("time") or 0),
            actor_id=actor.get("ID") or data.get("id") or "",
            attributes=actor.get("Attributes") or {},
        )
