"""Remote task records and the result of listing them.

Tasks are owned by the Webvizio service; this process only reads them and
asks the service to close them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import GenericFailure


@dataclass(frozen=True)
class Task:
    identifier: str
    number: int = 0
    title: str = ""
    priority: str = ""
    created_at: str = ""
    execute_at: Optional[str] = None
    tags: Optional[Tuple[str, ...]] = None
    # payload as received; emitted unchanged by to_dict
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        if not isinstance(data, dict):
            raise GenericFailure(f"Malformed task payload: {data!r}")
        identifier = data.get("uuid", data.get("identifier"))
        try:
            number = int(data.get("number") or 0)
        except (TypeError, ValueError):
            number = 0
        tags = data.get("tags")
        return cls(
            identifier=str(identifier) if identifier else "",
            number=number,
            title=str(data.get("title") or ""),
            priority=str(data.get("priority") or ""),
            created_at=str(data.get("createdAt") or ""),
            execute_at=data.get("executeAt") or None,
            tags=tuple(str(t) for t in tags) if isinstance(tags, list) else None,
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.raw is not None:
            return dict(self.raw)
        out: Dict[str, Any] = {
            "uuid": self.identifier,
            "number": self.number,
            "title": self.title,
            "priority": self.priority,
            "createdAt": self.created_at,
        }
        if self.execute_at is not None:
            out["executeAt"] = self.execute_at
        if self.tags is not None:
            out["tags"] = list(self.tags)
        return out


@dataclass(frozen=True)
class TasksFound:
    tasks: List[Task]


@dataclass(frozen=True)
class NoProjectSelected:
    """The service has no current project for this API key."""


TaskListing = Union[TasksFound, NoProjectSelected]
