from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import GenericFailure


@dataclass(frozen=True)
class Project:
    identifier: str
    name: str = ""
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        if not isinstance(data, dict):
            raise GenericFailure(f"Malformed project payload: {data!r}")
        identifier = data.get("uuid", data.get("identifier"))
        return cls(
            identifier=str(identifier) if identifier else "",
            name=str(data.get("name") or ""),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.raw is not None:
            return dict(self.raw)
        return {"uuid": self.identifier, "name": self.name}
