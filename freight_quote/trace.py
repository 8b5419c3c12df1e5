from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from typing import Any


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(_plain(k)): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(v) for v in value]
    return value


@dataclass
class TraceStep:
    title: str
    summary: str | None = None
    data: Any | None = None
    blocking: bool = False


@dataclass
class RunTrace:
    """Ordered record of what a quote run did, returned to API callers as-is."""
    steps: list[TraceStep] = field(default_factory=list)

    def add(
        self,
        title: str,
        *,
        summary: str | None = None,
        data: Any | None = None,
        blocking: bool = False,
    ) -> None:
        self.steps.append(TraceStep(title=title, summary=summary, data=_plain(data), blocking=blocking))

    @property
    def titles(self) -> list[str]:
        return [s.title for s in self.steps]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": [asdict(s) for s in self.steps]}
