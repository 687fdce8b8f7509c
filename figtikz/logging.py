from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .geometry import Point
from .records import Guid


def log_duplicate_guids(guids: Sequence[Guid], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"#{idx:04d} guid={guid}" for idx, guid in enumerate(guids, start=1)]
    destination.write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")


@dataclass
class RoutingTraceLogger:
    """Collects one block per connector describing how it was routed."""

    destination: Path

    def __post_init__(self) -> None:
        self._lines: List[str] = []

    def connector(
        self,
        *,
        guid: Guid,
        route: str,
        start: Point | None = None,
        end: Point | None = None,
        note: str | None = None,
    ) -> None:
        header = f"Connector {guid} route={route}"
        if start is not None and end is not None:
            header += f" start=({start.x:.6f},{start.y:.6f}) end=({end.x:.6f},{end.y:.6f})"
        if note:
            header += f" | {note}"
        self._lines.append(header)

    def detail(self, message: str) -> None:
        self._lines.append(f"  {message}")

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def flush(self) -> None:
        if not self._lines:
            return
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        text = "\n".join(self._lines) + "\n"
        self.destination.write_text(text, encoding="utf-8")
