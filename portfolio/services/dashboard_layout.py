"""Dashboard widget registry and the persisted, ordered widget layout."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

LAYOUT_STORAGE_KEY = "dashboardLayout"


@dataclass(frozen=True, slots=True)
class WidgetSpec:
    id: str
    name: str
    default: bool
    col_span: int


WIDGETS: tuple[WidgetSpec, ...] = (
    WidgetSpec("project_milestones", "Project Milestones", True, 4),
    WidgetSpec("stats", "Stats Overview", True, 4),
    WidgetSpec("project_status", "Project Statuses", True, 2),
    WidgetSpec("team_workload", "Team Workload", True, 2),
    WidgetSpec("projects_by_year", "Projects by Launch Year", False, 4),
    WidgetSpec("projects_by_country", "Projects by Country", False, 2),
    WidgetSpec("projects_by_product", "Projects by Product", False, 2),
)
WIDGET_IDS = frozenset(widget.id for widget in WIDGETS)


@dataclass(frozen=True, slots=True)
class DashboardLayout:
    """Visible widget ids in display order; hidden ids are derived."""

    visible: tuple[str, ...]

    @classmethod
    def default(cls) -> DashboardLayout:
        return cls(visible=tuple(widget.id for widget in WIDGETS if widget.default))

    @classmethod
    def from_ids(cls, widget_ids: Iterable[str]) -> DashboardLayout:
        """Keep known ids once, in the given order."""

        visible: list[str] = []
        for widget_id in widget_ids:
            if widget_id in WIDGET_IDS and widget_id not in visible:
                visible.append(widget_id)
        return cls(visible=tuple(visible))

    @property
    def hidden(self) -> tuple[str, ...]:
        return tuple(widget.id for widget in WIDGETS if widget.id not in self.visible)

    def widgets(self) -> list[WidgetSpec]:
        by_id = {widget.id: widget for widget in WIDGETS}
        return [by_id[widget_id] for widget_id in self.visible]


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class JsonFileKeyValueStore:
    """String values kept in one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable key-value file %s", self.path)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Ignoring non-object key-value file %s", self.path)
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, str)}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            values = self._read()
            values[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(values, ensure_ascii=False, indent=2), encoding="utf-8")


class DashboardLayoutRepository:
    def __init__(self, store: KeyValueStore, key: str = LAYOUT_STORAGE_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> DashboardLayout:
        """Stored layout with unknown ids dropped; defaults when nothing usable is stored."""

        raw = self.store.get(self.key)
        if raw is None:
            return DashboardLayout.default()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to load dashboard layout, using defaults")
            return DashboardLayout.default()
        if not isinstance(parsed, list):
            logger.warning("Stored dashboard layout is not a list, using defaults")
            return DashboardLayout.default()
        return DashboardLayout.from_ids(item for item in parsed if isinstance(item, str))

    def save(self, layout: DashboardLayout) -> DashboardLayout:
        self.store.set(self.key, json.dumps(list(layout.visible)))
        return layout
