from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from portfolio.services.dashboard_layout import (
    LAYOUT_STORAGE_KEY,
    DashboardLayout,
    DashboardLayoutRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)

DEFAULT_VISIBLE = ("project_milestones", "stats", "project_status", "team_workload")


def test_default_layout_shows_default_widgets_in_registry_order() -> None:
    layout = DashboardLayout.default()

    assert layout.visible == DEFAULT_VISIBLE
    assert layout.hidden == ("projects_by_year", "projects_by_country", "projects_by_product")
    assert [widget.col_span for widget in layout.widgets()] == [4, 4, 2, 2]


def test_repository_returns_defaults_when_nothing_is_stored() -> None:
    repo = DashboardLayoutRepository(InMemoryKeyValueStore())

    assert repo.load() == DashboardLayout.default()


def test_saved_layout_round_trips_and_drops_unknown_ids() -> None:
    store = InMemoryKeyValueStore()
    repo = DashboardLayoutRepository(store)

    repo.save(DashboardLayout.from_ids(["projects_by_year", "legacy_widget", "stats", "stats"]))
    store.set(LAYOUT_STORAGE_KEY, json.dumps(json.loads(store.get(LAYOUT_STORAGE_KEY) or "[]") + ["gone"]))

    assert repo.load().visible == ("projects_by_year", "stats")


def test_corrupt_layout_falls_back_to_defaults(caplog: pytest.LogCaptureFixture) -> None:
    store = InMemoryKeyValueStore()
    store.set(LAYOUT_STORAGE_KEY, "{not json")
    repo = DashboardLayoutRepository(store)

    with caplog.at_level(logging.WARNING, logger="portfolio.services.dashboard_layout"):
        layout = repo.load()

    assert layout == DashboardLayout.default()
    assert "Failed to load dashboard layout" in caplog.text


def test_non_list_layout_falls_back_to_defaults() -> None:
    store = InMemoryKeyValueStore()
    store.set(LAYOUT_STORAGE_KEY, json.dumps({"visible": ["stats"]}))

    assert DashboardLayoutRepository(store).load() == DashboardLayout.default()


def test_empty_saved_layout_stays_empty() -> None:
    repo = DashboardLayoutRepository(InMemoryKeyValueStore())

    repo.save(DashboardLayout.from_ids([]))

    assert repo.load().visible == ()


def test_json_file_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "state" / "layout.json"
    DashboardLayoutRepository(JsonFileKeyValueStore(path)).save(DashboardLayout.from_ids(["team_workload"]))

    reloaded = DashboardLayoutRepository(JsonFileKeyValueStore(path)).load()

    assert reloaded.visible == ("team_workload",)
    assert json.loads(path.read_text(encoding="utf-8")) == {LAYOUT_STORAGE_KEY: '["team_workload"]'}


def test_json_file_store_ignores_unreadable_file(tmp_path: Path) -> None:
    path = tmp_path / "layout.json"
    path.write_text("garbage", encoding="utf-8")

    assert JsonFileKeyValueStore(path).get(LAYOUT_STORAGE_KEY) is None
    assert DashboardLayoutRepository(JsonFileKeyValueStore(path)).load() == DashboardLayout.default()
