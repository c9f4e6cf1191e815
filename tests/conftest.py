"""
Pytest Configuration and Fixtures for Things Sync Tests.

This module provides fixtures, factories, and a mock Things client shared
by the test modules.

Architecture:
    - MockThingsClient: Async in-memory stand-in for ThingsClient
    - Factories: Build ThingsTask / ScannedTask / TrackedTask test data
    - Fixtures: Temporary vault, state store, settings and sync service
"""

from __future__ import annotations

from pathlib import Path

import pytest

from things_sync.constants import ConflictPolicy, ThingsStart, ThingsStatus
from things_sync.exceptions import ThingsScriptError
from things_sync.models import ScannedTask, ThingsTask, TrackedTask
from things_sync.settings import Settings
from things_sync.store import StateStore
from things_sync.sync import SyncService
from things_sync.vault import Vault


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "codec: Task line codec tests")
    config.addinivalue_line("markers", "engine: Reconciliation engine tests")
    config.addinivalue_line("markers", "hysteresis: Missing-record filter tests")
    config.addinivalue_line("markers", "bridge: osascript bridge tests")
    config.addinivalue_line("markers", "sync: Sync cycle tests")
    config.addinivalue_line("markers", "query: Query language tests")
    config.addinivalue_line("markers", "server: MCP tool tests")


# =============================================================================
# ID Generators
# =============================================================================


class IDGenerator:
    """Sequential Things-style uuids for test objects."""

    _counter: int = 0

    @classmethod
    def reset(cls) -> None:
        cls._counter = 0

    @classmethod
    def uuid(cls) -> str:
        cls._counter += 1
        return f"UUID-{cls._counter:04d}"


# =============================================================================
# Test Data Factories
# =============================================================================


class ThingsTaskFactory:
    """Factory for creating ThingsTask test objects."""

    @staticmethod
    def create(
        uuid: str = "UUID-1",
        title: str = "Test task",
        status: ThingsStatus = ThingsStatus.OPEN,
        **kwargs,
    ) -> ThingsTask:
        """Create a ThingsTask with sensible defaults."""
        kwargs.setdefault("start", ThingsStart.ANYTIME)
        return ThingsTask(uuid=uuid, title=title, status=status, **kwargs)

    @staticmethod
    def create_completed(**kwargs) -> ThingsTask:
        return ThingsTaskFactory.create(status=ThingsStatus.COMPLETED, **kwargs)


class ScannedTaskFactory:
    """Factory for creating ScannedTask test objects."""

    @staticmethod
    def create(
        uuid: str | None = "UUID-1",
        title: str = "Test task",
        checked: bool = False,
        file_path: str = "test.md",
        line: int = 0,
        indent: str = "",
    ) -> ScannedTask:
        box = "[x]" if checked else "[ ]"
        marker = f" <!-- things:{uuid} -->" if uuid else ""
        return ScannedTask(
            file_path=file_path,
            line=line,
            checked=checked,
            title=title,
            uuid=uuid,
            raw_line=f"{indent}- {box} {title} #things{marker}",
            indent=indent,
        )


class TrackedTaskFactory:
    """Factory for creating TrackedTask (baseline) test objects."""

    @staticmethod
    def create(
        uuid: str = "UUID-1",
        title: str = "Test task",
        checked: bool = False,
        file_path: str = "test.md",
        line: int = 0,
    ) -> TrackedTask:
        return TrackedTask(
            uuid=uuid,
            file_path=file_path,
            line=line,
            checked=checked,
            title=title,
            last_sync_timestamp=50.0,
        )

    @staticmethod
    def baseline(*tracked: TrackedTask) -> dict[str, TrackedTask]:
        return {t.uuid: t for t in tracked}


# =============================================================================
# Mock Client
# =============================================================================


class MockThingsClient:
    """
    In-memory mock for ThingsClient.

    Holds a dict of to-dos, records every call, and can be told to fail
    specific methods via `should_fail`.
    """

    def __init__(self):
        self.tasks: dict[str, ThingsTask] = {}
        self.call_history: list[tuple[str, tuple, dict]] = []
        self.should_fail: dict[str, Exception | None] = {}
        # Uuids hidden from read_all_tasks, to simulate a flaky snapshot
        self.hidden: set[str] = set()

    def _record_call(self, method: str, args: tuple, kwargs: dict) -> None:
        self.call_history.append((method, args, kwargs))

    def _check_failure(self, method: str) -> None:
        if method in self.should_fail and self.should_fail[method]:
            raise self.should_fail[method]

    def _set_status(self, uuid: str, status: ThingsStatus) -> None:
        if uuid not in self.tasks:
            raise ThingsScriptError(f"Can't get to do id \"{uuid}\"", stderr="not found")
        self.tasks[uuid] = self.tasks[uuid].model_copy(update={"status": status})

    def add(self, task: ThingsTask) -> ThingsTask:
        self.tasks[task.uuid] = task
        return task

    async def read_all_tasks(self) -> list[ThingsTask]:
        self._record_call("read_all_tasks", (), {})
        self._check_failure("read_all_tasks")
        return [t for uuid, t in self.tasks.items() if uuid not in self.hidden]

    async def get_task(self, uuid: str) -> ThingsTask | None:
        self._record_call("get_task", (uuid,), {})
        self._check_failure("get_task")
        return self.tasks.get(uuid)

    async def create_task(self, title: str, project: str | None = None) -> str:
        self._record_call("create_task", (title,), {"project": project})
        self._check_failure("create_task")
        task = ThingsTaskFactory.create(uuid=IDGenerator.uuid(), title=title)
        self.tasks[task.uuid] = task
        return task.uuid

    async def complete_task(self, uuid: str) -> None:
        self._record_call("complete_task", (uuid,), {})
        self._check_failure("complete_task")
        self._set_status(uuid, ThingsStatus.COMPLETED)

    async def reopen_task(self, uuid: str) -> None:
        self._record_call("reopen_task", (uuid,), {})
        self._check_failure("reopen_task")
        self._set_status(uuid, ThingsStatus.OPEN)

    async def update_task_title(self, uuid: str, title: str) -> None:
        self._record_call("update_task_title", (uuid, title), {})
        self._check_failure("update_task_title")
        self.tasks[uuid] = self.tasks[uuid].model_copy(update={"title": title})

    async def update_task_notes(self, uuid: str, notes: str) -> None:
        self._record_call("update_task_notes", (uuid, notes), {})
        self._check_failure("update_task_notes")

    async def update_task_tags(self, uuid: str, tags: list[str]) -> None:
        self._record_call("update_task_tags", (uuid, tags), {})
        self._check_failure("update_task_tags")
        self.tasks[uuid] = self.tasks[uuid].model_copy(update={"tags": sorted(tags)})

    async def update_task_dates(self, uuid: str, start_date=None, deadline=None) -> None:
        self._record_call("update_task_dates", (uuid,), {"start_date": start_date, "deadline": deadline})
        self._check_failure("update_task_dates")

    async def delete_task(self, uuid: str) -> None:
        self._record_call("delete_task", (uuid,), {})
        self._check_failure("delete_task")
        self.tasks.pop(uuid, None)

    def get_calls(self, method_name: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for name, args, kwargs in self.call_history if name == method_name]

    def assert_called(self, method_name: str, times: int | None = None) -> None:
        calls = self.get_calls(method_name)
        if times is not None:
            assert len(calls) == times, f"Expected {method_name} to be called {times} times, got {len(calls)}"
        else:
            assert len(calls) > 0, f"Expected {method_name} to be called at least once"

    def assert_not_called(self, method_name: str) -> None:
        calls = self.get_calls(method_name)
        assert len(calls) == 0, f"Expected {method_name} not to be called, but was called {len(calls)} times"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def id_generator():
    """Reset and provide ID generator."""
    IDGenerator.reset()
    return IDGenerator


@pytest.fixture
def mock_client() -> MockThingsClient:
    return MockThingsClient()


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def vault(vault_dir: Path) -> Vault:
    return Vault(vault_dir)


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "state" / "state.json")


@pytest.fixture
def settings(vault_dir: Path, tmp_path: Path) -> Settings:
    return Settings(
        vault_path=vault_dir,
        state_path=tmp_path / "state" / "state.json",
        sync_interval_seconds=0,
        conflict_resolution=ConflictPolicy.REMOTE_WINS,
        _env_file=None,
    )


@pytest.fixture
def service(mock_client: MockThingsClient, vault: Vault, store: StateStore, settings: Settings) -> SyncService:
    return SyncService(mock_client, vault, store, settings)  # type: ignore[arg-type]


@pytest.fixture
def things_factory() -> type[ThingsTaskFactory]:
    return ThingsTaskFactory


@pytest.fixture
def scanned_factory() -> type[ScannedTaskFactory]:
    return ScannedTaskFactory


@pytest.fixture
def tracked_factory() -> type[TrackedTaskFactory]:
    return TrackedTaskFactory
