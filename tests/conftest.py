"""Shared test fixtures."""

import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

import asyncio
from typing import Any

from restrecord import Aggregate, Record, RecordContext, UidAllocator, rules
from restrecord.core.errors import RequestError
from restrecord.http import ProxyResponse, RequestDescriptor


class FakeTransport:
    """In-memory transport that replays queued outcomes in order.

    Each queued outcome is a ``ProxyResponse`` to return or a
    ``(status, data)`` pair to fail with as a ``RequestError``. Set ``gate`` to
    an ``asyncio.Event`` to hold requests until the test releases them.
    """

    def __init__(self) -> None:
        self.requests: list[RequestDescriptor] = []
        self.outcomes: list[Any] = []
        self.gate: asyncio.Event | None = None

    def respond(self, status: int = 200, data: Any = None, headers: dict[str, str] | None = None) -> None:
        self.outcomes.append(ProxyResponse(status, data, headers))

    def fail(self, status: int | None = 500, data: Any = None) -> None:
        self.outcomes.append(("fail", status, data))

    async def send(self, request: RequestDescriptor) -> ProxyResponse:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if self.outcomes else ProxyResponse(200, None)
        if isinstance(outcome, tuple):
            _, status, data = outcome
            response = ProxyResponse(status, data) if status is not None else None
            raise RequestError(RuntimeError(f"Request failed with status {status}"), response)
        return outcome

    @property
    def last(self) -> RequestDescriptor:
        return self.requests[-1]


class Task(Record):
    def defaults(self):
        return {"id": None, "title": "", "done": False, "tags": []}

    def routes(self):
        return {
            "fetch": "/tasks/{id}",
            "create": "/tasks",
            "update": "/tasks/{id}",
            "delete": "/tasks/{id}",
        }


class StrictTask(Task):
    def validation(self):
        return {"title": [rules.required]}


class Tasks(Aggregate):
    def options(self):
        return {"record": Task}

    def routes(self):
        return {"fetch": "/tasks", "save": "/tasks/bulk", "delete": "/tasks"}


@pytest.fixture
def transport():
    """Fresh FakeTransport."""
    return FakeTransport()


@pytest.fixture
def context(transport):
    """Context with a fake transport and a deterministic allocator."""
    return RecordContext(transport=transport, allocator=UidAllocator(scope="test"))


@pytest.fixture
def task_cls():
    return Task


@pytest.fixture
def strict_task_cls():
    return StrictTask


@pytest.fixture
def tasks_cls():
    return Tasks
