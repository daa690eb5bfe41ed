"""Tests for record fetch, save and delete through a fake transport.

Critical Invariants:
- Preflight failures send nothing
- A request already in flight is never sent twice
- Failure handlers run before the error reaches the caller
"""

import asyncio

import pytest

from restrecord import Record
from restrecord.core.errors import (
    IdentifierConflictError,
    MissingRouteError,
    RequestError,
    ResponseError,
    ValidationError,
)

from conftest import StrictTask, Task, Tasks


def record_events(resource, *names):
    events = []
    for name in names:
        resource.on(name, lambda context, name=name: events.append((name, context.get("error"))))
    return events


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_assigns_and_syncs(self, context, transport):
        task = Task({"id": 1}, context=context)
        transport.respond(200, {"id": 1, "title": "remote", "done": True})
        events = record_events(task, "fetch")

        response = await task.fetch()

        assert response.get_status() == 200
        assert transport.last.url == "/tasks/1"
        assert transport.last.method == "GET"
        assert task.title == "remote"
        assert task.changed() == []
        assert task.loading is False
        assert events == [("fetch", None)]

    @pytest.mark.asyncio
    async def test_fetch_without_data_is_fatal(self, context, transport):
        task = Task({"id": 1}, context=context)
        transport.respond(200, None)

        with pytest.raises(ResponseError):
            await task.fetch()

        assert task.fatal is True
        assert task.loading is False

    @pytest.mark.asyncio
    async def test_fetch_failure(self, context, transport):
        task = Task({"id": 1}, context=context)
        transport.fail(None)
        events = record_events(task, "fetch")

        with pytest.raises(RequestError):
            await task.fetch()

        assert task.fatal is True
        assert task.loading is False
        assert events[0][0] == "fetch"
        assert isinstance(events[0][1], RequestError)

    @pytest.mark.asyncio
    async def test_concurrent_fetch_sends_one_request(self, context, transport):
        """CRITICAL: A second fetch while loading is skipped."""
        task = Task({"id": 1}, context=context)
        transport.gate = asyncio.Event()
        transport.respond(200, {"id": 1, "title": "remote"})

        first = asyncio.create_task(task.fetch())
        await asyncio.sleep(0)
        assert task.loading is True

        assert await task.fetch() is None

        transport.gate.set()
        assert (await first).get_status() == 200
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_missing_route(self, context, transport):
        record = Record({"id": 1}, context=context)

        with pytest.raises(MissingRouteError, match="Invalid or missing route 'fetch'"):
            await record.fetch()

        assert record.loading is False
        assert record.fatal is True
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_overrides_merge_into_defaults(self, context, transport):
        class Scoped(Task):
            def get_default_headers(self):
                return {"Accept": "application/json", "X-Tenant": "a"}

            def get_fetch_query(self):
                return {"expand": "owner"}

        task = Scoped({"id": 1}, context=context)
        transport.respond(200, {"id": 1})

        await task.fetch(url="/custom", headers={"X-Tenant": "b"}, params={"fields": "title"})

        assert transport.last.url == "/custom"
        assert transport.last.headers == {"Accept": "application/json", "X-Tenant": "b"}
        assert transport.last.params == {"expand": "owner", "fields": "title"}


class TestSave:
    @pytest.mark.asyncio
    async def test_new_record_receives_identifier(self, context, transport):
        task = Task({"title": "a"}, context=context)
        assert task.is_new()
        transport.respond(200, {"id": 5})
        events = record_events(task, "save", "create", "update")

        await task.save()

        assert transport.last.url == "/tasks"
        assert transport.last.method == "POST"
        assert transport.last.data == {"id": None, "title": "a", "done": False, "tags": []}
        assert task.identifier() == 5
        assert not task.is_new()
        assert task.changed() == []
        assert task.saving is False
        assert events == [("save", None), ("create", None)]

    @pytest.mark.asyncio
    async def test_existing_record_updates(self, context, transport):
        task = Task({"id": 5, "title": "a"}, context=context)
        task.title = "b"
        transport.respond(200, {"title": "b", "done": True})
        events = record_events(task, "create", "update")

        await task.save()

        assert transport.last.url == "/tasks/5"
        assert transport.last.method == "POST"
        assert task.done is True
        assert task.changed() == []
        assert events == [("update", None)]

    @pytest.mark.asyncio
    async def test_scalar_response_is_identifier(self, context, transport):
        task = Task({"title": "a"}, context=context)
        transport.respond(201, 7)

        await task.save()

        assert task.identifier() == 7
        assert task.changed() == []

    @pytest.mark.asyncio
    async def test_patch_sends_changed_attributes_only(self, context, transport):
        task = Task({"id": 5, "title": "a", "done": False}, options={"patch": True}, context=context)
        task.title = "b"

        await task.save()

        assert transport.last.method == "PATCH"
        assert transport.last.url == "/tasks/5"
        assert transport.last.data == {"id": 5, "title": "b"}

    @pytest.mark.asyncio
    async def test_identifier_conflict(self, context, transport):
        task = Task({"id": 5}, context=context)
        transport.respond(200, 6)

        with pytest.raises(IdentifierConflictError):
            await task.save()

        assert task.identifier() == 5
        assert task.fatal is True
        assert task.saving is False

    @pytest.mark.asyncio
    async def test_identifier_overwrite(self, context, transport):
        task = Task({"id": 5}, options={"overwrite_identifier": True}, context=context)
        transport.respond(200, 6)

        await task.save()

        assert task.identifier() == 6

    @pytest.mark.asyncio
    async def test_invalid_response_data(self, context, transport):
        task = Task({"title": "a"}, context=context)
        transport.respond(200, True)

        with pytest.raises(ResponseError):
            await task.save()

        assert task.fatal is True

    @pytest.mark.asyncio
    async def test_validation_failure_sends_nothing(self, context, transport):
        """CRITICAL: Invalid records are never sent."""
        task = StrictTask({"title": ""}, context=context)

        with pytest.raises(ValidationError) as info:
            await task.save()

        assert info.value.get_validation_errors() == {"title": ["Required"]}
        assert task.saving is False
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_rule_error_does_not_leave_record_saving(self, context, transport):
        """CRITICAL: A raising rule must not block every later save."""
        calls = []

        def flaky(value, attribute, record):
            calls.append(value)
            if len(calls) == 1:
                raise RuntimeError("rule crashed")
            return True

        class Flaky(Task):
            def validation(self):
                return {"title": [flaky]}

        task = Flaky(context=context)
        task.title = "b"

        with pytest.raises(RuntimeError):
            await task.save()

        assert task.saving is False
        assert transport.requests == []

        await task.save()

        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_mutations_applied_before_save(self, context, transport):
        class Trimmed(Task):
            def mutations(self):
                return {"title": str.strip}

        task = Trimmed(context=context)
        task.set("title", "  a  ")

        await task.save()

        assert transport.last.data["title"] == "a"

    @pytest.mark.asyncio
    async def test_unchanged_save_is_redundant(self, context, transport):
        task = Task({"id": 5}, options={"save_unchanged": False}, context=context)
        events = record_events(task, "save", "update")

        assert await task.save() is None

        assert transport.requests == []
        assert events == [("save", None)]

    @pytest.mark.asyncio
    async def test_save_in_flight_is_skipped(self, context, transport):
        task = Task(context=context)
        task.set_state("saving", True)

        assert await task.save() is None
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_backend_validation_errors(self, context, transport):
        task = Task({"title": "a"}, context=context)
        transport.fail(422, {"title": ["Taken"]})
        events = record_events(task, "save")

        with pytest.raises(RequestError):
            await task.save()

        assert task.errors == {"title": ["Taken"]}
        assert task.fatal is False
        assert task.saving is False
        assert isinstance(events[0][1], RequestError)

    @pytest.mark.asyncio
    async def test_custom_validation_status(self, context, transport):
        task = Task(options={"validation_error_status": 400}, context=context)
        transport.fail(400, {"title": ["Taken"]})

        with pytest.raises(RequestError):
            await task.save()

        assert task.errors == {"title": ["Taken"]}

    @pytest.mark.asyncio
    async def test_malformed_validation_errors_are_fatal(self, context, transport):
        task = Task(context=context)
        transport.fail(422, ["not", "an", "object"])

        with pytest.raises(ResponseError):
            await task.save()

        assert task.fatal is True
        assert task.saving is False

    @pytest.mark.asyncio
    async def test_server_error_is_fatal(self, context, transport):
        task = Task(context=context)
        task.set_errors({"title": ["old"]})
        transport.fail(500)

        with pytest.raises(RequestError):
            await task.save()

        assert task.fatal is True
        assert task.errors == {}

    @pytest.mark.asyncio
    async def test_saved_record_joins_registered_aggregates(self, context, transport):
        tasks = Tasks(context=context)
        task = Task({"title": "a"}, aggregate=tasks, context=context)
        assert task not in tasks
        transport.respond(201, {"id": 1})

        await task.save()

        assert task in tasks
        assert tasks.size() == 1


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_clears_and_leaves_aggregates(self, context, transport):
        tasks = Tasks(context=context)
        task = tasks.add({"id": 3, "title": "a"})
        events = record_events(task, "delete")

        await task.delete()

        assert transport.last.method == "DELETE"
        assert transport.last.url == "/tasks/3"
        assert task.title == ""
        assert task.deleting is False
        assert tasks.is_empty()
        assert task.aggregates == []
        assert events == [("delete", None)]

    @pytest.mark.asyncio
    async def test_delete_failure(self, context, transport):
        task = Task({"id": 3, "title": "a"}, context=context)
        transport.fail(500)

        with pytest.raises(RequestError):
            await task.delete()

        assert task.title == "a"
        assert task.fatal is True
        assert task.deleting is False
