"""Tests for the record context: binding, allocator and transport."""

import pytest

from restrecord import (
    DirectBinding,
    HttpxTransport,
    RecordContext,
    UidAllocator,
    get_default_context,
    set_default_context,
)

from conftest import Task, Tasks


class RecordingBinding(DirectBinding):
    def __init__(self):
        self.writes = []

    def set(self, target, key, value):
        self.writes.append((type(target).__name__, key))
        super().set(target, key, value)


class Holder:
    pass


def test_direct_binding_targets():
    binding = DirectBinding()
    mapping, sequence, holder = {}, [0, 0], Holder()

    binding.set(mapping, "a", 1)
    binding.set(sequence, "1", 2)
    binding.set(holder, "flag", True)
    assert (mapping, sequence, holder.flag) == ({"a": 1}, [0, 2], True)

    binding.delete(mapping, "a")
    binding.delete(mapping, "missing")
    binding.delete(sequence, "0")
    binding.delete(holder, "flag")
    assert (mapping, sequence, hasattr(holder, "flag")) == ({}, [2], False)


def test_every_state_write_goes_through_the_binding():
    binding = RecordingBinding()
    context = RecordContext(binding=binding)
    task = Task(context=context)
    binding.writes.clear()

    task.title = "a"
    task.set("meta.author", "ada")
    task.set("meta.author", "bob")
    task.set_state("saving", True)
    task.sync()
    Tasks(context=context).add(task)

    assert ("dict", "title") in binding.writes
    assert ("dict", "meta") in binding.writes
    assert ("dict", "author") in binding.writes
    assert ("Task", "saving") in binding.writes
    assert ("Task", "_reference") in binding.writes
    assert ("Tasks", "records") in binding.writes


def test_transport_created_lazily_from_settings(monkeypatch):
    monkeypatch.setenv("RESTRECORD_HTTP_BASE_URL", "https://api.test")
    context = RecordContext()

    assert context.transport is None
    transport = context.get_transport()

    assert isinstance(transport, HttpxTransport)
    assert context.get_transport() is transport


def test_replace_keeps_other_collaborators(transport):
    context = RecordContext(transport=transport)
    allocator = UidAllocator(scope="other")

    replaced = context.replace(allocator=allocator)

    assert replaced.transport is transport
    assert replaced.allocator is allocator
    assert context.allocator is not allocator


@pytest.fixture
def restore_default_context():
    yield
    set_default_context(None)


def test_default_context(restore_default_context, context):
    set_default_context(context)

    assert Task().context is context
    assert Task().uid.scope == "test"

    set_default_context(None)
    assert get_default_context() is not context
