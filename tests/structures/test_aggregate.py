"""Tests for aggregate membership, queries and member state.

Critical Invariants:
- A record is a member at most once
- Members know which aggregates hold them
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from restrecord import Aggregate, Record
from restrecord.core.errors import InvalidRecordError

from conftest import StrictTask, Task, Tasks


@pytest.fixture
def tasks(context):
    return Tasks(
        [
            {"id": 1, "title": "b", "done": True},
            {"id": 2, "title": "a", "done": False},
            {"id": 3, "title": "c", "done": True},
        ],
        context=context,
    )


class TestMembership:
    def test_plain_data_becomes_records(self, tasks):
        assert tasks.size() == 3
        assert all(isinstance(record, Task) for record in tasks)
        assert tasks.first().title == "b"

    def test_default_record_class(self, context):
        aggregate = Aggregate([{"x": 1}], context=context)

        assert type(aggregate.first()) is Record
        assert aggregate.first().x == 1

    def test_add_is_idempotent(self, context):
        """CRITICAL: Adding a member again changes nothing."""
        tasks = Tasks(context=context)
        task = Task(context=context)
        events = []
        tasks.on("add", events.append)

        assert tasks.add(task) is task
        assert tasks.add(task) is None

        assert tasks.size() == 1
        assert len(events) == 1
        assert events[0]["record"] is task

    def test_add_list_returns_added_records(self, context):
        tasks = Tasks(context=context)
        task = Task(context=context)
        tasks.add(task)

        added = tasks.add([task, {"title": "new"}])

        assert len(added) == 1
        assert added[0].title == "new"
        assert tasks.size() == 2

    def test_add_invalid(self, context):
        with pytest.raises(InvalidRecordError):
            Tasks(context=context).add(42)

    def test_members_know_their_aggregates(self, tasks, context):
        other = Tasks(context=context)
        record = tasks.first()
        other.add(record)

        assert set(agg.uid for agg in record.aggregates) == {tasks.uid, other.uid}

        tasks.remove(record)
        assert record.aggregates == [other]

    def test_remove(self, tasks, context):
        record = tasks.first()
        events = []
        tasks.on("remove", events.append)

        assert tasks.remove(record) is record
        assert tasks.remove(record) is None
        assert tasks.remove(Task(context=context)) is None
        assert tasks.size() == 2
        assert len(events) == 1

    def test_remove_by_filter(self, tasks):
        removed = tasks.remove({"done": True})

        assert [record.id for record in removed] == [1, 3]
        assert tasks.get_identifiers() == [2]

        assert tasks.remove(lambda record: record.id == 2)[0].title == "a"
        assert tasks.is_empty()

    def test_remove_invalid(self, tasks):
        with pytest.raises(InvalidRecordError):
            tasks.remove(None)
        with pytest.raises(InvalidRecordError):
            tasks.remove(42)

    def test_replace_and_clear(self, tasks, context):
        old = tasks.first()

        tasks.replace([{"id": 9}])
        assert tasks.get_identifiers() == [9]
        assert old.aggregates == []

        tasks.set_state("fatal", True)
        tasks.clear()
        assert tasks.is_empty()
        assert tasks.fatal is False

    def test_empty_aggregate_is_falsy_but_usable(self, context):
        tasks = Tasks(context=context)
        task = Task(aggregate=tasks, context=context)

        assert not tasks
        assert task.aggregates == [tasks]


class TestQueries:
    def test_find_where_index_of(self, tasks):
        assert tasks.find({"title": "a"}).id == 2
        assert tasks.find({"title": "z"}) is None
        assert [record.id for record in tasks.where(lambda record: record.done)] == [1, 3]
        assert tasks.index_of({"id": 3}) == 2
        assert tasks.index_of(tasks.last()) == 2
        assert tasks.has({"id": 2})
        assert not tasks.has({"id": 4})

    def test_filter_returns_clone(self, tasks):
        done = tasks.filter({"done": True})

        assert isinstance(done, Tasks)
        assert done.uid != tasks.uid
        assert done.get_identifiers() == [1, 3]
        assert tasks.size() == 3
        assert done.first() in tasks

    def test_map_reduce_sum_count(self, tasks):
        assert tasks.map(lambda record: record.title) == ["b", "a", "c"]
        assert tasks.reduce(lambda total, record: total + record.id, 0) == 6
        assert tasks.sum("id") == 6
        assert tasks.count("done") == {True: 2, False: 1}

    def test_sort(self, tasks):
        tasks.sort("title")
        assert tasks.map(lambda record: record.title) == ["a", "b", "c"]

        tasks.sort(lambda record: record.id, reverse=True)
        assert tasks.get_identifiers() == [3, 2, 1]

    def test_shift_and_pop(self, tasks):
        assert tasks.shift().id == 1
        assert tasks.pop().id == 3
        assert tasks.get_identifiers() == [2]
        assert Tasks().shift() is None

    def test_to_json(self, tasks):
        assert tasks.to_json()[0] == {"id": 1, "title": "b", "done": True, "tags": []}

    def test_aggregate_attributes(self, context):
        class Filtered(Tasks):
            def defaults(self):
                return {"status": "open"}

        tasks = Filtered(attributes={"owner": "ada"}, context=context)
        tasks.set("status", "closed")

        assert tasks.get_attributes() == {"status": "closed", "owner": "ada"}
        assert tasks.clone().get("owner") == "ada"


class TestMemberState:
    def test_sync_and_reset(self, tasks):
        for record in tasks:
            record.title = "changed"

        tasks.reset("title")
        assert tasks.map(lambda record: record.title) == ["b", "a", "c"]

        for record in tasks:
            record.title = "changed"
        tasks.sync()
        assert all(record.changed() == [] for record in tasks)

    @pytest.mark.asyncio
    async def test_validate(self, context):
        tasks = Tasks([StrictTask({"title": "ok"}, context=context)], context=context)
        assert await tasks.validate() == []

        tasks.add(StrictTask(context=context))
        assert await tasks.validate() == [{}, {"title": ["Required"]}]
        assert tasks.get_errors() == [{}, {"title": ["Required"]}]

        tasks.clear_errors()
        assert tasks.get_errors() == [{}, {}]


@settings(max_examples=50)
@given(titles=st.lists(st.text(max_size=5), max_size=10))
def test_adding_twice_keeps_one_of_each(titles):
    tasks = Tasks()
    records = [Task({"title": title}) for title in titles]

    tasks.add(records)
    tasks.add(records)

    assert tasks.size() == len(records)
    assert [record.uid for record in tasks] == [record.uid for record in records]
