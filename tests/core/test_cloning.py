"""Tests for deep copy, deep equality and serialization."""

from hypothesis import given
from hypothesis import strategies as st

from restrecord.core.cloning import Cloneable, Serializable, deep_copy, deep_equal, serialize

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=5),
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(max_size=3), children, max_size=3),
    max_leaves=10,
)


class Node:
    """Minimal cloneable, serializable value."""

    def __init__(self, value):
        self.value = value
        self.clones = 0

    def clone(self):
        self.clones += 1
        return Node(deep_copy(self.value))

    def to_json(self):
        return {"value": self.value}


def test_node_satisfies_protocols():
    assert isinstance(Node(1), Cloneable)
    assert isinstance(Node(1), Serializable)


@given(value=json_values)
def test_copy_is_equal(value):
    assert deep_equal(deep_copy(value), value)


def test_copy_shares_no_mutable_objects():
    original = {"tags": ["a"], "meta": {"n": 1}}
    copy = deep_copy(original)

    copy["tags"].append("b")
    copy["meta"]["n"] = 2

    assert original == {"tags": ["a"], "meta": {"n": 1}}


def test_copy_asks_cloneable_values():
    node = Node({"x": 1})

    copy = deep_copy({"node": node})

    assert node.clones == 1
    assert copy["node"] is not node
    assert copy["node"].value == {"x": 1}


def test_equal_compares_serializable_by_data():
    assert deep_equal(Node({"x": 1}), Node({"x": 1}))
    assert not deep_equal(Node({"x": 1}), Node({"x": 2}))


def test_equal_distinguishes_list_and_tuple():
    assert not deep_equal([1, 2], (1, 2))
    assert not deep_equal([1, 2], [1, 2, 3])
    assert not deep_equal({"a": 1}, {"b": 1})


def test_serialize_replaces_nested_serializables():
    data = {"owner": Node("ada"), "items": [Node(1), 2]}

    assert serialize(data) == {"owner": {"value": "ada"}, "items": [{"value": 1}, 2]}
