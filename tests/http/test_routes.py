"""Tests for route templating."""

from restrecord.http import PatternRouteResolver


def test_resolve_substitutes_parameters():
    resolver = PatternRouteResolver()

    assert resolver.resolve("/users/{user}/tasks/{id}", {"user": "ada", "id": 5}) == "/users/ada/tasks/5"


def test_missing_and_none_parameters_become_empty():
    resolver = PatternRouteResolver()

    assert resolver.resolve("/tasks/{id}", {}) == "/tasks/"
    assert resolver.resolve("/tasks/{id}", {"id": None}) == "/tasks/"


def test_falsy_values_are_kept():
    assert PatternRouteResolver().resolve("/tasks/{id}", {"id": 0}) == "/tasks/0"


def test_custom_pattern():
    resolver = PatternRouteResolver(r":(\w+)")

    assert resolver.resolve("/tasks/:id", {"id": 7}) == "/tasks/7"
