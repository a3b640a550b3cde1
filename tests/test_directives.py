# -*- coding: utf-8 -*-

import pytest

from py_gql.lang import ast as _ast, parse, print_ast

from gql_pipeline.directives import (
    DirectiveApplier,
    DirectiveRegistry,
    include,
    skip,
)
from gql_pipeline.exc import ConfigError
from gql_pipeline.schema_source import analyze

from ._people import PEOPLE_SDL, PERSON_SDL


@pytest.fixture
def schema():
    return analyze(PEOPLE_SDL).schema


def redact(node, args):
    return None


def apply(schema, query, handlers=None, variables=None):
    document = parse(query)
    DirectiveApplier(
        schema, DirectiveRegistry(handlers), variables
    ).visit(document)
    return print_ast(document)


def test_skip_and_include():
    node = _ast.Field(name=_ast.Name(value="a"))
    assert skip(node, {"if": True}) is None
    assert skip(node, {"if": False}) is node
    assert include(node, {"if": True}) is node
    assert include(node, {"if": False}) is None


def test_registry_defaults():
    assert set(DirectiveRegistry()) == {"skip", "include"}


def test_registry_overrides_defaults():
    registry = DirectiveRegistry({"skip": redact})
    assert registry["skip"] is redact


def test_registry_rejects_non_callable_handlers():
    with pytest.raises(ConfigError):
        DirectiveRegistry({"redact": "nope"})


def test_check_accepts_declared_directives(schema):
    DirectiveRegistry({"redact": redact}).check(schema)


def test_check_rejects_undeclared_directives():
    with pytest.raises(ConfigError) as exc_info:
        DirectiveRegistry({"redact": redact}).check(analyze(PERSON_SDL).schema)
    assert '"@redact"' in str(exc_info.value)


def test_builtin_handlers_prune_fields(schema):
    printed = apply(
        schema,
        "{ people { id @skip(if: true) name @include(if: false) born } }",
    )
    assert "id" not in printed
    assert "name" not in printed
    assert "born" in printed


def test_handled_directives_are_stripped(schema):
    printed = apply(schema, "{ people { id @skip(if: false) } }")
    assert "@skip" not in printed
    assert "id" in printed


def test_arguments_use_variables(schema):
    query = "query ($s: Boolean!) { people { id @skip(if: $s) name } }"
    assert "id" not in apply(schema, query, variables={"s": True})
    assert "id" in apply(schema, query, variables={"s": False})


def test_custom_handler_omits_projections(schema):
    printed = apply(
        schema,
        """
        {
            people {
                id
                ... on Person @redact { name }
                ...F @redact
            }
        }
        fragment F on Person { born }
        """,
        handlers={"redact": redact},
    )
    assert "name" not in printed
    assert "...F" not in printed


def test_custom_handler_receives_coerced_arguments(schema):
    seen = []

    def limit(node, args):
        seen.append((node.name.value, args))
        return node

    apply(
        schema,
        "query ($n: Int!) { people @limit(count: $n) { id } }",
        handlers={"limit": limit},
        variables={"n": 3},
    )
    assert seen == [("people", {"count": 3})]


def test_custom_handler_can_replace_projection(schema):
    def limit(node, args):
        return _ast.Field(
            name=_ast.Name(value="id"),
            alias=_ast.Name(value="limited"),
        )

    printed = apply(
        schema, "{ people { name @limit(count: 1) } }", {"limit": limit}
    )
    assert "limited: id" in printed


def test_unhandled_directives_are_kept(schema):
    printed = apply(schema, "{ people @limit(count: 1) { id } }")
    assert "@limit(count: 1)" in printed
