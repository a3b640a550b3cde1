# -*- coding: utf-8 -*-

import pytest

from py_gql.lang import parse
from py_gql.validation import default_validator
from py_gql.validation.rules import NoUnusedVariablesChecker

from gql_pipeline.directives import DirectiveRegistry
from gql_pipeline.exc import (
    CanonicalizationError,
    ExecutionError,
    ParseError,
    ValidationError,
)
from gql_pipeline.schema_source import analyze
from gql_pipeline.stages import Stages, referenced_fragments

from ._people import PEOPLE_SDL


@pytest.fixture
def stages():
    return Stages(analyze(PEOPLE_SDL))


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_parse_requires_a_query_string(stages, text):
    with pytest.raises(ParseError) as exc_info:
        stages.parse(text)
    assert str(exc_info.value) == "Must provide a query string"


def test_parse_syntax_error(stages):
    with pytest.raises(ParseError) as exc_info:
        stages.parse("{ people { id }")
    assert len(exc_info.value.errors) == 1
    assert exc_info.value.errors[0].to_dict()["locations"]


def test_validate(stages):
    stages.validate(stages.parse("{ people { id } }"))


def test_validate_unknown_field(stages):
    with pytest.raises(ValidationError) as exc_info:
        stages.validate(stages.parse("{ people { age } }"))
    assert 'Cannot query field "age"' in str(exc_info.value)


def only_unused_variables(schema, document, variables=None):
    return default_validator(
        schema, document, variables, validators=[NoUnusedVariablesChecker]
    )


def test_validators_replace_specified_rules():
    stages = Stages(analyze(PEOPLE_SDL), validators=[only_unused_variables])
    # Unknown fields are no longer reported.
    stages.validate(stages.parse("{ people { age } }"))
    with pytest.raises(ValidationError):
        stages.validate(stages.parse("query ($a: Int) { people { id } }"))


def test_referenced_fragments():
    document = parse(
        """
        query { people { ...A } }
        fragment A on Person { friends { ...B } }
        fragment B on Person { id }
        fragment C on Person { name }
        """
    )
    operation = document.definitions[0]
    names = [
        f.name.value
        for f in referenced_fragments(operation, document.fragments)
    ]
    assert names == ["A", "B"]


def test_canonicalize_keeps_selected_operation_and_fragments(stages):
    document = stages.parse(
        """
        query A { people { ...F } }
        query B { greeting }
        fragment F on Person { id }
        fragment G on Person { name }
        """
    )
    canonical = stages.canonicalize(document, operation_name="A")
    assert canonical.operation_type == "query"
    assert canonical.operation_name == "A"
    assert [d.name.value for d in canonical.document.definitions] == [
        "A",
        "F",
    ]


def test_canonicalize_requires_operation_name(stages):
    document = stages.parse("query A { greeting } query B { greeting }")
    with pytest.raises(CanonicalizationError):
        stages.canonicalize(document)


def test_canonicalize_unknown_operation_name(stages):
    document = stages.parse("query A { greeting }")
    with pytest.raises(CanonicalizationError):
        stages.canonicalize(document, operation_name="B")


def test_canonicalize_unsupported_operation_type():
    stages = Stages(
        analyze(
            """
            type QueryRoot { a: Int }
            schema { query: QueryRoot }
            """
        )
    )
    document = parse("mutation { a }")
    with pytest.raises(CanonicalizationError) as exc_info:
        stages.canonicalize(document)
    assert "mutation" in str(exc_info.value)


def test_canonicalize_disallowed_operation_type(stages):
    document = stages.parse('mutation { rename(id: "1", name: "A") { id } }')
    with pytest.raises(CanonicalizationError):
        stages.canonicalize(document, allowed=("query",))


def test_canonicalize_coerces_variables(stages):
    document = stages.parse("query ($id: ID!) { person(id: $id) { id } }")
    canonical = stages.canonicalize(document, variables={"id": 1})
    assert canonical.variables == {"id": 1}
    assert canonical.coerced_variables == {"id": "1"}


def test_canonicalize_missing_variable(stages):
    document = stages.parse("query ($id: ID!) { person(id: $id) { id } }")
    with pytest.raises(CanonicalizationError) as exc_info:
        stages.canonicalize(document, variables={})
    assert "$id" in str(exc_info.value)


@pytest.mark.parametrize("variables", [[], "foo", 42])
def test_canonicalize_variables_must_be_a_mapping(stages, variables):
    document = stages.parse("{ greeting }")
    with pytest.raises(CanonicalizationError):
        stages.canonicalize(document, variables=variables)


def test_canonicalize_operation_name_must_be_a_string(stages):
    document = stages.parse("{ greeting }")
    with pytest.raises(CanonicalizationError):
        stages.canonicalize(document, operation_name=42)


def test_canonicalize_applies_directive_handlers():
    stages = Stages(
        analyze(PEOPLE_SDL),
        directives=DirectiveRegistry({"redact": lambda *_: None}),
    )
    document = stages.parse("{ people { id name @redact } }")
    canonical = stages.canonicalize(document)
    people = canonical.operation.selection_set.selections[0]
    assert [f.name.value for f in people.selection_set.selections] == ["id"]


def test_execute(stages):
    analyzed = stages.analyzed
    analyzed.schema.register_resolver("QueryRoot", "greeting", lambda *_: "Hi")
    canonical = stages.canonicalize(stages.parse("{ greeting }"))
    assert stages.execute(canonical) == {"greeting": "Hi"}


def test_execute_passes_partial_data(stages, raiser):
    analyzed = stages.analyzed
    analyzed.schema.register_resolver("QueryRoot", "greeting", lambda *_: "Hi")
    analyzed.schema.register_resolver(
        "QueryRoot", "whoami", raiser(RuntimeError, "Boom")
    )
    canonical = stages.canonicalize(stages.parse("{ greeting whoami }"))
    with pytest.raises(ExecutionError) as exc_info:
        stages.execute(canonical)
    assert exc_info.value.data == {"greeting": "Hi", "whoami": None}
    assert str(exc_info.value) == "Boom"


def test_execute_subscription(stages):
    analyzed = stages.analyzed
    analyzed.subscription_schema.register_resolver(
        "SubscriptionRoot", "personAdded", lambda *_: {"id": "3"}
    )
    canonical = stages.canonicalize(
        stages.parse("subscription { personAdded { id } }")
    )
    assert stages.execute(canonical) == {"personAdded": {"id": "3"}}
