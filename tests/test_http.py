# -*- coding: utf-8 -*-

import json

import pytest
from werkzeug.test import Client

from gql_pipeline import ConfigError, GraphQLHandler, SchemaError, handler

from ._people import PERSON_SDL


@pytest.fixture
def app(people_pipeline):
    return people_pipeline().handler(
        context_fn=lambda request: {"user": request.headers.get("X-User")}
    )


@pytest.fixture
def client(app):
    return Client(app)


def test_post_json(client):
    response = client.post(
        "/graphql",
        json={
            "query": "query Q($id: ID!) { person(id: $id) { name } }",
            "operationName": "Q",
            "variables": {"id": "1"},
        },
    )
    assert response.status_code == 200
    assert response.mimetype == "application/json"
    assert response.get_json() == {"data": {"person": {"name": "Ada"}}}


def test_post_json_with_encoded_variables(client):
    response = client.post(
        "/graphql",
        json={
            "query": "query ($id: ID!) { person(id: $id) { name } }",
            "variables": json.dumps({"id": "2"}),
        },
    )
    assert response.get_json() == {"data": {"person": {"name": "Grace"}}}


def test_post_graphql_body(client):
    response = client.post(
        "/graphql",
        data='{ person(id: "3") { name } }',
        content_type="application/graphql",
    )
    assert response.status_code == 200
    assert response.get_json() == {"data": {"person": {"name": "Alan"}}}


def test_get(client):
    response = client.get(
        "/graphql",
        query_string={
            "query": "query ($id: ID!) { person(id: $id) { name } }",
            "variables": json.dumps({"id": "1"}),
        },
    )
    assert response.status_code == 200
    assert response.get_json() == {"data": {"person": {"name": "Ada"}}}


def test_get_variables_are_decoded_once(client):
    response = client.get(
        "/graphql",
        query_string={
            "query": "query ($id: ID!) { person(id: $id) { name } }",
            "variables": json.dumps(json.dumps({"id": "1"})),
        },
    )
    assert response.status_code == 400
    body = response.get_json()
    assert "data" not in body
    assert body["errors"][0]["extensions"]["code"] == (
        "GRAPHQL_CANONICALIZATION_FAILED"
    )


def test_get_rejects_mutations(client, people_resolvers):
    response = client.get(
        "/graphql",
        query_string={
            "query": 'mutation { rename(id: "1", name: "X") { name } }'
        },
    )
    assert response.status_code == 400
    body = response.get_json()
    assert "data" not in body
    assert body["errors"][0]["extensions"]["code"] == (
        "GRAPHQL_CANONICALIZATION_FAILED"
    )
    assert people_resolvers["store"]["1"]["name"] == "Ada"


def test_post_allows_mutations(client):
    response = client.post(
        "/graphql",
        json={"query": 'mutation { rename(id: "1", name: "X") { name } }'},
    )
    assert response.get_json() == {"data": {"rename": {"name": "X"}}}


@pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH"])
def test_unsupported_methods(client, method):
    response = client.open("/graphql", method=method)
    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, POST"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"data": "{", "content_type": "application/json"},
        {"data": "[1, 2]", "content_type": "application/json"},
        {"data": "", "content_type": "application/json"},
        {"json": {"variables": {}}},
        {"json": {"query": 42}},
    ],
)
def test_malformed_requests(client, kwargs):
    response = client.post("/graphql", **kwargs)
    assert response.status_code == 400
    (error,) = response.get_json()["errors"]
    assert error["extensions"]["code"] == "GRAPHQL_PARSE_FAILED"


def test_malformed_get_variables(client):
    response = client.get(
        "/graphql", query_string={"query": "{ greeting }", "variables": "{"}
    )
    assert response.status_code == 400


def test_parse_error(client):
    response = client.post("/graphql", json={"query": "{ person("})
    assert response.status_code == 400
    body = response.get_json()
    assert body["errors"][0]["extensions"]["code"] == "GRAPHQL_PARSE_FAILED"
    assert body["errors"][0]["locations"]


def test_validation_error(client):
    response = client.post("/graphql", json={"query": "{ nope }"})
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["extensions"]["code"] == (
        "GRAPHQL_VALIDATION_FAILED"
    )


def test_canonicalization_error(client):
    response = client.post(
        "/graphql", json={"query": "query A { greeting } query B { greeting }"}
    )
    assert response.status_code == 400


def test_execution_error_keeps_partial_data(people_pipeline, raiser):
    client = Client(
        people_pipeline(
            query={"greeting": "Hi", "whoami": raiser(ValueError, "Boom")}
        ).handler()
    )
    response = client.post("/graphql", json={"query": "{ greeting whoami }"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["data"] == {"greeting": "Hi", "whoami": None}
    assert body["errors"][0]["message"] == "Boom"


def test_derived_context(client):
    response = client.post(
        "/graphql", json={"query": "{ whoami }"}, headers={"X-User": "ada"}
    )
    assert response.get_json() == {"data": {"whoami": "ada"}}


def test_clients_cannot_supply_context(client):
    response = client.post(
        "/graphql", json={"query": "{ whoami }", "context": {"user": "eve"}}
    )
    assert response.get_json() == {"data": {"whoami": None}}


def test_derived_context_must_be_a_mapping(people_pipeline):
    client = Client(people_pipeline().handler(context_fn=lambda r: ["nope"]))
    response = client.post("/graphql", json={"query": "{ greeting }"})
    assert response.status_code == 200
    assert response.get_json()["errors"][0]["extensions"]["code"] == (
        "GRAPHQL_EXECUTION_FAILED"
    )


def test_failing_context_fn(people_pipeline, raiser):
    client = Client(
        people_pipeline().handler(context_fn=raiser(RuntimeError, "Nope"))
    )
    response = client.post("/graphql", json={"query": "{ greeting }"})
    assert response.get_json()["errors"][0]["message"] == "Nope"


def test_handler_factory():
    app = handler(
        schema=PERSON_SDL,
        query={"person": {"id": "1", "name": "Ada"}},
        context_fn=lambda request: {},
    )
    assert isinstance(app, GraphQLHandler)
    assert app.context_fn is not None
    response = Client(app).post(
        "/", json={"query": '{ person(id: "1") { name } }'}
    )
    assert response.get_json() == {"data": {"person": {"name": "Ada"}}}


def test_handler_rejects_invalid_context_fn(people_pipeline):
    with pytest.raises(ConfigError):
        people_pipeline().handler(context_fn="nope")


def test_handler_requires_valid_schema():
    with pytest.raises(SchemaError):
        handler(schema="type Query { a: Int }", query={})


def test_pipeline_env_reaches_http_requests(people_pipeline):
    client = Client(people_pipeline(env={"user": "base"}).handler())
    response = client.post("/graphql", json={"query": "{ whoami }"})
    assert response.get_json() == {"data": {"whoami": "base"}}
