# -*- coding: utf-8 -*-
from gql_pipeline import executor

run_query = executor(
    schema="""
    type QueryRoot {
        hello(value: String = "world"): String!
    }

    schema { query: QueryRoot }
    """,
    query={"hello": lambda *_, value: "Hello {}!".format(value)},
)


result = run_query('{ hello(value: "World") }')
assert result.to_dict() == {
    "status": "success",
    "data": {"hello": "Hello World!"},
}
assert result.response() == {"data": {"hello": "Hello World!"}}
