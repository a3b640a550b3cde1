# -*- coding: utf-8 -*-
""" Simple counter exposed as a GraphQL API, served over HTTP with werkzeug. """

import logging
import threading

from werkzeug.serving import run_simple

from gql_pipeline import build_pipeline

SCHEMA = """
type QueryRoot {
    counter: Int!
}

type MutationRoot {
    increment(amount: Int = 1): Int!
    decrement(amount: Int = 1): Int!
}

schema {
    query: QueryRoot
    mutation: MutationRoot
}
"""


class Counter:
    def __init__(self):
        self.value = 0
        self._lock = threading.Lock()

    def add(self, amount):
        with self._lock:
            self.value += amount
            return self.value


COUNTER = Counter()

pipeline = build_pipeline(
    schema=SCHEMA,
    query={"counter": lambda *_: COUNTER.value},
    mutation={
        "increment": lambda *_, amount: COUNTER.add(amount),
        "decrement": lambda *_, amount: COUNTER.add(-amount),
    },
)

app = pipeline.handler(
    context_fn=lambda request: {"remote_addr": request.remote_addr}
)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    # curl -XPOST localhost:5000 -H 'Content-Type: application/graphql' \
    #   -d 'mutation { increment(amount: 2) }'
    run_simple("localhost", 5000, app, use_reloader=True, threaded=True)
