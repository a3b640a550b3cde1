# -*- coding: utf-8 -*-
"""
Network request handler.

:class:`GraphQLHandler` exposes a pipeline as a WSGI application following
the usual GraphQL over HTTP conventions:

- ``POST`` requests with a JSON body
  (``{"query": ..., "variables": ..., "operationName": ...}``) or an
  ``application/graphql`` body holding the query document;
- ``GET`` requests with ``query``, ``variables`` (JSON encoded) and
  ``operationName`` query string parameters. Mutations are rejected over
  ``GET``.

The response body is always the JSON encoded GraphQL response
(``{"data": ..., "errors": [...]}``) and the status code depends on the
stage which failed.

>>> from werkzeug.serving import run_simple  # doctest: +SKIP
>>> run_simple("localhost", 5000, pipeline.handler())  # doctest: +SKIP
"""

import collections.abc
import json
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from werkzeug.exceptions import BadRequest
from werkzeug.wrappers import Request, Response

from .exc import ConfigError, ParseError
from .pipeline import Pipeline, RequestOptions
from .result import ErrorKind, Result

logger = logging.getLogger(__name__)

ContextFn = Callable[[Request], Optional[Dict[str, Any]]]

STATUS_CODES = {
    ErrorKind.PARSE: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CANONICALIZATION: 400,
    ErrorKind.EXECUTION: 200,
}

ALLOWED_METHODS = ("GET", "POST")

# Operation types which can be performed for each HTTP method.
ALLOWED_OPERATIONS = {
    "GET": ("query",),
    "POST": ("query", "mutation", "subscription"),
}


def _decode_json(value: Any, what: str) -> Any:
    try:
        return json.loads(value)
    except ValueError as err:
        raise ParseError(["Invalid JSON %s: %s" % (what, err)])


def _request_params(request: Request) -> Dict[str, Any]:
    if request.method == "GET":
        params = dict(request.args.items())  # type: Dict[str, Any]
        if params.get("variables"):
            params["variables"] = _decode_json(
                params["variables"], "variables"
            )
        else:
            params.pop("variables", None)
        return params

    if request.mimetype == "application/graphql":
        return {"query": request.get_data(as_text=True)}

    body = request.get_data(as_text=True)
    if not body:
        raise ParseError(["Missing request body"])

    params = _decode_json(body, "request body")
    if not isinstance(params, collections.abc.Mapping):
        raise ParseError(["Request body must be a JSON object"])

    params = dict(params)
    # Some clients send variables as a JSON encoded string.
    if isinstance(params.get("variables"), str):
        params["variables"] = _decode_json(params["variables"], "variables")
    return params


class GraphQLHandler:
    """
    WSGI application serving a :class:`~gql_pipeline.pipeline.Pipeline`.

    Args:
        pipeline: Pipeline processing the requests
        context_fn: Function deriving a context map from the incoming
            :class:`werkzeug.wrappers.Request`; merged between the pipeline's
            base environment and the per-call context.
    """

    __slots__ = ("pipeline", "context_fn")

    def __init__(
        self, pipeline: Pipeline, context_fn: Optional[ContextFn] = None
    ):
        if context_fn is not None and not callable(context_fn):
            raise ConfigError("context_fn must be callable")

        self.pipeline = pipeline
        self.context_fn = context_fn

    def __call__(
        self, environ: Dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        response = self.handle(Request(environ))
        return response(environ, start_response)

    def handle(self, request: Request) -> Response:
        """
        Process a single HTTP request.
        """
        if request.method not in ALLOWED_METHODS:
            response = self.respond(
                Result.failure(
                    ErrorKind.PARSE,
                    ["Unsupported HTTP method %s" % request.method],
                ),
                405,
            )
            response.headers["Allow"] = ", ".join(ALLOWED_METHODS)
            return response

        try:
            params = _request_params(request)
        except ParseError as err:
            return self.respond(Result.failure(err.kind, err.errors))
        except BadRequest as err:
            return self.respond(
                Result.failure(ErrorKind.PARSE, [err.description])
            )

        query = params.pop("query", None)
        if not isinstance(query, str) or not query.strip():
            return self.respond(
                Result.failure(ErrorKind.PARSE, ["Must provide a query string"])
            )

        # Context cannot be supplied by clients.
        options = RequestOptions(
            operation_name=params.get(
                "operationName", params.get("operation_name")
            ),
            variables=params.get("variables"),
        )

        try:
            derived = self.context_fn(request) if self.context_fn else None
        except Exception as err:
            logger.exception("Could not derive request context")
            return self.respond(
                Result.failure(
                    ErrorKind.EXECUTION, [str(err) or err.__class__.__name__]
                )
            )

        result = self.pipeline.run(
            query,
            options,
            derived_context=derived,
            allowed=ALLOWED_OPERATIONS[request.method],
        )
        return self.respond(result)

    def respond(self, result: Result, status: Optional[int] = None) -> Response:
        if status is None:
            status = 200 if result else STATUS_CODES[result.error_kind]
        return Response(
            result.json(), status=status, mimetype="application/json"
        )
