# -*- coding: utf-8 -*-
"""
This module implements all the exceptions exposed by this library.

Errors fall in two groups:

- Construction errors (:class:`SchemaError` and :class:`ConfigError`) are
  raised while building a pipeline and mean no usable pipeline exists.
- Request errors (subclasses of :class:`RequestError`) are raised by the
  individual stages of the request lifecycle and are always converted into a
  :class:`~gql_pipeline.result.Result` before reaching callers.
"""

from typing import Any, List, Optional, Sequence

from .result import UNSET, ErrorKind


class PipelineError(Exception):
    """
    Base exception from which all other inherit. You should prefer
    using one of its subclasses most of the time.
    """

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class SchemaError(PipelineError):
    """
    The schema source(s) could not be loaded, parsed or analyzed.

    Args:
        message: Explanatory message
        errors: Underlying errors, usually from :mod:`py_gql.exc`

    Attributes:
        message (str): Explanatory message
        errors (List[Exception]): Underlying errors
    """

    kind = ErrorKind.SCHEMA

    def __init__(self, message: str, errors: Optional[Sequence[Any]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else []  # type: List[Any]

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return "%s:\n%s" % (
            self.message,
            "\n".join("  - %s" % err for err in self.errors),
        )


class ConfigError(PipelineError, ValueError):
    """
    Pipeline options are missing, malformed or inconsistent with the
    analyzed schema.
    """

    kind = ErrorKind.CONFIG


class RequestError(PipelineError):
    """
    Failure of one stage of the request lifecycle.

    Args:
        errors: Diagnostics or response errors (usually
            :class:`py_gql.exc.GraphQLResponseError` instances)
        data: Partial data, only relevant for execution errors

    Attributes:
        kind (str): Stage which produced the error, see
            :class:`~gql_pipeline.result.ErrorKind`
        errors (List[Any]): Wrapped errors
        data (Any): Partial data, `~gql_pipeline.result.UNSET` when the
            stage produced none
    """

    kind = None  # type: Optional[str]

    def __init__(self, errors: Sequence[Any], data: Any = UNSET):
        super().__init__("%d errors" % len(errors))
        self.errors = list(errors)
        self.data = data

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return ",\n".join(str(err) for err in self.errors)


class ParseError(RequestError):
    kind = ErrorKind.PARSE


class ValidationError(RequestError):
    kind = ErrorKind.VALIDATION


class CanonicalizationError(RequestError):
    kind = ErrorKind.CANONICALIZATION


class ExecutionError(RequestError):
    kind = ErrorKind.EXECUTION
