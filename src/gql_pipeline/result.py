# -*- coding: utf-8 -*-
"""
Request results.

Every request processed by a pipeline yields exactly one :class:`Result`,
whatever stage it stopped at.
"""

import collections.abc
import json
from typing import Any, Dict, List, Optional, Sequence


class ErrorKind:
    """
    Stage-tagged failure kinds, as exposed in ``Result.error_kind``.
    """

    PARSE = "parse"
    VALIDATION = "validation"
    CANONICALIZATION = "canonicalization"
    EXECUTION = "execution"
    SCHEMA = "schema"
    CONFIG = "config"

    ALL = (PARSE, VALIDATION, CANONICALIZATION, EXECUTION, SCHEMA, CONFIG)


ERROR_CODES = {
    ErrorKind.PARSE: "GRAPHQL_PARSE_FAILED",
    ErrorKind.VALIDATION: "GRAPHQL_VALIDATION_FAILED",
    ErrorKind.CANONICALIZATION: "GRAPHQL_CANONICALIZATION_FAILED",
    ErrorKind.EXECUTION: "GRAPHQL_EXECUTION_FAILED",
    ErrorKind.SCHEMA: "GRAPHQL_SCHEMA_INVALID",
    ErrorKind.CONFIG: "GRAPHQL_CONFIG_INVALID",
}

SUCCESS = "success"
ERROR = "error"

#: Marker for absent data, distinct from a `null` result.
UNSET = object()


def diagnostic(error: Any, code: Optional[str] = None) -> Dict[str, Any]:
    """
    Convert an error into a JSON serializable diagnostic.

    Errors implementing ``to_dict`` (such as
    :class:`py_gql.exc.GraphQLResponseError`) are serialized through it,
    mappings are copied and anything else is used as the message.

    Args:
        error: Error to convert
        code: Code added to the ``extensions`` entry unless the error already
            defines one

    Returns:
        Diagnostic with at least a ``message`` entry.
    """
    if isinstance(error, collections.abc.Mapping):
        diag = dict(error)
    elif callable(getattr(error, "to_dict", None)):
        diag = error.to_dict()
    else:
        diag = {"message": str(error)}

    if code is not None:
        extensions = dict(diag.get("extensions") or {})
        extensions.setdefault("code", code)
        diag["extensions"] = extensions

    return diag


class Result:
    """
    Tagged outcome of a single request.

    Use :meth:`success` and :meth:`failure` to create instances.

    Args:
        status: ``"success"`` or ``"error"``
        data: Resolved data
        error_kind: One of :class:`ErrorKind` for failures
        errors: Ordered diagnostics for failures

    Attributes:
        status (str): ``"success"`` or ``"error"``
        data (Any): Resolved data. On failure, this is only set when the
            resolution engine produced partial data.
        error_kind (Optional[str]): Stage which failed
        errors (List[Dict[str, Any]]): Ordered diagnostics
    """

    __slots__ = ("status", "data", "error_kind", "errors")

    def __init__(
        self,
        status: str,
        data: Any = UNSET,
        error_kind: Optional[str] = None,
        errors: Optional[Sequence[Dict[str, Any]]] = None,
    ):
        self.status = status
        self.data = data
        self.error_kind = error_kind
        self.errors = (
            list(errors) if errors else []
        )  # type: List[Dict[str, Any]]

    @classmethod
    def success(cls, data: Any) -> "Result":
        return cls(SUCCESS, data=data)

    @classmethod
    def failure(
        cls, kind: str, errors: Sequence[Any], data: Any = UNSET
    ) -> "Result":
        """
        Build a failed result, converting ``errors`` into diagnostics tagged
        with the code of the failing stage.
        """
        if kind not in ErrorKind.ALL:
            raise ValueError('Unknown error kind "%s"' % kind)
        code = ERROR_CODES[kind]
        return cls(
            ERROR,
            data=data,
            error_kind=kind,
            errors=[diagnostic(err, code) for err in errors],
        )

    @property
    def has_data(self) -> bool:
        return self.data is not UNSET

    def __bool__(self) -> bool:
        return self.status == SUCCESS

    def __eq__(self, rhs: Any) -> bool:
        return isinstance(rhs, Result) and self.to_dict() == rhs.to_dict()

    def __repr__(self) -> str:
        return "<Result %s>" % self.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """
        Tagged representation of the result.

        Returns:
            ``{"status": "success", "data": ...}`` or
            ``{"status": "error", "errorKind": ..., "errors": [...]}``. Failed
            executions which produced partial data also include it under
            ``"data"``.
        """
        if self.status == SUCCESS:
            return {"status": SUCCESS, "data": self.data}

        d = {
            "status": ERROR,
            "errorKind": self.error_kind,
            "errors": self.errors,
        }  # type: Dict[str, Any]
        if self.has_data:
            d["data"] = self.data
        return d

    def response(self) -> Dict[str, Any]:
        """ Generate a standard GraphQL response dict. """
        d = {}  # type: Dict[str, Any]
        if self.errors:
            d["errors"] = self.errors
        if self.has_data:
            d["data"] = self.data
        return d

    def json(self, **kw: Any) -> str:
        """ Encode response as JSON using the standard lib ``json`` module.

        Args:
            **kw: Keyword args passed to to ``json.dumps``
        """
        return json.dumps(self.response(), **kw)
