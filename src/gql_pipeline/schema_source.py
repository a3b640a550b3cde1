# -*- coding: utf-8 -*-
"""
Loading and analysis of schema sources.

Schema sources can be given as:

- SDL strings,
- paths (any :py:class:`os.PathLike`),
- ``file://`` URIs,
- readable file objects.

Multiple sources are parsed individually, then merged in order into a single
document and analyzed once. Later sources can extend types defined in earlier
ones (``extend type ...``); redefining a type is an error.
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

from py_gql import build_schema, exc as _gql_exc
from py_gql.lang import ast as _ast, parse
from py_gql.schema import ObjectType, Schema

from .exc import SchemaError
from .scalars import ScalarRegistry

logger = logging.getLogger(__name__)

SchemaSource = Union[str, "os.PathLike[str]", Any]

OPERATION_TYPES = ("query", "mutation", "subscription")


def _read_file(path: str) -> str:
    try:
        with open(path, "rb") as f:
            return f.read().decode("utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise SchemaError('Cannot read schema file "%s": %s' % (path, err))


def load_source(source: SchemaSource) -> Tuple[str, str]:
    """
    Load the SDL text of a single schema source.

    Args:
        source: SDL string, path, ``file://`` URI or readable file object

    Returns:
        ``(name, text)`` tuple, where ``name`` describes the origin of the
        text for error reporting.

    Raises:
        SchemaError: if the source cannot be read.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8")

    if isinstance(source, str):
        if source.startswith("file://"):
            path = unquote(urlparse(source).path)
            return path, _read_file(path)
        return "<string>", source

    if isinstance(source, os.PathLike):
        path = os.fspath(source)
        return path, _read_file(path)

    read = getattr(source, "read", None)
    if callable(read):
        content = read()
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        return getattr(source, "name", "<file>"), content

    raise SchemaError(
        "Expected schema source to be a string, path or file object "
        "but got %s" % type(source).__name__
    )


def _flatten(errors: Iterable[Any]) -> List[Any]:
    flat = []  # type: List[Any]
    for err in errors:
        nested = getattr(err, "errors", None)
        if isinstance(err, _gql_exc.SchemaError) and nested:
            flat.extend(_flatten(nested))
        else:
            flat.append(err)
    return flat


def merge_sources(sources: Iterable[SchemaSource]) -> _ast.Document:
    """
    Parse and concatenate schema sources into a single SDL document.

    Raises:
        SchemaError: if any source cannot be read or parsed.
    """
    definitions = []  # type: List[_ast.Definition]
    for source in sources:
        name, text = load_source(source)
        try:
            document = parse(text, allow_type_system=True)
        except _gql_exc.GraphQLSyntaxError as err:
            raise SchemaError("Cannot parse schema source %s" % name, [err])
        definitions.extend(document.definitions)

    if not definitions:
        raise SchemaError("Schema sources contain no definitions")

    return _ast.Document(definitions=definitions)


class AnalyzedSchema:
    """
    Fully resolved type system produced by :func:`analyze`.

    Instances are read-only once created and shared by all requests of a
    pipeline.

    Attributes:
        schema (py_gql.schema.Schema): Executable schema, including
            introspection types.
        document (py_gql.lang.ast.Document): Merged SDL document.
        root_types (Dict[str, py_gql.schema.ObjectType]): Mapping of
            operation type to its root type, for the declared root types.
        subscription_schema (Optional[py_gql.schema.Schema]): Schema using the
            subscription root as query root; used to resolve subscription
            operations.
    """

    __slots__ = ("schema", "document", "root_types", "subscription_schema")

    def __init__(
        self,
        schema: Schema,
        document: _ast.Document,
        subscription_schema: Optional[Schema] = None,
    ):
        self.schema = schema
        self.document = document
        self.subscription_schema = subscription_schema
        self.root_types = {
            name: root
            for name, root in zip(
                OPERATION_TYPES,
                (
                    schema.query_type,
                    schema.mutation_type,
                    schema.subscription_type,
                ),
            )
            if root is not None
        }  # type: Dict[str, ObjectType]

    @property
    def directive_names(self) -> List[str]:
        return list(self.schema.directives)

    @property
    def scalar_names(self) -> List[str]:
        return declared_scalars(self.document)

    def to_string(self) -> str:
        return self.schema.to_string()


def declared_scalars(document: _ast.Document) -> List[str]:
    return [
        definition.name.value
        for definition in document.definitions
        if isinstance(definition, _ast.ScalarTypeDefinition)
    ]


def declared_roots(document: _ast.Document) -> Dict[str, str]:
    """
    Collect the root operation types declared through `schema` definitions
    and extensions, in document order.
    """
    roots = {}  # type: Dict[str, str]
    for definition in document.definitions:
        if isinstance(
            definition, (_ast.SchemaDefinition, _ast.SchemaExtension)
        ):
            for op_type in definition.operation_types:
                roots[op_type.operation] = op_type.type.name.value
    return roots


def _subscription_schema(schema: Schema) -> Optional[Schema]:
    if schema.subscription_type is None:
        return None
    derived = Schema(
        query_type=schema.subscription_type,
        types=list(schema.types.values()),
        directives=list(schema.directives.values()),
    )
    derived.validate()
    return derived


def analyze(
    *sources: SchemaSource, scalars: Optional[ScalarRegistry] = None
) -> AnalyzedSchema:
    """
    Analyze schema source(s) into an :class:`AnalyzedSchema`.

    This is the only place where schema sources are parsed; any failure is
    raised here and never carried in the result.

    Args:
        *sources: One or more schema sources, merged in order
        scalars: Custom scalar codecs; each must target a scalar declared in
            the sources

    Returns:
        Analyzed schema

    Raises:
        SchemaError: if the sources are unreadable, unparsable or define an
            invalid schema (including a schema without query root).
        ConfigError: if a scalar codec targets an undeclared scalar.
    """
    if not sources:
        raise SchemaError("At least one schema source is required")

    scalars = scalars if scalars is not None else ScalarRegistry()
    document = merge_sources(sources)

    if "query" not in declared_roots(document):
        raise SchemaError(
            "Schema must declare its query root type through a "
            "`schema { query: ... }` definition"
        )

    scalars.check(declared_scalars(document))

    try:
        schema = build_schema(document, additional_types=scalars.to_types())
        schema.validate()
    except _gql_exc.GraphQLError as err:
        raise SchemaError("Invalid schema", _flatten([err]))

    try:
        subscription_schema = _subscription_schema(schema)
    except _gql_exc.GraphQLError as err:
        raise SchemaError("Invalid subscription root", _flatten([err]))

    analyzed = AnalyzedSchema(schema, document, subscription_schema)

    logger.info(
        "Analyzed schema from %d source(s), root types: %s",
        len(sources),
        ", ".join(
            "%s=%s" % (op, t.name) for op, t in analyzed.root_types.items()
        ),
    )
    return analyzed
