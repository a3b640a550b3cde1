# -*- coding: utf-8 -*-
"""
Pipeline construction and request lifecycle.

A :class:`Pipeline` analyzes its schema once, binds the stage functions to it
and then processes any number of requests, concurrently if need be:

>>> pipeline = build_pipeline(
...     schema='''
...         type Person { id: ID!, name: String! }
...         type QueryRoot { person(id: ID!): Person }
...         schema { query: QueryRoot }
...     ''',
...     query={"person": lambda *_, id: {"id": id, "name": "Ada"}},
... )
>>> pipeline.execute('{ person(id: "1") { name } }').to_dict()
{'status': 'success', 'data': {'person': {'name': 'Ada'}}}

Every request goes through the same stages, in order: parse, validate,
canonicalize, resolve and format. The first failing stage short-circuits the
remaining ones and its errors are reported in the :class:`~gql_pipeline.Result`.
"""

import collections.abc
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Collection,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from py_gql import exc as _gql_exc
from py_gql.validation import Validator

from .directives import DirectiveRegistry
from .engine import Engine
from .environment import build_environment
from .exc import ConfigError, ExecutionError, RequestError
from .result import ErrorKind, Result
from .scalars import ScalarRegistry
from .schema_source import OPERATION_TYPES, AnalyzedSchema, analyze
from .stages import Stages

if TYPE_CHECKING:  # Fix import cycles of types needed only for annotations
    from .http import GraphQLHandler  # noqa: F401

logger = logging.getLogger(__name__)

ContextFn = Callable[[Any], Optional[Mapping[str, Any]]]


class RequestOptions:
    """
    Per-call options.

    Args:
        operation_name: Operation to execute; required when the document
            contains multiple operations.
        variables: Raw, JSON decoded variables.
        context: Mapping merged into the resolution environment for this
            call only.
    """

    __slots__ = ("operation_name", "variables", "context")

    def __init__(
        self,
        operation_name: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ):
        self.operation_name = operation_name
        self.variables = variables
        self.context = context

    def __repr__(self) -> str:
        return "<RequestOptions operation_name=%r variables=%r>" % (
            self.operation_name,
            self.variables,
        )

    @classmethod
    def coerce(cls, value: Any = None, **kwargs: Any) -> "RequestOptions":
        """
        Build options from ``None``, an existing instance or a mapping using
        either ``operationName`` or ``operation_name``. Keyword arguments take
        precedence over entries of ``value``.

        Raises:
            TypeError: if ``value`` is not supported.
        """
        if value is None:
            value = {}
        elif isinstance(value, cls):
            value = {
                "operation_name": value.operation_name,
                "variables": value.variables,
                "context": value.context,
            }
        elif not isinstance(value, collections.abc.Mapping):
            raise TypeError(
                "Expected request options to be a mapping but got %s"
                % type(value).__name__
            )

        merged = dict(value, **kwargs)
        unknown = set(merged) - {
            "operation_name",
            "operationName",
            "variables",
            "context",
        }
        if unknown:
            raise TypeError(
                "Unknown request option(s) %s" % ", ".join(sorted(unknown))
            )

        return cls(
            operation_name=merged.get(
                "operation_name", merged.get("operationName")
            ),
            variables=merged.get("variables"),
            context=merged.get("context"),
        )


def _mapping_option(name: str, value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, collections.abc.Mapping):
        raise ConfigError(
            "Expected `%s` to be a mapping but got %s"
            % (name, type(value).__name__)
        )
    return dict(value)


def _schema_sources(schema: Any) -> Tuple[Any, ...]:
    if schema is None:
        return ()
    if isinstance(schema, (list, tuple)):
        return tuple(schema)
    return (schema,)


class PipelineConfig:
    """
    Construction options of a :class:`Pipeline`.

    Args:
        schema: Schema source or list of schema sources merged in order. See
            :mod:`gql_pipeline.schema_source` for supported formats.

        query: Root resolvers of the query type (required).
            Mapping of field name to resolver; non callable values are
            returned as is.

        mutation: Root resolvers of the mutation type.

        subscription: Root resolvers of the subscription type.

        engine: Resolution engine, see :meth:`gql_pipeline.Engine.coerce`.

        env: Base resolution environment.

        context_fn: Function deriving a context map from an incoming HTTP
            request (request handlers only).

        scalars: Mapping of scalar name to ``encode`` / ``decode`` pair.

        directives: Mapping of directive name to handler.

        validators: Validators replacing the default one, see
            :class:`py_gql.validation.Validator`. Append
            :func:`py_gql.validation.default_validator` to only add rules.

        root: Root value passed to top level resolvers.
    """

    __slots__ = (
        "schema",
        "query",
        "mutation",
        "subscription",
        "engine",
        "env",
        "context_fn",
        "scalars",
        "directives",
        "validators",
        "root",
    )

    def __init__(
        self,
        schema: Any = None,
        query: Optional[Mapping[str, Any]] = None,
        mutation: Optional[Mapping[str, Any]] = None,
        subscription: Optional[Mapping[str, Any]] = None,
        engine: Any = None,
        env: Optional[Mapping[str, Any]] = None,
        context_fn: Optional[ContextFn] = None,
        scalars: Optional[Mapping[str, Any]] = None,
        directives: Optional[Mapping[str, Callable[..., Any]]] = None,
        validators: Optional[Sequence[Validator]] = None,
        root: Any = None,
    ):
        self.schema = _schema_sources(schema)
        self.query = query
        self.mutation = mutation
        self.subscription = subscription
        self.engine = engine
        self.env = _mapping_option("env", env)
        self.context_fn = context_fn
        self.scalars = _mapping_option("scalars", scalars)
        self.directives = _mapping_option("directives", directives)
        self.validators = validators
        self.root = root

    @classmethod
    def coerce(
        cls, config: Any = None, **options: Any
    ) -> "PipelineConfig":
        if isinstance(config, cls):
            if options:
                raise ConfigError(
                    "Cannot combine a PipelineConfig with keyword options"
                )
            return config
        if config is None:
            config = {}
        elif not isinstance(config, collections.abc.Mapping):
            raise ConfigError("Invalid pipeline config %r" % (config,))
        try:
            return cls(**dict(config, **options))
        except TypeError as err:
            raise ConfigError("Invalid pipeline options: %s" % err)

    @property
    def roots(self) -> Dict[str, Optional[Mapping[str, Any]]]:
        return {
            "query": self.query,
            "mutation": self.mutation,
            "subscription": self.subscription,
        }


def _constant(value: Any) -> Callable[..., Any]:
    def resolve(*_: Any, **__: Any) -> Any:
        return value

    return resolve


def register_root_resolvers(
    analyzed: AnalyzedSchema, roots: Mapping[str, Optional[Mapping[str, Any]]]
) -> None:
    """
    Assign root resolver maps to the root types of an analyzed schema.

    Raises:
        ConfigError: if a map is malformed, targets a root type absent from
            the schema or names an unknown field.
    """
    for operation in OPERATION_TYPES:
        resolvers = roots.get(operation)
        if resolvers is None:
            continue

        if not isinstance(resolvers, collections.abc.Mapping):
            raise ConfigError(
                "Expected %s root resolvers to be a mapping but got %s"
                % (operation, type(resolvers).__name__)
            )

        root_type = analyzed.root_types.get(operation)
        if root_type is None:
            raise ConfigError(
                "Schema does not define a %s root type but %s resolvers "
                "were provided" % (operation, operation)
            )

        unknown = sorted(n for n in resolvers if n not in root_type.field_map)
        if unknown:
            raise ConfigError(
                'Unknown field(s) %s on %s root type "%s"'
                % (
                    ", ".join('"%s"' % n for n in unknown),
                    operation,
                    root_type.name,
                )
            )

        schemas = [analyzed.schema]
        if operation == "subscription" and analyzed.subscription_schema:
            schemas.append(analyzed.subscription_schema)

        for fieldname, value in resolvers.items():
            resolver = value if callable(value) else _constant(value)
            for schema in schemas:
                try:
                    schema.register_resolver(
                        root_type.name, fieldname, resolver, allow_override=True
                    )
                except (_gql_exc.GraphQLError, ValueError) as err:
                    raise ConfigError(str(err))


def validate_document(stages: Stages, text: Any) -> Optional[List[Any]]:
    """
    Parse and validate a document without executing it.

    Returns:
        ``None`` if the document is valid, the list of diagnostics otherwise.
    """
    try:
        stages.validate(stages.parse(text))
    except RequestError as err:
        return Result.failure(err.kind, err.errors).errors
    return None


class Pipeline:
    """
    Request processing pipeline bound to a single analyzed schema.

    Prefer :func:`build_pipeline` to create instances.

    Args:
        config: Construction options

    Raises:
        SchemaError: if the schema cannot be analyzed.
        ConfigError: if the options are invalid.
    """

    __slots__ = ("config", "analyzed", "stages", "scalars", "directives")

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.scalars = ScalarRegistry(config.scalars)
        self.analyzed = analyze(*config.schema, scalars=self.scalars)

        if config.query is None:
            raise ConfigError("Root resolvers for the query type are required")

        if config.context_fn is not None and not callable(config.context_fn):
            raise ConfigError("context_fn must be callable")

        engine = Engine.coerce(config.engine)

        self.directives = DirectiveRegistry(config.directives)
        self.directives.check(self.analyzed.schema)

        register_root_resolvers(self.analyzed, config.roots)

        self.stages = Stages(
            self.analyzed,
            engine=engine,
            directives=self.directives,
            validators=config.validators,
            root=config.root,
        )

        logger.info(
            "Built pipeline (engine: %r, scalars: %s, directives: %s)",
            engine,
            sorted(self.scalars) or "-",
            sorted(self.directives),
        )

    @classmethod
    def build(cls, config: Any = None, **options: Any) -> "Pipeline":
        return cls(PipelineConfig.coerce(config, **options))

    @property
    def schema(self) -> AnalyzedSchema:
        return self.analyzed

    def run(
        self,
        text: Any,
        options: Optional[RequestOptions] = None,
        *,
        derived_context: Optional[Mapping[str, Any]] = None,
        allowed: Optional[Collection[str]] = None
    ) -> Result:
        """
        Process a single request from start to finish.

        This never raises for request errors: any failure is reported in the
        returned result, tagged with the stage which produced it.

        Args:
            text: Query document
            options: Per-call options
            derived_context: Context derived from the incoming request, merged
                between the base environment and the per-call context
            allowed: Operation types allowed for this request (defaults to all)

        Returns:
            Request result
        """
        options = options if options is not None else RequestOptions()
        stages = self.stages

        try:
            document = stages.parse(text)
            logger.debug("Parsed document")

            stages.validate(document)
            logger.debug("Validated document")

            canonical = stages.canonicalize(
                document,
                operation_name=options.operation_name,
                variables=options.variables,
                allowed=allowed,
            )
            logger.debug("Canonicalized %r", canonical)

            try:
                environment = build_environment(
                    self.config.env,
                    derived_context,
                    options.context,
                    scalars=self.scalars,
                    directives=self.directives,
                )
            except ConfigError as err:
                raise ExecutionError([err])

            data = stages.execute(canonical, environment)
            logger.debug("Resolved %r", canonical)

        except RequestError as err:
            logger.debug("Request failed at %s stage: %s", err.kind, err)
            return Result.failure(err.kind, err.errors, data=err.data)

        except Exception as err:
            logger.exception("Unexpected error while processing request")
            return Result.failure(
                ErrorKind.EXECUTION, [str(err) or err.__class__.__name__]
            )

        return Result.success(data)

    def execute(
        self, text: Any, options: Any = None, **kwargs: Any
    ) -> Result:
        """
        Bare executor: run a query document with the given options.

        Args:
            text: Query document
            options: :class:`RequestOptions` or mapping recognizing
                ``operationName`` (or ``operation_name``), ``variables`` and
                ``context``
            **kwargs: Same keys as ``options``, taking precedence

        Returns:
            Request result
        """
        try:
            options = RequestOptions.coerce(options, **kwargs)
        except TypeError as err:
            return Result.failure(ErrorKind.CANONICALIZATION, [err])
        return self.run(text, options)

    __call__ = execute

    def validate(self, text: Any) -> Optional[List[Dict[str, Any]]]:
        """
        Validate a query document without executing it.

        Returns:
            ``None`` if the document is valid, the list of diagnostics
            otherwise.
        """
        return validate_document(self.stages, text)

    def handler(
        self, context_fn: Optional[ContextFn] = None
    ) -> "GraphQLHandler":
        """
        Build a WSGI request handler serving this pipeline.

        Args:
            context_fn: Overrides the ``context_fn`` option of the pipeline.
        """
        from .http import GraphQLHandler

        return GraphQLHandler(
            self,
            context_fn=(
                context_fn if context_fn is not None else self.config.context_fn
            ),
        )


def build_pipeline(config: Any = None, **options: Any) -> Pipeline:
    """
    Build a :class:`Pipeline` from a :class:`PipelineConfig`, a mapping of
    options or keyword options (see :class:`PipelineConfig`).

    Raises:
        SchemaError: if the schema cannot be analyzed.
        ConfigError: if the options are invalid.
    """
    return Pipeline.build(config, **options)


def executor(config: Any = None, **options: Any) -> Callable[..., Result]:
    """
    Build a function running query documents.

    >>> run_query = executor(schema=SDL, query=QUERY_ROOT)  # doctest: +SKIP
    >>> run_query("{ person { name } }")  # doctest: +SKIP

    All pipeline options except ``context_fn`` are supported; use the
    ``context`` request option to pass per-call context.

    Raises:
        SchemaError: if the schema cannot be analyzed.
        ConfigError: if the options are invalid.
    """
    config = PipelineConfig.coerce(config, **options)
    if config.context_fn is not None:
        raise ConfigError(
            "context_fn is only supported by request handlers, use the "
            "`context` request option instead"
        )
    return Pipeline(config).execute


def handler(config: Any = None, **options: Any) -> "GraphQLHandler":
    """
    Build a WSGI request handler.

    Raises:
        SchemaError: if the schema cannot be analyzed.
        ConfigError: if the options are invalid.
    """
    return build_pipeline(config, **options).handler()


def string_validator(
    *sources: Any, validators: Optional[Sequence[Validator]] = None
) -> Callable[[Any], Optional[List[Dict[str, Any]]]]:
    """
    Build a function validating query documents against a schema.

    The function returns ``None`` for valid documents and the list of
    diagnostics otherwise; it never executes anything, so no resolvers are
    required.

    >>> validate = string_validator(
    ...     '''
    ...     type Person { id: ID!, name: String! }
    ...     type QueryRoot { person(id: ID!): Person }
    ...     schema { query: QueryRoot }
    ...     '''
    ... )
    >>> validate('{ person(id: "1") { name } }') is None
    True

    Raises:
        SchemaError: if the schema cannot be analyzed.
    """
    stages = Stages(analyze(*sources), validators=validators)

    def validate(text: Any) -> Optional[List[Dict[str, Any]]]:
        return validate_document(stages, text)

    return validate


__all__ = (
    "RequestOptions",
    "PipelineConfig",
    "Pipeline",
    "build_pipeline",
    "executor",
    "handler",
    "string_validator",
    "register_root_resolvers",
    "validate_document",
)
