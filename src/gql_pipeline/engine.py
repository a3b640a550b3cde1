# -*- coding: utf-8 -*-
"""
Resolution engine configuration.

The resolution engine is a py-gql executor driven the same way as
:func:`py_gql.execution.execute`. An :class:`Engine` bundles the settings used
for every request: the executor class implementing the resolution algorithm,
the middlewares and the default resolver among others.
"""

import collections.abc
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Type

from py_gql.exc import (
    GraphQLError as _GraphQLError,
    InvalidOperationError,
    ResolverError,
    ScalarSerializationError,
)
from py_gql.execution import (
    BlockingExecutor,
    Executor,
    GraphQLResult,
    Instrumentation,
)
from py_gql.execution.get_operation import get_operation_with_type
from py_gql.execution.runtime import BlockingRuntime
from py_gql.lang import ast as _ast
from py_gql.schema import Schema
from py_gql.utilities import coerce_variable_values

from .exc import ConfigError

logger = logging.getLogger(__name__)

Resolver = Callable[..., Any]
Middleware = Callable[..., Any]


def trap_resolver_errors(next_, root, ctx, info, **args):
    """
    Middleware reporting unexpected resolver exceptions as field errors.

    The default executor only handles :class:`py_gql.exc.ResolverError`, any
    other exception would abort the whole request. This converts them into
    ``ResolverError`` so that the field resolves to ``null`` and the error is
    included in the response alongside partial data.
    """
    try:
        return next_(root, ctx, info, **args)
    except _GraphQLError:
        raise
    except Exception as err:
        logger.exception(
            "Unexpected error while resolving %s.%s",
            info.parent_type.name,
            info.field_definition.name,
        )
        raise ResolverError(str(err) or err.__class__.__name__)


class TrapScalarErrors:
    """
    Executor mixin reporting scalar serialization failures as field errors.

    Executors raise a :py:class:`RuntimeError` when a leaf value cannot be
    serialized, which aborts the whole execution. This reports the failure
    on the offending field only, which then resolves to ``null``, so that
    sibling fields keep their data.
    """

    __slots__ = ()

    def complete_value(self, field_type, nodes, path, info, resolved_value):
        try:
            return super().complete_value(  # type: ignore
                field_type, nodes, path, info, resolved_value
            )
        except RuntimeError as err:
            if not isinstance(err.__cause__, ScalarSerializationError):
                raise
            self.add_error(  # type: ignore
                ResolverError(str(err), nodes=nodes, path=path), path, nodes[0]
            )
            return None


def trapping_executor(executor_cls: Type[Executor]) -> Type[Executor]:
    """
    Extend an executor class with :class:`TrapScalarErrors`.
    """
    if issubclass(executor_cls, TrapScalarErrors):
        return executor_cls
    return type(
        executor_cls.__name__, (TrapScalarErrors, executor_cls), {}
    )  # type: ignore


class Engine:
    """
    Settings of the resolution engine.

    Args:
        executor_cls: Executor class to use. This **must** be a subclass of
            :class:`py_gql.execution.Executor`; the pipeline is synchronous so
            blocking executors are expected.

        middlewares: List of middleware functions wrapping the resolution of
            **all** fields.

        default_resolver: Alternative default resolver, used for fields that
            do not define a resolver. It is installed on the schemas passed
            to :meth:`bind`.

        disable_introspection: Prevent schema introspection.

        runtime: Runtime against which resolvers are executed, see
            :mod:`py_gql.execution.runtime`. Runtimes returning futures (such
            as `ThreadPoolRuntime`) are waited on; awaitables are not
            supported.

        trap_errors: Report unexpected resolver exceptions and scalar
            serialization failures as field errors instead of failing the
            whole execution (see :func:`trap_resolver_errors` and
            :class:`TrapScalarErrors`).
    """

    __slots__ = (
        "executor_cls",
        "middlewares",
        "default_resolver",
        "disable_introspection",
        "runtime",
        "trap_errors",
        "_executor_cls",
    )

    def __init__(
        self,
        executor_cls: Type[Executor] = BlockingExecutor,
        middlewares: Optional[Sequence[Middleware]] = None,
        default_resolver: Optional[Resolver] = None,
        disable_introspection: bool = False,
        runtime: Any = None,
        trap_errors: bool = True,
    ):
        if not isinstance(executor_cls, type) or not issubclass(
            executor_cls, Executor
        ):
            raise ConfigError(
                "Expected executor_cls to be a subclass of "
                "py_gql.execution.Executor but got %r" % (executor_cls,)
            )

        if middlewares is not None and any(
            not callable(m) for m in middlewares
        ):
            raise ConfigError("Middlewares must be callables")

        if default_resolver is not None and not callable(default_resolver):
            raise ConfigError("Default resolver must be callable")

        self.executor_cls = executor_cls
        self.middlewares = tuple(middlewares or ())
        self.default_resolver = default_resolver
        self.disable_introspection = disable_introspection
        self.runtime = runtime
        self.trap_errors = trap_errors
        self._executor_cls = (
            trapping_executor(executor_cls) if trap_errors else executor_cls
        )

    def __repr__(self) -> str:
        return "<Engine executor_cls=%s trap_errors=%s>" % (
            self.executor_cls.__name__,
            self.trap_errors,
        )

    @classmethod
    def coerce(cls, value: Any) -> "Engine":
        """
        Build an engine from the ``engine`` pipeline option.

        Args:
            value: ``None`` (default engine), an :class:`Engine` instance, an
                executor class or a mapping of :class:`Engine` arguments.

        Raises:
            ConfigError: if the value cannot be interpreted as an engine.
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, type):
            return cls(executor_cls=value)
        if isinstance(value, collections.abc.Mapping):
            try:
                return cls(**value)
            except TypeError as err:
                raise ConfigError("Invalid engine options: %s" % err)
        raise ConfigError("Invalid engine %r" % (value,))

    def _middlewares(self) -> List[Middleware]:
        if self.trap_errors:
            return [*self.middlewares, trap_resolver_errors]
        return list(self.middlewares)

    def bind(self, *schemas: Optional[Schema]) -> None:
        """
        Install the engine's default resolver on the given schemas.

        py-gql executors look up the default resolver on the schema, this must
        be called before resolving anything against these schemas.
        """
        if self.default_resolver is None:
            return
        for schema in schemas:
            if schema is not None:
                schema.default_resolver = self.default_resolver

    def run(
        self,
        schema: Schema,
        document: _ast.Document,
        *,
        operation_name: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        coerced_variables: Optional[Mapping[str, Any]] = None,
        context: Any = None,
        root: Any = None
    ) -> GraphQLResult:
        """
        Resolve an operation.

        This follows :func:`py_gql.execution.execute` but accepts variables
        which have already been coerced, in which case they are used as is
        and custom scalars are not decoded a second time.

        Args:
            schema: Schema to resolve against
            document: Document holding the operation
            operation_name: Operation to resolve
            variables: Raw variable values, ignored if ``coerced_variables``
                is set
            coerced_variables: Variable values already coerced against the
                operation's variable definitions
            context: Resolution environment passed to resolvers
            root: Root value passed to top level resolvers

        Raises:
            py_gql.exc.ExecutionError: if the operation cannot be executed.
            py_gql.exc.VariablesCoercionError: if variables cannot be coerced.
        """
        runtime = self.runtime or BlockingRuntime()
        instrumentation = Instrumentation()

        operation, root_type = get_operation_with_type(
            schema, document, operation_name
        )
        if operation.operation not in ("query", "mutation"):
            raise InvalidOperationError(
                "Cannot resolve %s operation" % operation.operation
            )

        if coerced_variables is None:
            coerced_variables = coerce_variable_values(
                schema, operation, variables or {}
            )

        executor = self._executor_cls(
            schema,
            document,
            dict(coerced_variables),
            context,
            instrumentation=instrumentation,
            disable_introspection=self.disable_introspection,
            middlewares=self._middlewares(),
            runtime=runtime,
        )

        if operation.operation == "mutation":
            exe_fn = executor.execute_fields_serially
        else:
            exe_fn = executor.execute_fields

        instrumentation.on_execution_start()

        def _on_finish(data):
            instrumentation.on_execution_end()
            return GraphQLResult(data=data, errors=executor.errors)

        result = runtime.ensure_wrapped(
            runtime.map_value(
                runtime.unwrap_value(
                    exe_fn(
                        root_type,
                        root,
                        [],
                        executor.collect_fields(
                            root_type, operation.selection_set.selections
                        ),
                    )
                ),
                _on_finish,
            )
        )

        # Thread pool based runtimes hand out futures.
        if not isinstance(result, GraphQLResult) and callable(
            getattr(result, "result", None)
        ):
            result = result.result()

        return result
