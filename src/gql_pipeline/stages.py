# -*- coding: utf-8 -*-
"""
Stage functions of the request lifecycle, bound to an analyzed schema.

Each stage either returns its output or raises the
:class:`~gql_pipeline.exc.RequestError` subclass matching the stage:

- :meth:`Stages.parse` -> :class:`~gql_pipeline.exc.ParseError`
- :meth:`Stages.validate` -> :class:`~gql_pipeline.exc.ValidationError`
- :meth:`Stages.canonicalize` ->
  :class:`~gql_pipeline.exc.CanonicalizationError`
- :meth:`Stages.execute` -> :class:`~gql_pipeline.exc.ExecutionError`
"""

import collections.abc
from typing import (
    Any,
    Collection,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
)

from py_gql import exc as _gql_exc
from py_gql.execution import get_operation
from py_gql.lang import ast as _ast, parse
from py_gql.utilities import coerce_variable_values
from py_gql.validation import Validator, validate_ast

from .directives import DirectiveApplier, DirectiveRegistry
from .engine import Engine
from .exc import (
    CanonicalizationError,
    ExecutionError,
    ParseError,
    ValidationError,
)
from .schema_source import AnalyzedSchema


class CanonicalOperation:
    """
    Single operation ready for resolution.

    The document only contains the selected operation and the fragments it
    references, with directive handlers already applied.

    Attributes:
        document (py_gql.lang.ast.Document): Canonical document
        operation (py_gql.lang.ast.OperationDefinition): Selected operation
        operation_type (str): ``query``, ``mutation`` or ``subscription``
        operation_name (Optional[str]): Operation name if any
        variables (Dict[str, Any]): Raw variable values
        coerced_variables (Dict[str, Any]): Variable values coerced against
            the operation's variable definitions
    """

    __slots__ = (
        "document",
        "operation",
        "operation_type",
        "operation_name",
        "variables",
        "coerced_variables",
    )

    def __init__(
        self,
        document: _ast.Document,
        operation: _ast.OperationDefinition,
        variables: Mapping[str, Any],
        coerced_variables: Mapping[str, Any],
    ):
        self.document = document
        self.operation = operation
        self.operation_type = operation.operation  # type: str
        self.operation_name = (
            operation.name.value if operation.name else None
        )  # type: Optional[str]
        self.variables = dict(variables)
        self.coerced_variables = dict(coerced_variables)

    def __repr__(self) -> str:
        return "<CanonicalOperation %s %s>" % (
            self.operation_type,
            self.operation_name or "<anonymous>",
        )


def referenced_fragments(
    operation: _ast.OperationDefinition,
    fragments: Mapping[str, _ast.FragmentDefinition],
) -> List[_ast.FragmentDefinition]:
    """
    Fragments transitively referenced by an operation, in discovery order.
    """
    seen = set()  # type: Set[str]
    found = []  # type: List[_ast.FragmentDefinition]
    stack = [operation.selection_set]  # type: List[_ast.SelectionSet]

    while stack:
        selection_set = stack.pop()
        for selection in selection_set.selections:
            if isinstance(selection, _ast.FragmentSpread):
                name = selection.name.value
                if name in seen or name not in fragments:
                    continue
                seen.add(name)
                found.append(fragments[name])
                stack.append(fragments[name].selection_set)
            elif selection.selection_set is not None:
                stack.append(selection.selection_set)

    return found


class Stages:
    """
    Stage functions closed over a single analyzed schema.

    Instances hold no per-request state and can be shared across threads.

    Args:
        analyzed: Analyzed schema
        engine: Resolution engine settings
        directives: Directive handlers
        validators: Validators used in place of
            :func:`py_gql.validation.default_validator`, see
            :func:`py_gql.validation.validate_ast`
        root: Root value passed to top level resolvers
    """

    __slots__ = ("analyzed", "engine", "directives", "validators", "root")

    def __init__(
        self,
        analyzed: AnalyzedSchema,
        engine: Optional[Engine] = None,
        directives: Optional[DirectiveRegistry] = None,
        validators: Optional[Sequence[Validator]] = None,
        root: Any = None,
    ):
        self.analyzed = analyzed
        self.engine = engine if engine is not None else Engine()
        self.engine.bind(analyzed.schema, analyzed.subscription_schema)
        self.directives = (
            directives if directives is not None else DirectiveRegistry()
        )
        self.validators = list(validators) if validators is not None else None
        self.root = root

    def parse(self, text: Any) -> _ast.Document:
        if not isinstance(text, (str, bytes)) or not text.strip():
            raise ParseError(["Must provide a query string"])
        try:
            return parse(text)
        except _gql_exc.GraphQLSyntaxError as err:
            raise ParseError([err])

    def validate(self, document: _ast.Document) -> None:
        result = validate_ast(
            self.analyzed.schema, document, validators=self.validators
        )
        if not result:
            raise ValidationError(result.errors)

    def canonicalize(
        self,
        document: _ast.Document,
        operation_name: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        allowed: Optional[Collection[str]] = None,
    ) -> CanonicalOperation:
        """
        Select the operation to run, coerce its variables and apply directive
        handlers.

        Args:
            document: Validated document
            operation_name: Operation to select; required when the document
                contains more than one operation
            variables: Raw variable values
            allowed: Restrict the operation types which can be selected

        Raises:
            CanonicalizationError:
        """
        if operation_name is not None and not isinstance(operation_name, str):
            raise CanonicalizationError(
                [
                    "Expected operation name to be a string but got %s"
                    % type(operation_name).__name__
                ]
            )

        if variables is None:
            variables = {}
        elif not isinstance(variables, collections.abc.Mapping):
            raise CanonicalizationError(
                [
                    "Expected variables to be a mapping but got %s"
                    % type(variables).__name__
                ]
            )

        try:
            operation = get_operation(document, operation_name)
        except _gql_exc.GraphQLError as err:
            raise CanonicalizationError([err])

        operation_type = operation.operation
        if operation_type not in self.analyzed.root_types:
            raise CanonicalizationError(
                ["Schema doesn't support %s operation" % operation_type]
            )

        if allowed is not None and operation_type not in allowed:
            raise CanonicalizationError(
                [
                    "Cannot perform %s operation, allowed operations are: %s"
                    % (operation_type, ", ".join(sorted(allowed)))
                ]
            )

        try:
            coerced = coerce_variable_values(
                self.analyzed.schema, operation, variables
            )
        except _gql_exc.VariablesCoercionError as err:
            raise CanonicalizationError(err.errors)
        except _gql_exc.GraphQLError as err:
            raise CanonicalizationError([err])

        canonical = _ast.Document(
            definitions=[
                operation,
                *referenced_fragments(operation, document.fragments),
            ]
        )

        try:
            DirectiveApplier(
                self.analyzed.schema, self.directives, coerced
            ).visit(canonical)
        except _gql_exc.GraphQLError as err:
            raise CanonicalizationError([err])

        return CanonicalOperation(canonical, operation, variables, coerced)

    def execute(
        self, canonical: CanonicalOperation, environment: Any = None
    ) -> Any:
        """
        Resolve a canonical operation.

        Returns:
            Resolved data

        Raises:
            ExecutionError: if the resolution engine reported any error; the
                exception carries the partial data.
        """
        if canonical.operation_type == "subscription":
            schema = self.analyzed.subscription_schema
            # Subscription roots are resolved once, like a query.
            canonical.operation.operation = "query"
        else:
            schema = self.analyzed.schema

        try:
            result = self.engine.run(
                schema,
                canonical.document,
                operation_name=canonical.operation_name,
                coerced_variables=canonical.coerced_variables,
                context=environment,
                root=self.root,
            )
        except _gql_exc.VariablesCoercionError as err:
            raise ExecutionError(err.errors)
        except _gql_exc.GraphQLError as err:
            raise ExecutionError([err])

        if result.errors:
            raise ExecutionError(result.errors, data=result.data)

        return result.data
