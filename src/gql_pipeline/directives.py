# -*- coding: utf-8 -*-
"""
Custom directive handlers.

A directive handler is a callable receiving the projection a directive is
attached to (a :class:`py_gql.lang.ast.Field`,
:class:`py_gql.lang.ast.FragmentSpread` or
:class:`py_gql.lang.ast.InlineFragment` node) and the coerced directive
arguments. It returns the projection to use in its place (the same node, a
modified node or a new node) or ``None`` to omit it from the operation.

Handlers are applied while canonicalizing an operation, i.e. after
validation and before any resolver runs. They can only be registered for
directives declared in the analyzed schema.

For example, the built-in ``@skip`` handler is defined as:

>>> def skip(projection, arguments):
...     return None if arguments["if"] else projection
"""

import collections.abc
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    Mapping,
    Optional,
    TypeVar,
    Union,
)

from py_gql.lang import ast as _ast
from py_gql.lang.visitor import DispatchingVisitor
from py_gql.schema import Schema
from py_gql.utilities import directive_arguments

from .exc import ConfigError

Projection = Union[_ast.Field, _ast.FragmentSpread, _ast.InlineFragment]
P = TypeVar("P", _ast.Field, _ast.FragmentSpread, _ast.InlineFragment)

DirectiveHandler = Callable[[Projection, Dict[str, Any]], Optional[Projection]]


def skip(projection: P, arguments: Mapping[str, Any]) -> Optional[P]:
    return None if arguments.get("if") else projection


def include(projection: P, arguments: Mapping[str, Any]) -> Optional[P]:
    return projection if arguments.get("if") else None


SPECIFIED_HANDLERS = {
    "skip": skip,
    "include": include,
}  # type: Dict[str, DirectiveHandler]


class DirectiveRegistry(collections.abc.Mapping):
    """
    Read-only mapping of ``directive name -> handler``.

    The handlers for ``@skip`` and ``@include`` are always registered and can
    be replaced by supplying a handler with the same name.
    """

    __slots__ = ("_handlers",)

    def __init__(self, handlers: Optional[Mapping[str, Any]] = None):
        self._handlers = dict(SPECIFIED_HANDLERS)
        for name, handler in (handlers or {}).items():
            if not callable(handler):
                raise ConfigError(
                    'Handler for directive "@%s" must be callable but got %r'
                    % (name, handler)
                )
            self._handlers[name] = handler

    def __getitem__(self, name: str) -> DirectiveHandler:
        return self._handlers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def check(self, schema: Schema) -> None:
        """
        Ensure every handler targets a directive declared in the schema.

        Raises:
            ConfigError: if any handler targets an undeclared directive.
        """
        unknown = sorted(
            n for n in self._handlers if n not in schema.directives
        )
        if unknown:
            raise ConfigError(
                "Directive handler(s) registered for undeclared directive(s) %s"
                % ", ".join('"@%s"' % n for n in unknown)
            )


class DirectiveApplier(DispatchingVisitor):
    """
    Visitor applying directive handlers to every projection of a document.

    Warning:
        Transformations are applied inline, the visited document is modified.

    Args:
        schema: Schema holding the directive definitions
        handlers: Directive handlers
        variables: Coerced variable values used when computing arguments

    Raises:
        py_gql.exc.CoercionError: when a directive argument cannot be coerced.
    """

    def __init__(
        self,
        schema: Schema,
        handlers: Mapping[str, DirectiveHandler],
        variables: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__()
        self.schema = schema
        self.handlers = handlers
        self.variables = variables or {}

    def apply(self, node: P) -> Optional[P]:
        handled = set()
        for directive in list(node.directives):
            name = directive.name.value
            handler = self.handlers.get(name)
            if handler is None:
                continue

            arguments = directive_arguments(
                self.schema.directives[name], node, self.variables
            )
            node = handler(node, arguments or {})
            if node is None:
                return None
            handled.add(name)

        if handled:
            node.directives = [
                d for d in node.directives if d.name.value not in handled
            ]
        return node

    def enter_field(self, node: _ast.Field) -> Optional[_ast.Field]:
        return self.apply(node)

    def enter_fragment_spread(
        self, node: _ast.FragmentSpread
    ) -> Optional[_ast.FragmentSpread]:
        return self.apply(node)

    def enter_inline_fragment(
        self, node: _ast.InlineFragment
    ) -> Optional[_ast.InlineFragment]:
        return self.apply(node)
