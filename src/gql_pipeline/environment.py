# -*- coding: utf-8 -*-
"""
Resolution environments.

The resolution environment is the value passed to every resolver as its
``context`` argument. It is built for every request by merging, with later
values taking precedence:

1. The pipeline's base environment (``env`` option).
2. The context derived from the incoming HTTP request (``context_fn`` option,
   network handler only).
3. The per-call context map (``context`` request option).

The scalar codecs and directive handlers of the pipeline are attached to
every environment as read-only attributes and cannot be overridden by a
request.
"""

import collections.abc
from typing import Any, Dict, Iterator, Mapping, Optional

from .directives import DirectiveRegistry
from .exc import ConfigError
from .scalars import ScalarRegistry


class ResolutionEnvironment(collections.abc.Mapping):
    """
    Immutable mapping made available to resolvers.

    >>> env = ResolutionEnvironment({"db": "main", "locale": "en"})
    >>> env["db"]
    'main'
    """

    __slots__ = ("_values", "_scalars", "_directives")

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        scalars: Optional[ScalarRegistry] = None,
        directives: Optional[DirectiveRegistry] = None,
    ):
        self._values = dict(values or {})  # type: Dict[str, Any]
        self._scalars = scalars if scalars is not None else ScalarRegistry()
        self._directives = (
            directives if directives is not None else DirectiveRegistry()
        )

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return "<ResolutionEnvironment %r>" % self._values

    @property
    def scalars(self) -> ScalarRegistry:
        return self._scalars

    @property
    def directives(self) -> DirectiveRegistry:
        return self._directives


def _as_mapping(value: Any, source: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, collections.abc.Mapping):
        raise ConfigError(
            "%s must be a mapping but got %s" % (source, type(value).__name__)
        )
    return value


def build_environment(
    base: Optional[Mapping[str, Any]] = None,
    derived: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
    *,
    scalars: Optional[ScalarRegistry] = None,
    directives: Optional[DirectiveRegistry] = None
) -> ResolutionEnvironment:
    """
    Merge the environment layers of a request.

    Args:
        base: Base environment of the pipeline
        derived: Context derived from the incoming request
        context: Per-call context map

    Returns:
        Merged environment

    Raises:
        ConfigError: if any layer is not a mapping.
    """
    values = {}  # type: Dict[str, Any]
    values.update(_as_mapping(base, "Base environment"))
    values.update(_as_mapping(derived, "Derived context"))
    values.update(_as_mapping(context, "Request context"))
    return ResolutionEnvironment(values, scalars=scalars, directives=directives)
