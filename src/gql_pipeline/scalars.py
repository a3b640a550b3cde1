# -*- coding: utf-8 -*-
"""
Custom scalar codecs.

Codecs are registered by scalar name and turned into
:class:`py_gql.schema.ScalarType` implementations when the schema is analyzed.
A codec can only be registered for a custom scalar explicitly declared in the
schema sources (``scalar Name``); registering a codec for an undeclared or
built-in scalar fails pipeline construction.

>>> registry = ScalarRegistry({"NumericalID": {"encode": str, "decode": int}})
>>> registry["NumericalID"].decode("42")
42
"""

import collections.abc
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional

from py_gql.schema import ScalarType

from .exc import ConfigError

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]

SPECIFIED_SCALAR_NAMES = frozenset(
    ("Int", "Float", "String", "Boolean", "ID")
)


class ScalarCodec:
    """
    Encoder / decoder pair for a custom scalar.

    Args:
        encode: Convert a Python value into a JSON serializable scalar
            (outgoing values).
        decode: Convert a JSON scalar into a Python value (incoming variables
            and literals).

    Raise :py:class:`ValueError` or :py:class:`TypeError` from either function
    to signify that a value is invalid.
    """

    __slots__ = ("encode", "decode")

    def __init__(self, encode: Encoder, decode: Decoder):
        self.encode = encode
        self.decode = decode

    def __repr__(self) -> str:
        return "<ScalarCodec encode=%r decode=%r>" % (self.encode, self.decode)

    @classmethod
    def from_value(cls, name: str, value: Any) -> "ScalarCodec":
        """
        Build a codec from a :class:`ScalarCodec`, a mapping with ``encode``
        and ``decode`` keys or an ``(encode, decode)`` pair.

        Raises:
            ConfigError: if the value cannot be interpreted as a codec.
        """
        if isinstance(value, cls):
            codec = value
        elif isinstance(value, collections.abc.Mapping):
            try:
                codec = cls(value["encode"], value["decode"])
            except KeyError as err:
                raise ConfigError(
                    'Scalar "%s" is missing its "%s" function'
                    % (name, err.args[0])
                )
        elif isinstance(value, tuple) and len(value) == 2:
            codec = cls(*value)
        else:
            raise ConfigError(
                'Invalid codec for scalar "%s": expected an encode / decode '
                "pair but got %r" % (name, value)
            )

        if not (callable(codec.encode) and callable(codec.decode)):
            raise ConfigError(
                'Scalar "%s" encode and decode must be callables' % name
            )

        return codec


class ScalarRegistry(collections.abc.Mapping):
    """
    Read-only mapping of ``scalar name -> ScalarCodec``.
    """

    __slots__ = ("_codecs",)

    def __init__(self, codecs: Optional[Mapping[str, Any]] = None):
        self._codecs = {
            name: ScalarCodec.from_value(name, value)
            for name, value in (codecs or {}).items()
        }

    def __getitem__(self, name: str) -> ScalarCodec:
        return self._codecs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._codecs)

    def __len__(self) -> int:
        return len(self._codecs)

    def check(self, declared: Iterable[str]) -> None:
        """
        Ensure every codec targets a custom scalar declared in the schema.

        Args:
            declared: Names of the scalars declared in the schema sources

        Raises:
            ConfigError: if any codec targets a built-in or undeclared scalar.
        """
        declared = set(declared)
        builtins = sorted(
            n for n in self._codecs if n in SPECIFIED_SCALAR_NAMES
        )
        if builtins:
            raise ConfigError(
                "Cannot override built-in scalar(s) %s"
                % ", ".join('"%s"' % n for n in builtins)
            )

        unknown = sorted(n for n in self._codecs if n not in declared)
        if unknown:
            raise ConfigError(
                "Scalar codec(s) registered for undeclared scalar(s) %s"
                % ", ".join('"%s"' % n for n in unknown)
            )

    def to_types(self) -> List[ScalarType]:
        return [
            ScalarType(name, serialize=codec.encode, parse=codec.decode)
            for name, codec in self._codecs.items()
        ]
