# -*- coding: utf-8 -*-
"""
gql_pipeline
~~~~~~~~~~~~

gql_pipeline runs GraphQL requests through a fixed lifecycle (parse,
validate, canonicalize, resolve and format) against a schema analyzed once
up front.

The main :mod:`gql_pipeline` package exposes the three ways to use a
pipeline: a bare executor (:func:`executor`), a WSGI request handler
(:func:`handler`) and a validator which never executes anything
(:func:`string_validator`).
"""

# flake8: noqa

from .version import __version__  # isort:skip

from .directives import DirectiveRegistry
from .engine import Engine
from .environment import ResolutionEnvironment
from .exc import (
    CanonicalizationError,
    ConfigError,
    ExecutionError,
    ParseError,
    PipelineError,
    RequestError,
    SchemaError,
    ValidationError,
)
from .http import GraphQLHandler
from .pipeline import (
    Pipeline,
    PipelineConfig,
    RequestOptions,
    build_pipeline,
    executor,
    handler,
    string_validator,
)
from .result import ErrorKind, Result
from .scalars import ScalarCodec, ScalarRegistry
from .schema_source import AnalyzedSchema, analyze

__all__ = (
    "__version__",
    "build_pipeline",
    "executor",
    "handler",
    "string_validator",
    "analyze",
    "Pipeline",
    "PipelineConfig",
    "RequestOptions",
    "Result",
    "ErrorKind",
    "AnalyzedSchema",
    "Engine",
    "ResolutionEnvironment",
    "ScalarCodec",
    "ScalarRegistry",
    "DirectiveRegistry",
    "GraphQLHandler",
    "PipelineError",
    "SchemaError",
    "ConfigError",
    "RequestError",
    "ParseError",
    "ValidationError",
    "CanonicalizationError",
    "ExecutionError",
)
