"""railroute: railway-oriented pipelines for fallible steps.

Public API:
    - Result: the pipeline carrier (create_from, bind, ok_if, fail_if, async forms)
    - Contingency, ignore_input: step helpers
    - Reason types: InfoReason, ErrorReason, GenericError, ExceptionalError, PromiseRejection
    - Settings, settings_scope: configuration
"""

from __future__ import annotations

import logging

from railroute.config import (
    Settings,
    current_settings,
    resolve_settings,
    settings_scope,
)
from railroute.errors import (
    ConfigurationError,
    InternalError,
    MissingStateError,
    RailrouteError,
)
from railroute.reasons import (
    ErrorKind,
    ErrorReason,
    ExceptionalError,
    GenericError,
    InfoReason,
    PromiseRejection,
    Reason,
    ReasonKind,
)
from railroute.result import Result, create_from, create_from_async
from railroute.steps import Contingency, ignore_input

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("railroute")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("railroute").addHandler(logging.NullHandler())

__all__ = [
    "ConfigurationError",
    "Contingency",
    "ErrorKind",
    "ErrorReason",
    "ExceptionalError",
    "GenericError",
    "InfoReason",
    "InternalError",
    "MissingStateError",
    "PromiseRejection",
    "RailrouteError",
    "Reason",
    "ReasonKind",
    "Result",
    "Settings",
    "create_from",
    "create_from_async",
    "current_settings",
    "ignore_input",
    "resolve_settings",
    "settings_scope",
]
