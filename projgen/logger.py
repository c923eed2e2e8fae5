"""Structured logging for projgen.

Log records go through the standard :mod:`logging` machinery and are rendered
by Rich's ``RichHandler``.  Call sites attach structured context with a
``fields`` mapping::

    logger = get_logger(__name__)
    logger.info("Workflow registered", fields={"workflow_id": wid, "kind": kind})

The fields are appended to the message as ``key=value`` pairs and are also
available on the record as ``record.fields`` for handlers that want them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

_ROOT_LOGGER_NAME = "projgen"


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter accepting a ``fields=`` keyword on every log call."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        fields: Mapping[str, Any] | None = kwargs.pop("fields", None)
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        if fields:
            extra["fields"] = dict(fields)
            msg = f"{msg} {format_fields(fields)}"
        else:
            extra.setdefault("fields", {})
        kwargs["extra"] = extra
        return msg, kwargs


def format_fields(fields: Mapping[str, Any]) -> str:
    """Render ``fields`` as space-separated ``key=value`` pairs."""
    return " ".join(f"{key}={value}" for key, value in fields.items())


def get_logger(name: str = _ROOT_LOGGER_NAME) -> StructuredLogger:
    """Return a structured logger under the ``projgen`` namespace."""
    if name != _ROOT_LOGGER_NAME and not name.startswith(f"{_ROOT_LOGGER_NAME}."):
        name = f"{_ROOT_LOGGER_NAME}.{name}"
    return StructuredLogger(logging.getLogger(name), {})


def setup_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Attach a ``RichHandler`` to the ``projgen`` logger.

    Safe to call more than once; an existing Rich handler is replaced rather
    than duplicated.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.propagate = False
