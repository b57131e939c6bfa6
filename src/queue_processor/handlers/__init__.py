"""Handlers shipped with the package, and loading of user handlers by module path."""

import importlib
import logging
import os
import sys

from queue_processor.errors import ConfigurationError
from queue_processor.handlers.base import BaseHandler, FunctionHandler

logger = logging.getLogger(__name__)

DEFAULT_HANDLER = "queue_processor.handlers.log_message"


def load_handler(module_name: str, handlers_path: list[str] | None = None) -> BaseHandler:
    """Import module_name and return an instance of its Handler class.

    Args:
        module_name: Dotted module path exposing a Handler class.
        handlers_path: Directories appended to sys.path before importing.

    Raises:
        ConfigurationError: If the module cannot be imported or has no Handler.
    """
    for path in handlers_path or []:
        if os.path.exists(path) and path not in sys.path:
            sys.path.append(path)
    try:
        handler_module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import handler module {module_name}: {e}") from e
    handler_class = getattr(handler_module, "Handler", None)
    if handler_class is None:
        raise ConfigurationError(f"No Handler class in module {module_name}")
    handler = handler_class()
    if not hasattr(handler, "process"):
        raise ConfigurationError(f"Handler in {module_name} has no process method")
    logger.debug("Loaded handler %r from %s", handler, module_name)
    return handler


__all__ = ["DEFAULT_HANDLER", "BaseHandler", "FunctionHandler", "load_handler"]
