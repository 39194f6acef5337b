# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Structured logging configuration using structlog.

The curses UI owns the terminal while it runs, so logs go either to stderr
(library / headless use) or to a file passed by the CLI.
"""

import logging
import sys
from typing import Any, cast

import structlog

# File opened by setup_logging; closed on reconfigure or close_logging()
_log_stream = None


def setup_logging(level: str = "INFO", format: str = "console", log_file=None) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for machine-readable output, "console" otherwise
        log_file: Optional path; when set, events are appended to it
    """
    global _log_stream

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=log_file is None))

    previous = _log_stream
    if log_file is not None:
        _log_stream = open(log_file, "a", encoding="utf-8")
        factory = structlog.PrintLoggerFactory(_log_stream)
    else:
        _log_stream = None
        factory = structlog.PrintLoggerFactory(sys.stderr)

    level_num = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=factory,
        cache_logger_on_first_use=False,
    )
    if previous is not None:
        previous.close()


def close_logging() -> None:
    """Closes the log file, if any, and restores structlog's defaults."""
    global _log_stream
    if _log_stream is None:
        return
    structlog.reset_defaults()
    _log_stream.close()
    _log_stream = None


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to the given module name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
