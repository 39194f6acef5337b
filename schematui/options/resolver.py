# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Produces option lists from option source descriptors.

`OptionResolver.resolve` either returns a list of strings or raises one of
ExecutionError, ParseError or PatternError. It never retries and never
applies a timeout; callers decide what a failure means.
"""

import glob
import json
import os
import re
import signal
import subprocess
import threading

from ..errors import ExecutionError, ParseError, PatternError
from ..logging import get_logger
from ..schema import CommandSource, FileListSource, FunctionSource, StaticSource
from .substitution import as_lookup, substitute

logger = get_logger(__name__)


class FunctionRegistry:
    """Maps handles to in-process option functions.

    A function is called with the resolved parameters as positional
    arguments and returns a list of strings; raising means failure.
    Provider objects exposing `get_options()` may be registered too.
    """

    def __init__(self, functions=None):
        self._functions = dict(functions or {})
        self._lock = threading.Lock()

    def register(self, name, func=None):
        """Registers `func` under `name`; usable as a decorator."""
        def decorator(f):
            with self._lock:
                self._functions[name] = f
            return f

        if func is None:
            return decorator
        return decorator(func)

    def unregister(self, name):
        with self._lock:
            self._functions.pop(name, None)

    def get(self, name):
        with self._lock:
            return self._functions[name]

    def __contains__(self, name):
        with self._lock:
            return name in self._functions

    def names(self):
        with self._lock:
            return sorted(self._functions)


def parse_json_options(text):
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Output is not valid JSON: {e}") from e
    return check_options(data)


def parse_line_options(text):
    return [line.strip() for line in text.splitlines() if line.strip()]


def check_options(data):
    if not isinstance(data, (list, tuple)):
        raise ParseError(f"Expected a list of strings, got {type(data).__name__}")
    for item in data:
        if not isinstance(item, str):
            raise ParseError(f"Expected a list of strings, found {type(item).__name__} item")
    return list(data)


def check_pattern(pattern):
    if not pattern.strip():
        raise PatternError("Empty file pattern")
    start = pattern.find('[')
    while start != -1:
        end = pattern.find(']', start + 2)
        if end == -1:
            raise PatternError(f"Unbalanced '[' in pattern: {pattern}")
        start = pattern.find('[', end + 1)


def terminate_process(process):
    """Stops a running command along with anything its shell started."""
    if process.poll() is not None:
        return
    if os.name == "posix":
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass
    else:
        process.terminate()


def pinned_lookup(descriptor, params, lookup=None):
    """A lookup answering depends_on paths from `params`, others live."""
    pinned = dict(zip(descriptor.depends_on, params))
    live = as_lookup(lookup) if lookup is not None else None

    def get(path):
        if path in pinned:
            return pinned[path]
        return live(path) if live is not None else None

    return get


class OptionResolver:

    def __init__(self, registry=None, cwd=None):
        self.registry = registry if registry is not None else FunctionRegistry()
        self.cwd = cwd

    def resolve(self, descriptor, params=(), lookup=None, on_spawn=None):
        """Options for `descriptor` given its resolved parameter tuple.

        `params` holds the values of `descriptor.depends_on` in declared
        order; template tokens for those paths are filled from it so the
        result always matches the cache key it is stored under.
        """
        if isinstance(descriptor, StaticSource):
            return list(descriptor.values)
        get = pinned_lookup(descriptor, params, lookup)
        if isinstance(descriptor, CommandSource):
            return self.resolve_command(descriptor, get, on_spawn)
        elif isinstance(descriptor, FunctionSource):
            return self.resolve_function(descriptor, params)
        elif isinstance(descriptor, FileListSource):
            return self.resolve_file_list(descriptor, get)
        raise TypeError(f"Unknown option source: {descriptor!r}")

    def resolve_command(self, descriptor, lookup, on_spawn=None):
        command = substitute(descriptor.template, lookup)
        cwd = descriptor.cwd or self.cwd
        if cwd:
            cwd = os.path.expanduser(substitute(cwd, lookup))
        stdout = self.run_command(command, cwd, on_spawn)
        if descriptor.output == "lines":
            return parse_line_options(stdout)
        return parse_json_options(stdout)

    def run_command(self, command, cwd=None, on_spawn=None):
        logger.debug("command_started", command=command, cwd=cwd)
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise ExecutionError(f"Cannot launch command: {e}") from e

        if on_spawn is not None:
            on_spawn(process)
        stdout, stderr = process.communicate()
        stderr = stderr.decode("utf-8", errors="replace").strip()

        if process.returncode != 0:
            logger.warning("command_failed", command=command,
                           exit_code=process.returncode, stderr=stderr)
            raise ExecutionError(
                f"Command exited with status {process.returncode}: {stderr or command}",
                exit_code=process.returncode,
                stderr=stderr,
            )
        if stderr:
            logger.debug("command_stderr", command=command, stderr=stderr)
        try:
            return stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Command output is not UTF-8: {e}") from e

    def resolve_function(self, descriptor, params):
        try:
            func = self.registry.get(descriptor.handle)
        except KeyError:
            raise ExecutionError(f"Unknown option function: {descriptor.handle}") from None

        try:
            if hasattr(func, "get_options"):
                result = func.get_options()
            else:
                result = func(*params)
        except Exception as e:
            logger.warning("function_failed", handle=descriptor.handle, error=str(e))
            raise ExecutionError(f"Option function {descriptor.handle} failed: {e}") from e
        return check_options(result)

    def resolve_file_list(self, descriptor, lookup):
        pattern = substitute(descriptor.pattern, lookup).strip()
        check_pattern(pattern)
        directory = None
        if descriptor.directory:
            directory = os.path.expanduser(substitute(descriptor.directory, lookup))
            pattern = os.path.join(directory, pattern)
        pattern = os.path.expanduser(pattern)

        extract = None
        if descriptor.extract:
            try:
                extract = re.compile(descriptor.extract)
            except re.error as e:
                raise PatternError(f"Invalid extract expression {descriptor.extract!r}: {e}") from e

        results = []
        for path in glob.glob(pattern, recursive=True):
            if extract is not None:
                match = extract.search(path)
                if match is None:
                    continue
                results.append(match.group(1) if extract.groups else match.group(0))
            elif directory is not None:
                results.append(os.path.relpath(path, directory))
            else:
                results.append(path)
        return sorted(results)
