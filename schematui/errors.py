# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Exception hierarchy shared by the schema, config and option layers."""


class SchemaTUIError(Exception):
    """Base class for every error raised by schematui."""


class SchemaError(SchemaTUIError):
    """The schema could not be loaded or failed validation."""


class ConfigError(SchemaTUIError):
    """A config file could not be read or written."""


class ValueValidationError(SchemaTUIError):
    """A value was rejected by its field definition."""

    def __init__(self, path, message):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ResolutionError(SchemaTUIError):
    """Producing the option list for a field failed.

    Never propagated out of the options service; it is logged, recorded
    against the field and turned into an empty option list.
    """

    kind = "resolution"


class ExecutionError(ResolutionError):
    """The command could not be launched, exited non-zero, or the
    registered function reported failure."""

    kind = "execution"

    def __init__(self, message, exit_code=None, stderr=""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class ParseError(ResolutionError):
    """Output was not a list of strings."""

    kind = "parse"


class PatternError(ResolutionError):
    """A file-list pattern or extract expression is malformed."""

    kind = "pattern"
