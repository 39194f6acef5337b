# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Schema-driven terminal configuration editor."""

from .actions import CustomCommandAction, ExternalEditorAction
from .app import SchemaTUI, SchemaTUIBuilder
from .config import ConfigLoader, ConfigSaver, ConfigStore, expand_env_vars
from .errors import (
    ConfigError,
    ExecutionError,
    ParseError,
    PatternError,
    ResolutionError,
    SchemaError,
    SchemaTUIError,
    ValueValidationError,
)
from .options import FunctionRegistry, OptionResolver, OptionsService
from .schema import (
    CommandSource,
    ConfigSchema,
    FileListSource,
    FunctionSource,
    SchemaField,
    SchemaSection,
    StaticSource,
    load_schema,
    parse_schema,
    validate_value,
)
from .settings import Settings

__version__ = "0.3.0"

__all__ = [
    "CommandSource",
    "ConfigError",
    "ConfigLoader",
    "ConfigSaver",
    "ConfigSchema",
    "ConfigStore",
    "CustomCommandAction",
    "ExecutionError",
    "ExternalEditorAction",
    "FileListSource",
    "FunctionRegistry",
    "FunctionSource",
    "OptionResolver",
    "OptionsService",
    "ParseError",
    "PatternError",
    "ResolutionError",
    "SchemaError",
    "SchemaField",
    "SchemaSection",
    "SchemaTUI",
    "SchemaTUIBuilder",
    "SchemaTUIError",
    "Settings",
    "StaticSource",
    "ValueValidationError",
    "expand_env_vars",
    "load_schema",
    "parse_schema",
    "validate_value",
]
