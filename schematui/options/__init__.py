# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

from .cache import CacheEntry, CacheKey, OptionCache
from .facade import OptionsService, PendingOptions
from .resolver import FunctionRegistry, OptionResolver
from .substitution import format_value, resolve_params, substitute, template_paths
from .tracker import (
    DependencyIndex,
    DependencyTracker,
    check_declared_dependencies,
    undeclared_dependencies,
)

__all__ = [
    "CacheEntry",
    "CacheKey",
    "DependencyIndex",
    "DependencyTracker",
    "FunctionRegistry",
    "OptionCache",
    "OptionResolver",
    "OptionsService",
    "PendingOptions",
    "check_declared_dependencies",
    "format_value",
    "resolve_params",
    "substitute",
    "template_paths",
    "undeclared_dependencies",
]
