# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""`${section.field}` substitution against live config values."""

import re

TOKEN_PATTERN = re.compile(r"\$\{([^}]+)\}")


def as_lookup(lookup):
    if callable(lookup):
        return lookup
    return lookup.get


def format_value(value):
    """String form of a scalar config value; missing or non-scalar is ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


def substitute(template, lookup):
    """Replaces every `${path}` token in `template` with its current value.

    `lookup` is a callable `path -> value` or anything with a `get` method,
    such as a ConfigStore. Missing values become the empty string; this
    never fails.
    """
    get = as_lookup(lookup)
    values = {}

    def replace(match):
        path = match.group(1).strip()
        if path not in values:
            values[path] = format_value(get(path))
        return values[path]

    return TOKEN_PATTERN.sub(replace, template)


def template_paths(template):
    """Paths referenced by `template`, in order of first appearance."""
    paths = []
    for match in TOKEN_PATTERN.finditer(template or ""):
        path = match.group(1).strip()
        if path not in paths:
            paths.append(path)
    return paths


def resolve_params(paths, lookup):
    """The current value of each path, in declared order, as strings."""
    get = as_lookup(lookup)
    return tuple(format_value(get(path)) for path in paths)
