# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Cross-field dependency index and cache invalidation."""

from types import MappingProxyType

from ..errors import SchemaError
from ..logging import get_logger
from ..schema import CommandSource, FileListSource, StaticSource
from .substitution import template_paths

logger = get_logger(__name__)


class DependencyIndex:
    """path -> frozenset of field ids whose option source depends on it.

    Built once from the full descriptor table and read-only afterwards;
    a schema reload builds a new index instead of mutating this one.
    """

    def __init__(self, dependents=None):
        self._dependents = MappingProxyType(
            {path: frozenset(fields) for path, fields in (dependents or {}).items()}
        )

    @classmethod
    def build(cls, descriptors):
        dependents = {}
        for field_id, descriptor in descriptors.items():
            if isinstance(descriptor, StaticSource):
                continue
            for path in descriptor.depends_on:
                dependents.setdefault(path, set()).add(field_id)
        return cls(dependents)

    def dependents(self, path):
        return self._dependents.get(path, frozenset())

    def paths(self):
        return list(self._dependents)

    def __len__(self):
        return len(self._dependents)


def undeclared_dependencies(descriptor):
    """Paths a command template or file pattern references but depends_on omits."""
    if isinstance(descriptor, CommandSource):
        texts = [descriptor.template, descriptor.cwd]
    elif isinstance(descriptor, FileListSource):
        texts = [descriptor.pattern, descriptor.directory]
    else:
        return []
    referenced = []
    for text in texts:
        for path in template_paths(text):
            if path not in referenced:
                referenced.append(path)
    return [path for path in referenced if path not in descriptor.depends_on]


def check_declared_dependencies(descriptors, strict=False):
    """Warns about, or with `strict` rejects, undeclared template references."""
    problems = {}
    for field_id, descriptor in descriptors.items():
        missing = undeclared_dependencies(descriptor)
        if missing:
            problems[field_id] = missing
            logger.warning("undeclared_dependencies", field_id=field_id, paths=missing)
    if strict and problems:
        detail = "; ".join(f"{f}: {', '.join(p)}" for f, p in problems.items())
        raise SchemaError(f"depends_on is missing referenced paths ({detail})")
    return problems


class DependencyTracker:

    def __init__(self, index, cache):
        self.index = index
        self.cache = cache

    def on_field_changed(self, path):
        """Invalidates the cache of every field depending on `path`."""
        dependents = self.index.dependents(path)
        for field_id in dependents:
            self.cache.invalidate(field_id)
        if dependents:
            logger.debug("dependents_invalidated", path=path, fields=sorted(dependents))
        return dependents
