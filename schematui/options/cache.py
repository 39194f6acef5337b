# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""Memoized option lists keyed by field and resolved parameters."""

import threading
import time
from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..errors import ResolutionError
from ..logging import get_logger
from ..schema import StaticSource
from .resolver import OptionResolver
from .substitution import resolve_params

logger = get_logger(__name__)


class CacheKey(NamedTuple):
    field_id: str
    params: tuple


@dataclass(frozen=True)
class CacheEntry:
    options: tuple
    resolved_at: float
    ttl: Optional[float] = None

    def is_expired(self, now):
        return self.ttl is not None and now - self.resolved_at > self.ttl


class _Bucket:
    """Every cached parameterization of one field, behind its own lock."""

    __slots__ = ("lock", "entries")

    def __init__(self):
        self.lock = threading.Lock()
        self.entries = {}


class OptionCache:
    """Caches resolver output per (field, parameter tuple).

    Each field has its own lock, and no lock is held while the resolver
    runs, so a slow command for one field never blocks reads, writes or
    invalidation of another.
    """

    def __init__(self, resolver=None, clock=time.monotonic):
        self.resolver = resolver if resolver is not None else OptionResolver()
        self.clock = clock
        self._buckets = {}
        self._errors = {}
        self._generation = 0
        self._lock = threading.Lock()

    def _bucket(self, field_id, create=False):
        with self._lock:
            bucket = self._buckets.get(field_id)
            if bucket is None and create:
                bucket = self._buckets[field_id] = _Bucket()
            return bucket

    def get(self, key):
        """Cached options for `key`, or None when missing or expired."""
        bucket = self._bucket(key.field_id)
        if bucket is None:
            return None
        with bucket.lock:
            entry = bucket.entries.get(key.params)
            if entry is None:
                return None
            if entry.is_expired(self.clock()):
                del bucket.entries[key.params]
                logger.debug("options_cache_expired", field_id=key.field_id)
                return None
            return list(entry.options)

    @property
    def generation(self):
        """Bumped by `clear`; results resolved under an older one are dropped."""
        with self._lock:
            return self._generation

    def put(self, key, options, ttl=None, generation=None):
        """Stores options for `key`; returns None if `generation` is stale."""
        entry = CacheEntry(tuple(options), self.clock(), ttl)
        with self._lock:
            if generation is not None and generation != self._generation:
                return None
            bucket = self._buckets.get(key.field_id)
            if bucket is None:
                bucket = self._buckets[key.field_id] = _Bucket()
        # A clear() from here on leaves `bucket` detached, so the write is lost
        with bucket.lock:
            bucket.entries[key.params] = entry
        return entry

    def invalidate(self, field_id):
        """Drops every cached parameterization of `field_id`."""
        bucket = self._bucket(field_id)
        if bucket is None:
            return 0
        with bucket.lock:
            dropped = len(bucket.entries)
            bucket.entries.clear()
        if dropped:
            logger.debug("options_cache_invalidated", field_id=field_id, entries=dropped)
        return dropped

    def clear(self):
        with self._lock:
            self._buckets = {}
            self._errors = {}
            self._generation += 1

    def cached_params(self, field_id):
        """Parameter tuples currently cached for `field_id` (live or not)."""
        bucket = self._bucket(field_id)
        if bucket is None:
            return []
        with bucket.lock:
            return list(bucket.entries)

    def last_error(self, field_id):
        with self._lock:
            return self._errors.get(field_id)

    def key_for(self, field_id, descriptor, lookup):
        return CacheKey(field_id, resolve_params(descriptor.depends_on, lookup))

    def get_or_resolve(self, field_id, descriptor, lookup, on_spawn=None):
        """Options for a field, served from cache or freshly resolved.

        Failures are logged and recorded for `last_error`, never cached,
        and come back as an empty list.
        """
        if isinstance(descriptor, StaticSource):
            return list(descriptor.values)

        key = self.key_for(field_id, descriptor, lookup)
        cached = self.get(key)
        if cached is not None:
            logger.debug("options_cache_hit", field_id=field_id)
            return cached

        generation = self.generation
        try:
            options = self.resolver.resolve(descriptor, key.params, lookup, on_spawn=on_spawn)
        except ResolutionError as e:
            with self._lock:
                if generation == self._generation:
                    self._errors[field_id] = e
            logger.warning("options_resolution_failed", field_id=field_id,
                           kind=e.kind, error=str(e))
            return []

        if self.put(key, options, descriptor.ttl, generation) is None:
            logger.debug("options_discarded_after_clear", field_id=field_id)
            return list(options)
        with self._lock:
            self._errors.pop(field_id, None)
        logger.info("options_resolved", field_id=field_id, count=len(options))
        return list(options)
