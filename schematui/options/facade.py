# MIT License
# 
# Copyright 2025 Nemesis
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated documentation files (the “Software”), to deal in the Software without restriction, including without limitation the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of the Software.
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

"""The single entry point the UI uses to get options for a field."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

from ..logging import get_logger
from ..schema import ConfigSchema
from ..settings import Settings
from .cache import OptionCache
from .resolver import OptionResolver, terminate_process
from .tracker import DependencyIndex, DependencyTracker, check_declared_dependencies

logger = get_logger(__name__)


class PendingOptions:
    """A resolution running in the background.

    Completion is signalled through `done()`, `result()` and the optional
    `on_done(field_id, options)` callback, which runs on the worker thread.
    """

    def __init__(self, field_id):
        self.field_id = field_id
        self.error = None
        self._options = []
        self._cancelled = False
        self._future = None
        self._process = None
        self._finished = threading.Event()
        self._lock = threading.Lock()

    def _attach(self, process):
        with self._lock:
            self._process = process
            cancelled = self._cancelled
        if cancelled:
            terminate_process(process)

    def _finish(self, options, error=None):
        with self._lock:
            if self._finished.is_set():
                return
            self._options = list(options)
            self.error = error
            self._finished.set()

    def done(self):
        return self._finished.is_set()

    def cancelled(self):
        with self._lock:
            return self._cancelled

    def result(self, timeout=None):
        """Waits for the options; an unfinished wait returns None."""
        if not self._finished.wait(timeout):
            return None
        return list(self._options)

    def cancel(self):
        """Stops waiting for this resolution, killing its command if running."""
        with self._lock:
            if self._finished.is_set():
                return False
            self._cancelled = True
            future = self._future
            process = self._process
        if future is not None and future.cancel():
            self._finish([])
        elif process is not None:
            terminate_process(process)
        logger.debug("options_request_cancelled", field_id=self.field_id)
        return True


class OptionsService:
    """Options for enum fields, cached and invalidated on upstream changes.

    `schema` is a ConfigSchema or a mapping of field id to option source.
    `store` provides `get(path)`; when it also offers `subscribe`, every
    committed change invalidates the dependent fields automatically.
    """

    def __init__(self, schema, store, registry=None, settings=None,
                 resolver=None, clock=time.monotonic):
        self.store = store
        self.settings = settings or Settings()
        self.resolver = resolver or OptionResolver(registry, cwd=self.settings.command_cwd)
        self.cache = OptionCache(self.resolver, clock=clock)
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="schematui-options",
        )
        self._pending = {}
        self._lock = threading.Lock()
        self.reload(schema)

        subscribe = getattr(store, "subscribe", None)
        self._unsubscribe = subscribe(self._on_commit) if subscribe else None

    @property
    def registry(self):
        return self.resolver.registry

    def reload(self, schema):
        """Rebuilds descriptors and the dependency index; drops the cache."""
        if isinstance(schema, ConfigSchema):
            descriptors = schema.option_sources()
        else:
            descriptors = dict(schema)
        check_declared_dependencies(descriptors, strict=self.settings.strict_dependencies)
        tracker = DependencyTracker(DependencyIndex.build(descriptors), self.cache)
        with self._lock:
            self._descriptors = descriptors
            self._tracker = tracker
            # Requests still running were built from the old descriptors
            self._pending = {}
        self.cache.clear()
        logger.info("options_loaded", fields=len(descriptors), tracked_paths=len(tracker.index))

    @property
    def index(self):
        return self._tracker.index

    def descriptor(self, field_id):
        return self._descriptors[field_id]

    def field_ids(self):
        return list(self._descriptors)

    def options_for(self, field_id):
        """Current options for `field_id`; blocks while resolving."""
        descriptor = self.descriptor(field_id)
        return self.cache.get_or_resolve(field_id, descriptor, self.store)

    def request_options(self, field_id, on_done=None):
        """Resolves `field_id` on a worker thread.

        A field has at most one resolution in flight; asking again while
        one is pending returns the same handle.
        """
        descriptor = self.descriptor(field_id)
        with self._lock:
            pending = self._pending.get(field_id)
            if pending is not None and not pending.done():
                return pending
            pending = PendingOptions(field_id)
            self._pending[field_id] = pending
            pending._future = self._executor.submit(self._run, pending, descriptor, on_done)
        return pending

    def _run(self, pending, descriptor, on_done):
        options, error = [], None
        try:
            if not pending.cancelled():
                options = self.cache.get_or_resolve(
                    pending.field_id, descriptor, self.store, on_spawn=pending._attach)
        except Exception as e:
            # Nothing reads the future; report like any other failure
            logger.exception("options_worker_failed", field_id=pending.field_id)
            options, error = [], e
        if error is None and not options:
            error = self.cache.last_error(pending.field_id)
        pending._finish(options, error)
        with self._lock:
            if self._pending.get(pending.field_id) is pending:
                del self._pending[pending.field_id]
        if on_done is not None and not pending.cancelled():
            on_done(pending.field_id, options)
        return options

    def on_field_changed(self, path):
        """Invalidates fields whose option source depends on `path`."""
        return self._tracker.on_field_changed(path)

    def _on_commit(self, path, _value):
        self.on_field_changed(path)

    def last_error(self, field_id):
        return self.cache.last_error(field_id)

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        with self._lock:
            pending = list(self._pending.values())
        for p in pending:
            p.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
