import threading

import pytest

from schematui.errors import ExecutionError
from schematui.options import CacheEntry, CacheKey, FunctionRegistry, OptionCache, OptionResolver
from schematui.schema import CommandSource, FunctionSource, StaticSource


class CountingResolver:
    """Resolver stand-in returning canned options and recording calls."""

    def __init__(self, options=None, error=None):
        self.options = options if options is not None else ["a", "b"]
        self.error = error
        self.calls = []

    def resolve(self, descriptor, params=(), lookup=None, on_spawn=None):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return [f"{option}{''.join(params)}" for option in self.options]


def lookup_from(values):
    return values.get


def test_entry_expiry_is_strict():
    entry = CacheEntry(("a",), resolved_at=100.0, ttl=1.0)
    assert not entry.is_expired(100.0)
    assert not entry.is_expired(101.0)
    assert entry.is_expired(101.5)
    assert not CacheEntry(("a",), 100.0).is_expired(1e12)


def test_ttl_expiry(clock):
    resolver = CountingResolver()
    cache = OptionCache(resolver, clock=clock)
    source = FunctionSource(handle="f", ttl=1)

    cache.get_or_resolve("s.f", source, lookup_from({}))
    clock.advance(0.9)
    cache.get_or_resolve("s.f", source, lookup_from({}))
    assert len(resolver.calls) == 1

    clock.advance(0.2)
    cache.get_or_resolve("s.f", source, lookup_from({}))
    assert len(resolver.calls) == 2


def test_no_ttl_caches_until_invalidated(clock):
    resolver = CountingResolver()
    cache = OptionCache(resolver, clock=clock)
    source = FunctionSource(handle="f")

    cache.get_or_resolve("s.f", source, lookup_from({}))
    clock.advance(10 ** 6)
    cache.get_or_resolve("s.f", source, lookup_from({}))
    assert len(resolver.calls) == 1

    assert cache.invalidate("s.f") == 1
    cache.get_or_resolve("s.f", source, lookup_from({}))
    assert len(resolver.calls) == 2


def test_distinct_params_are_cached_separately(clock):
    resolver = CountingResolver()
    cache = OptionCache(resolver, clock=clock)
    source = FunctionSource(handle="f", depends_on=["v.lang"])

    assert cache.get_or_resolve("v.model", source, lookup_from({"v.lang": "en"})) == ["aen", "ben"]
    assert cache.get_or_resolve("v.model", source, lookup_from({"v.lang": "es"})) == ["aes", "bes"]
    assert cache.get_or_resolve("v.model", source, lookup_from({"v.lang": "en"})) == ["aen", "ben"]

    assert resolver.calls == [("en",), ("es",)]
    assert sorted(cache.cached_params("v.model")) == [("en",), ("es",)]


def test_invalidate_drops_every_parameterization(clock):
    cache = OptionCache(CountingResolver(), clock=clock)
    cache.put(CacheKey("v.model", ("en",)), ["x"])
    cache.put(CacheKey("v.model", ("es",)), ["y"])
    cache.put(CacheKey("v.other", ()), ["z"])

    assert cache.invalidate("v.model") == 2
    assert cache.get(CacheKey("v.model", ("en",))) is None
    assert cache.get(CacheKey("v.other", ())) == ["z"]
    assert cache.invalidate("v.unknown") == 0


def test_failures_are_not_cached(clock):
    resolver = CountingResolver(error=ExecutionError("exit 1", exit_code=1))
    cache = OptionCache(resolver, clock=clock)
    source = FunctionSource(handle="f", ttl=300)

    assert cache.get_or_resolve("s.f", source, lookup_from({})) == []
    assert isinstance(cache.last_error("s.f"), ExecutionError)
    assert cache.cached_params("s.f") == []

    resolver.error = None
    assert cache.get_or_resolve("s.f", source, lookup_from({})) == ["a", "b"]
    assert len(resolver.calls) == 2
    assert cache.last_error("s.f") is None


def test_static_sources_bypass_cache(clock):
    resolver = CountingResolver()
    cache = OptionCache(resolver, clock=clock)

    assert cache.get_or_resolve("s.f", StaticSource(values=["x"]), lookup_from({})) == ["x"]
    assert resolver.calls == []
    assert cache.cached_params("s.f") == []


def test_returned_lists_are_copies(clock):
    cache = OptionCache(CountingResolver(), clock=clock)
    source = FunctionSource(handle="f")

    options = cache.get_or_resolve("s.f", source, lookup_from({}))
    options.append("mutated")
    assert cache.get_or_resolve("s.f", source, lookup_from({})) == ["a", "b"]


def test_command_resolution_is_cached(clock, models):
    cache = OptionCache(OptionResolver(), clock=clock)
    source = CommandSource(template=models.command("preview ${voice_config.language}"),
                           depends_on=["voice_config.language"], ttl=300)
    values = {"voice_config.language": "en"}

    first = cache.get_or_resolve("voice_config.model", source, values.get)
    second = cache.get_or_resolve("voice_config.model", source, values.get)

    assert first == second == ["whisper-en-tiny", "whisper-en-base", "whisper-en-small"]
    assert models.calls == ["preview en"]


def test_slow_field_does_not_block_other_fields(clock):
    registry = FunctionRegistry()
    started = threading.Event()
    release = threading.Event()

    def slow():
        started.set()
        release.wait(5)
        return ["slow"]

    registry.register("slow", slow)
    registry.register("fast", lambda: ["fast"])
    cache = OptionCache(OptionResolver(registry), clock=clock)

    worker = threading.Thread(
        target=cache.get_or_resolve, args=("s.slow", FunctionSource(handle="slow"), {}.get))
    worker.start()
    try:
        assert started.wait(5)
        assert cache.get_or_resolve("s.fast", FunctionSource(handle="fast"), {}.get) == ["fast"]
        assert cache.invalidate("s.slow") == 0
    finally:
        release.set()
        worker.join(5)
    assert cache.get(CacheKey("s.slow", ())) == ["slow"]


@pytest.mark.parametrize("values, expected", [
    ({"v.lang": "en", "v.type": "preview"}, ("en", "preview")),
    ({"v.lang": "en"}, ("en", "")),
    ({"v.lang": True, "v.type": 2}, ("true", "2")),
], ids=["both set", "missing value", "scalars"])
def test_key_for(values, expected):
    source = CommandSource(template="x", depends_on=["v.lang", "v.type"])
    assert OptionCache(CountingResolver()).key_for("v.model", source, values.get) == \
        CacheKey("v.model", expected)


def test_put_after_clear_is_discarded(clock):
    cache = OptionCache(CountingResolver(), clock=clock)
    key = CacheKey("s.f", ())
    generation = cache.generation

    cache.clear()
    assert cache.put(key, ["stale"], generation=generation) is None
    assert cache.get(key) is None
    assert cache.put(key, ["fresh"], generation=cache.generation) is not None
    assert cache.get(key) == ["fresh"]
