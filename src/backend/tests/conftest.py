import pytest

from fakes import FALLBACK, PRIMARY, FakeClock, FakeLLM
from mathscribe.refinement.base import RefinementOptions
from mathscribe.refinement.cache import RefinementCache
from mathscribe.refinement.engine import RefinementEngine
from mathscribe.services.converter import ConverterService


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return RefinementCache(ttl_seconds=3600, max_entries=16, clock=clock)


@pytest.fixture
def options():
    """Explicit options so tests don't depend on environment settings."""
    def _make(**overrides):
        values = dict(
            model=PRIMARY,
            fallback_model=FALLBACK,
            max_iterations=2,
            temperature=0.2,
            timeout_ms=5000,
            use_cache=True,
            confidence_threshold=0.8,
        )
        values.update(overrides)
        return RefinementOptions(**values)
    return _make


@pytest.fixture
def make_engine(cache):
    def _make(submitter, **kwargs):
        kwargs.setdefault("cache", cache)
        return RefinementEngine(submitter, **kwargs)
    return _make


@pytest.fixture
def make_converter(cache):
    """ConverterService over a FakeLLM sharing the test cache."""
    def _make(llm: FakeLLM):
        engine = RefinementEngine(llm, cache=cache)
        return ConverterService(llm=llm, engine=engine)
    return _make
