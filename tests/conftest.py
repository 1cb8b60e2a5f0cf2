from __future__ import annotations

from collections.abc import Callable

import pytest

from searchsynth.models.domain import VisualizationResult, VisualizationType, WebSearchHit
from searchsynth.services.context import Fetchers, PipelineContext, PipelineOptions
from searchsynth.services.store import InMemoryStore


class FakeGenerator:
    """Returns canned output keyed by the caller name passed to generate()."""

    def __init__(self, responses: dict[str, str | Exception] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, *, caller: str = "generator") -> str:
        self.calls.append((caller, prompt))
        response = self.responses.get(caller, "")
        if isinstance(response, Exception):
            raise response
        return response


class FakeSearch:
    """Returns hits built per query; raises for queries listed in ``failing``."""

    def __init__(
        self,
        hits_for: Callable[[str], list[WebSearchHit]] | None = None,
        failing: set[str] | None = None,
    ):
        self.hits_for = hits_for or (lambda query: [])
        self.failing = failing or set()
        self.queries: list[str] = []

    async def search(self, query: str, count: int = 10) -> list[WebSearchHit]:
        self.queries.append(query)
        if query in self.failing:
            raise RuntimeError(f"search failed for {query}")
        return self.hits_for(query)


class FailingStore(InMemoryStore):
    """In-memory store whose writes always fail."""

    async def add_message(self, message):
        raise RuntimeError("store unavailable")

    async def save_search_results(self, results):
        raise RuntimeError("store unavailable")

    async def update_conversation_summary(self, conversation_id, summary):
        raise RuntimeError("store unavailable")


def make_hit(title: str, link: str, snippet: str = "", **metadata) -> WebSearchHit:
    return WebSearchHit(title=title, snippet=snippet, link=link, metadata=dict(metadata))


def fixed_fetcher(result: VisualizationResult, calls: list | None = None):
    async def fetch(argument: str, *, timeout: float | None = None) -> VisualizationResult:
        if calls is not None:
            calls.append(argument)
        return result

    return fetch


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fetcher_calls() -> list[str]:
    return []


@pytest.fixture
def fetchers(fetcher_calls) -> Fetchers:
    return Fetchers(
        geographic=fixed_fetcher(
            VisualizationResult.success(VisualizationType.GEOGRAPHIC, {"placeId": "1"}),
            fetcher_calls,
        ),
        financial=fixed_fetcher(
            VisualizationResult.success(VisualizationType.FINANCIAL, {"stockData": []}),
            fetcher_calls,
        ),
        weather=fixed_fetcher(
            VisualizationResult.failure(VisualizationType.WEATHER, "Failed to fetch weather data"),
            fetcher_calls,
        ),
    )


@pytest.fixture
def make_context(store, fetchers):
    def build(generator=None, search=None, **options) -> PipelineContext:
        return PipelineContext(
            generator=generator or FakeGenerator(),
            search=search or FakeSearch(),
            store=store,
            fetchers=fetchers,
            options=PipelineOptions(**options),
        )

    return build
