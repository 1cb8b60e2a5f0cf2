from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from searchsynth.config import Settings, settings as default_settings
from searchsynth.fetchers.financial import fetch_financial_data
from searchsynth.fetchers.geo import fetch_geographic_data
from searchsynth.fetchers.weather import fetch_weather_data
from searchsynth.llm_client import TextGenerator
from searchsynth.models.domain import VisualizationResult
from searchsynth.services.store import ConversationStore, InMemoryStore
from searchsynth.tools.search_provider import SearchCapability

Fetcher = Callable[..., Awaitable[VisualizationResult]]


@dataclass
class Fetchers:
    geographic: Fetcher = fetch_geographic_data
    financial: Fetcher = fetch_financial_data
    weather: Fetcher = fetch_weather_data


@dataclass
class PipelineOptions:
    max_sub_queries: int = 5
    results_per_call: int = 10
    include_year_variant: bool = True
    synthesis_max_results: int = 15
    recent_message_window: int = 3
    confidence_threshold: float = 0.7
    fetcher_timeout: float = 10.0
    high_quality_domains: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "PipelineOptions":
        return cls(
            max_sub_queries=max(int(cfg.max_sub_queries), 1),
            results_per_call=max(min(int(cfg.search_results_per_call), 10), 1),
            include_year_variant=bool(cfg.search_include_year_variant),
            synthesis_max_results=max(min(int(cfg.synthesis_max_results), 15), 1),
            recent_message_window=max(int(cfg.recent_message_window), 0),
            confidence_threshold=float(cfg.visualization_confidence_threshold),
            fetcher_timeout=float(cfg.fetcher_timeout_seconds),
            high_quality_domains=cfg.high_quality_domain_list,
        )


@dataclass
class PipelineContext:
    """Capability handles one request's pipeline runs against."""

    generator: TextGenerator
    search: SearchCapability
    store: ConversationStore
    fetchers: Fetchers = field(default_factory=Fetchers)
    options: PipelineOptions = field(default_factory=PipelineOptions)


def build_store(cfg: Settings) -> ConversationStore:
    backend = cfg.store_backend.lower().strip()
    if backend == "memory":
        return InMemoryStore()
    if backend == "supabase":
        from searchsynth.services.supabase import SupabaseStore

        return SupabaseStore()
    raise ValueError(f"Unsupported STORE_BACKEND: {cfg.store_backend}")


def build_context(cfg: Settings | None = None) -> PipelineContext:
    from searchsynth import llm_client
    from searchsynth.tools.search_provider import ProviderSearch

    cfg = cfg or default_settings
    return PipelineContext(
        generator=llm_client.client(),
        search=ProviderSearch(),
        store=build_store(cfg),
        options=PipelineOptions.from_settings(cfg),
    )
