from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (text generation)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    generation_model: str = "google/gemini-2.0-flash-001"
    llm_timeout_seconds: float = 45.0

    # Search provider
    search_provider: str = "google"  # google | brave | tavily
    search_fallback_to_tavily: bool = True
    google_api_key: str = ""
    google_search_engine_id: str = ""
    brave_api_key: str = ""
    tavily_api_key: str = ""
    search_results_per_call: int = 10
    search_include_year_variant: bool = True

    # Pipeline
    max_sub_queries: int = 5
    synthesis_max_results: int = 15
    recent_message_window: int = 3
    visualization_confidence_threshold: float = 0.7
    high_quality_domains: str = (
        "reuters.com,apnews.com,bbc.com,bbc.co.uk,nytimes.com,wsj.com,"
        "ft.com,bloomberg.com,economist.com,nature.com,science.org"
    )

    # Data fetchers
    fetcher_timeout_seconds: float = 10.0
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "searchsynth/0.1"
    open_meteo_base_url: str = "https://api.open-meteo.com/v1"
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"
    alpha_vantage_api_key: str = ""

    # Persistence
    store_backend: str = "supabase"  # supabase | memory
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def high_quality_domain_list(self) -> list[str]:
        return [d.strip().lower() for d in self.high_quality_domains.split(",") if d.strip()]


settings = Settings()
