from __future__ import annotations

from functools import lru_cache

from searchsynth.config import settings
from searchsynth.services.context import PipelineContext, build_context


@lru_cache(maxsize=1)
def get_context() -> PipelineContext:
    """Process-wide capability handles; the in-memory store must outlive requests."""
    return build_context(settings)
