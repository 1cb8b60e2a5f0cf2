from __future__ import annotations

from collections.abc import Iterable

TEXT_WEIGHT = 0.7
DOMAIN_WEIGHT = 0.3
HIGH_QUALITY_DOMAIN_SCORE = 1.0
DEFAULT_DOMAIN_SCORE = 0.6
HIGH_QUALITY_SUFFIXES = (".gov", ".edu", ".org")


def query_terms(query: str) -> list[str]:
    """Distinct lower-cased query terms, in first-seen order."""
    return list(dict.fromkeys(term for term in query.lower().split() if term))


def text_relevance(title: str, text: str, query: str) -> float:
    terms = query_terms(query)
    if not terms:
        return 0.0
    content = f"{title} {text}".lower()
    matched = sum(1 for term in terms if term in content)
    return matched / len(terms)


def domain_quality(domain: str, high_quality_domains: Iterable[str] = ()) -> float:
    host = (domain or "").lower().strip().rstrip(".")
    if host.endswith(HIGH_QUALITY_SUFFIXES):
        return HIGH_QUALITY_DOMAIN_SCORE
    for allowed in high_quality_domains:
        allowed = allowed.lower().strip()
        if allowed and (host == allowed or host.endswith(f".{allowed}")):
            return HIGH_QUALITY_DOMAIN_SCORE
    return DEFAULT_DOMAIN_SCORE


def relevance_score(
    title: str,
    text: str,
    domain: str,
    query: str,
    *,
    high_quality_domains: Iterable[str] = (),
) -> float:
    """Score one search result against the original query, in [0, 1]."""
    score = TEXT_WEIGHT * text_relevance(title, text, query) + DOMAIN_WEIGHT * domain_quality(
        domain, high_quality_domains
    )
    return round(min(max(score, 0.0), 1.0), 2)
