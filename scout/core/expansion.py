"""Query expansion: alternate search terms for a user query."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from difflib import SequenceMatcher
from typing import Optional

from scout.models import QueryExpansion
from scout.utils.llm import LLMProvider

logger = logging.getLogger(__name__)

FUZZY_THRESHOLD = 0.7
MAX_FUZZY_MATCHES = 5

_TOKEN_RE = re.compile(r"[^\w\s]")


@dataclass
class KeywordMapping:
    """A code-domain keyword with its synonyms and related terms."""

    keyword: str
    domain: str
    weight: float = 1.0
    synonyms: list[str] = field(default_factory=list)
    related_terms: list[str] = field(default_factory=list)


DEFAULT_KEYWORDS: tuple[KeywordMapping, ...] = (
    # Authentication
    KeywordMapping("login", "authentication", 1.0,
                   ["signin", "authenticate", "auth"], ["password", "token", "session"]),
    KeywordMapping("auth", "authentication", 1.0,
                   ["authentication", "login", "verify"], ["token", "session", "security"]),
    KeywordMapping("password", "authentication", 0.9,
                   ["passwd", "pwd", "credential"], ["hash", "encrypt", "security"]),
    # Users
    KeywordMapping("user", "user", 1.0,
                   ["member", "client", "customer"], ["profile", "account"]),
    KeywordMapping("profile", "user", 0.8,
                   ["info", "information"], ["user", "account"]),
    # Payments
    KeywordMapping("payment", "payment", 1.0,
                   ["pay", "billing", "charge"], ["transaction", "money", "price"]),
    KeywordMapping("transaction", "payment", 0.9,
                   ["trade", "deal"], ["payment", "money"]),
    # Database
    KeywordMapping("database", "database", 1.0,
                   ["db", "storage", "datastore"], ["query", "table", "schema"]),
    KeywordMapping("query", "database", 0.9,
                   ["search", "select", "lookup"], ["database", "sql", "find"]),
    KeywordMapping("data", "database", 0.8,
                   ["information", "record"], ["database", "storage", "save"]),
    # API
    KeywordMapping("api", "api", 1.0,
                   ["interface", "endpoint"], ["rest", "http", "service"]),
    KeywordMapping("service", "api", 0.9,
                   ["handler", "provider"], ["api", "business", "logic"]),
    KeywordMapping("controller", "api", 0.8,
                   ["handler", "router"], ["api", "service", "endpoint"]),
    # Validation
    KeywordMapping("validate", "validation", 1.0,
                   ["check", "verify", "validation"], ["input", "sanitize", "clean"]),
    # Errors
    KeywordMapping("error", "error", 1.0,
                   ["exception", "fail", "failure"], ["handle", "catch", "raise"]),
    # Utilities
    KeywordMapping("util", "utility", 0.8,
                   ["utility", "helper", "tool"], ["common", "shared"]),
    KeywordMapping("helper", "utility", 0.8,
                   ["util", "utility", "assist"], ["function", "tool"]),
)


def tokenize_query(query: str) -> list[str]:
    """Lowercase word tokens with punctuation stripped."""
    return _TOKEN_RE.sub(" ", query.lower()).split()


class KeywordExpander:
    """Expands queries from a keyword table, with fuzzy matching for near misses.

    Synonyms are registered as keywords of their own, so "signin" expands to
    "login" and its siblings unless it has a mapping of its own.
    """

    def __init__(self, mappings: Optional[list[KeywordMapping]] = None) -> None:
        self._keywords: dict[str, KeywordMapping] = {}
        for mapping in DEFAULT_KEYWORDS if mappings is None else mappings:
            self.add_keyword(mapping)

    def add_keyword(self, mapping: KeywordMapping) -> None:
        self._keywords[mapping.keyword.lower()] = mapping
        for synonym in mapping.synonyms:
            others = [mapping.keyword, *(s for s in mapping.synonyms if s != synonym)]
            self._keywords.setdefault(
                synonym.lower(), replace(mapping, keyword=synonym, synonyms=others)
            )

    def keywords_by_domain(self, domain: str) -> list[KeywordMapping]:
        return [mapping for mapping in self._keywords.values() if mapping.domain == domain]

    def stats(self) -> dict[str, object]:
        domain_counts: dict[str, int] = {}
        for mapping in self._keywords.values():
            domain_counts[mapping.domain] = domain_counts.get(mapping.domain, 0) + 1
        return {"total_keywords": len(self._keywords), "domain_counts": domain_counts}

    def find_similar(self, term: str, threshold: float = FUZZY_THRESHOLD) -> list[KeywordMapping]:
        """Keywords whose spelling is close to ``term``, best first."""
        scored: list[tuple[float, KeywordMapping]] = []
        for keyword, mapping in self._keywords.items():
            ratio = SequenceMatcher(None, term, keyword).ratio()
            if ratio >= threshold:
                scored.append((ratio * mapping.weight, mapping))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [mapping for _, mapping in scored[:MAX_FUZZY_MATCHES]]

    def expand(self, query: str) -> QueryExpansion:
        """Collect synonyms then related terms for every query token.

        Terms already present in the query are left out; order is first-seen.
        """
        tokens = tokenize_query(query)
        matched: list[KeywordMapping] = []
        for token in tokens:
            mapping = self._keywords.get(token)
            if mapping is not None:
                matched.append(mapping)
            else:
                matched.extend(self.find_similar(token))

        seen = set(tokens)
        synonyms: list[str] = []
        related: list[str] = []
        for mapping in matched:
            for bucket, words in ((synonyms, [mapping.keyword, *mapping.synonyms]), (related, mapping.related_terms)):
                for word in words:
                    lowered = word.lower()
                    if lowered not in seen:
                        seen.add(lowered)
                        bucket.append(lowered)

        logger.debug("Expanded %r into %d terms", query, len(synonyms) + len(related))
        return QueryExpansion(original_query=query, expanded_terms=synonyms + related)

    async def expand_async(self, query: str) -> QueryExpansion:
        return self.expand(query)


EXPANSION_PROMPT = """You help search a source code index.
Give up to {limit} short alternative search terms (synonyms, identifiers,
related concepts) for the question below.

Question: {query}

Respond as JSON: {{"terms": ["term1", "term2"]}}"""


class LLMQueryExpander:
    """Asks a completion model for search terms, falling back to keywords."""

    def __init__(
        self,
        provider: Optional[LLMProvider],
        fallback: Optional[KeywordExpander] = None,
        max_terms: int = 5,
    ) -> None:
        self._provider = provider
        self._fallback = fallback or KeywordExpander()
        self._max_terms = max_terms

    async def expand_async(self, query: str) -> QueryExpansion:
        if self._provider is None:
            return self._fallback.expand(query)

        data = await self._provider.generate_json_async(
            EXPANSION_PROMPT.format(limit=self._max_terms, query=query)
        )
        terms = self._extract_terms(data, query)
        if not terms:
            logger.debug("Model expansion unusable for %r, using keyword table", query)
            return self._fallback.expand(query)
        return QueryExpansion(original_query=query, expanded_terms=terms)

    def _extract_terms(self, data: Optional[dict], query: str) -> list[str]:
        if not data:
            return []
        raw = data.get("terms", data.get("items"))
        if not isinstance(raw, list):
            return []

        terms: list[str] = []
        seen = {query.strip().lower()}
        for item in raw:
            if not isinstance(item, str):
                continue
            term = item.strip()
            if term and term.lower() not in seen:
                seen.add(term.lower())
                terms.append(term)
        return terms[: self._max_terms]
