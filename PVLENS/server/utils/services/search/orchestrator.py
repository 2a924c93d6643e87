from __future__ import annotations

from typing import Any

from PVLENS.server.utils.configurations.server import SearchSettings
from PVLENS.server.utils.constants import (
    ADVERSE_EVENT_POOL,
    ALL_POOLS,
    POOL_LABELS,
    POOL_ORDER,
    SUBSTANCE_POOL,
)
from PVLENS.server.utils.exceptions import RepositoryUnavailableError
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.search.matching import (
    AdverseEventFilters,
    AdverseEventRecord,
    MatchCandidate,
    MatchSpec,
    OrderKey,
    ScoredResult,
    SpellingSuggestion,
    phonetic_predicate,
    synonym_predicates,
)
from PVLENS.server.utils.services.search.scoring import (
    RelevanceScorer,
    SubstanceNameScorer,
    deduplicate_by_term,
)
from PVLENS.server.utils.services.search.synonyms import (
    SynonymDictionary,
    load_synonym_dictionary,
)
from PVLENS.server.utils.services.text.normalization import normalize_term

SPELLCHECK_ORDER = (OrderKey.USAGE, OrderKey.TERM)


###############################################################################
class SearchOrchestrator:
    """Suggest, fuzzy search and spellcheck over the vocabulary pools.

    The synonym dictionary and the repository are injected. Every operation
    answers a blank query with an empty list, and a failing pool is logged
    and skipped so the remaining pools still contribute.
    """

    def __init__(
        self,
        repository: Any,
        dictionary: SynonymDictionary,
        settings: SearchSettings,
    ) -> None:
        self.repository = repository
        self.dictionary = dictionary
        self.settings = settings
        self.term_scorer = RelevanceScorer(dictionary, settings.scoring, settings.synonym_limit)
        self.substance_scorer = SubstanceNameScorer(
            dictionary, settings.scoring, settings.synonym_limit
        )

    # -------------------------------------------------------------------------
    def pool_limit(self, limit: int) -> int:
        return max(limit * self.settings.pool_limit_multiplier, self.settings.pool_limit_floor)

    # -------------------------------------------------------------------------
    def candidate_limit(self, pool_limit: int) -> int:
        return max(
            pool_limit * self.settings.candidate_limit_multiplier,
            self.settings.candidate_limit_floor,
        )

    # -------------------------------------------------------------------------
    def resolve_pools(self, category: str | None) -> tuple[str, ...]:
        normalized = normalize_term(category)
        if normalized in POOL_LABELS:
            return (normalized,)
        if normalized and normalized != ALL_POOLS:
            logger.info("Unknown search category '%s'; searching all pools", category)
        return POOL_ORDER

    # -------------------------------------------------------------------------
    def fetch_candidates(self, spec: MatchSpec) -> list[MatchCandidate]:
        try:
            return self.repository.find_candidates(spec)
        except RepositoryUnavailableError:
            logger.exception("Candidate retrieval failed for pool '%s'", spec.pool)
            return []

    # -------------------------------------------------------------------------
    def search_pool(self, pool: str, query: str, limit: int) -> list[ScoredResult]:
        scorer = self.substance_scorer if pool == SUBSTANCE_POOL else self.term_scorer
        spec = scorer.build_spec(query, pool, self.candidate_limit(limit))
        if spec is None:
            return []
        ranked = scorer.rank(spec, self.fetch_candidates(spec), limit)
        category, type_tag = POOL_LABELS[pool]
        for result in ranked:
            result.category = category
            result.type = type_tag
        return ranked

    # -------------------------------------------------------------------------
    def suggest(
        self,
        query: Any,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[ScoredResult]:
        normalized = normalize_term(query)
        if not normalized:
            return []
        limit = self.settings.default_suggest_limit if limit is None else limit
        if limit <= 0:
            return []

        pools = self.resolve_pools(category)
        pool_limit = self.pool_limit(limit)
        logger.info("Suggesting terms for '%s' across %s", normalized, ", ".join(pools))
        merged: list[ScoredResult] = []
        for pool in pools:
            merged.extend(self.search_pool(pool, normalized, pool_limit))

        merged.sort(key=lambda result: (-result.score, -result.usage_count))
        return deduplicate_by_term(merged)[:limit]

    # -------------------------------------------------------------------------
    def fuzzy_search(
        self,
        query: Any,
        filters: AdverseEventFilters | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AdverseEventRecord]:
        spec = self.term_scorer.build_spec(query, ADVERSE_EVENT_POOL)
        if spec is None:
            return []
        filters = filters or AdverseEventFilters()
        limit = self.settings.default_fuzzy_limit if limit is None else limit
        offset = max(offset, 0)
        if limit <= 0:
            return []

        try:
            records = self.repository.find_adverse_events(spec, filters)
        except RepositoryUnavailableError:
            logger.exception("Adverse event retrieval failed for '%s'", spec.query)
            return []

        ranked = self.term_scorer.rank_records(
            spec, records, filters.sort_by, filters.sort_order
        )
        logger.info(
            "Fuzzy search for '%s' matched %d adverse event records", spec.query, len(ranked)
        )
        return ranked[offset : offset + limit]

    # -------------------------------------------------------------------------
    def spellcheck(self, query: Any, limit: int | None = None) -> list[SpellingSuggestion]:
        normalized = normalize_term(query)
        if not normalized:
            return []
        limit = self.settings.default_spellcheck_limit if limit is None else limit
        if limit <= 0:
            return []

        scoring = self.settings.scoring
        suggestions: list[SpellingSuggestion] = []
        seen: set[str] = set()

        synonyms = list(self.dictionary.synonyms_of(normalized, self.settings.synonym_limit))
        synonyms = synonyms[: self.settings.spellcheck_synonym_limit]
        if synonyms:
            spec = MatchSpec(
                pool=ADVERSE_EVENT_POOL,
                query=normalized,
                predicates=tuple(
                    synonym_predicates(
                        synonyms,
                        scoring.synonym_base_score,
                        scoring.synonym_step,
                        scoring.synonym_floor_score,
                    )
                ),
                fallback_score=scoring.fallback_score,
                order_by=SPELLCHECK_ORDER,
                limit=limit,
            )
            for candidate in self.fetch_candidates(spec):
                key = normalize_term(candidate.term)
                if key in seen or len(suggestions) >= limit:
                    continue
                seen.add(key)
                suggestions.append(
                    SpellingSuggestion(candidate.term, candidate.usage_count, is_synonym=True)
                )

        phonetic = phonetic_predicate(normalized, scoring.phonetic_score)
        if len(suggestions) < limit and phonetic is not None:
            spec = MatchSpec(
                pool=ADVERSE_EVENT_POOL,
                query=normalized,
                predicates=(phonetic,),
                fallback_score=scoring.fallback_score,
                order_by=SPELLCHECK_ORDER,
                limit=limit - len(suggestions),
                excluded_terms=frozenset({normalized}),
            )
            for candidate in self.fetch_candidates(spec):
                key = normalize_term(candidate.term)
                if key in seen or len(suggestions) >= limit:
                    continue
                seen.add(key)
                suggestions.append(SpellingSuggestion(candidate.term, candidate.usage_count))

        return suggestions


# -----------------------------------------------------------------------------
def build_search_orchestrator(
    repository: Any,
    settings: SearchSettings,
    dictionary: SynonymDictionary | None = None,
) -> SearchOrchestrator:
    if dictionary is None:
        dictionary = load_synonym_dictionary(settings.synonym_groups_path)
    return SearchOrchestrator(repository, dictionary, settings)


__all__ = ["SearchOrchestrator", "build_search_orchestrator"]
