from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from PVLENS.server.utils.configurations.server import ScoringSettings
from PVLENS.server.utils.services.search.matching import (
    AdverseEventRecord,
    MatchCandidate,
    MatchPredicate,
    MatchSpec,
    OrderKey,
    PredicateKind,
    ScoredResult,
    phonetic_predicate,
    synonym_predicates,
)
from PVLENS.server.utils.services.search.synonyms import SynonymDictionary
from PVLENS.server.utils.services.text.normalization import normalize_term

DEFAULT_ORDER = (OrderKey.RELEVANCE, OrderKey.USAGE, OrderKey.LENGTH, OrderKey.TERM)
SUBSTANCE_ORDER = (OrderKey.RELEVANCE, OrderKey.TERM)

# user selectable sort columns for adverse event records
RECORD_SORT_COLUMNS = {
    "term": "meddra_term",
    "code": "meddra_code",
    "substance": "substance_name",
    "label_date": "label_date",
}


# -----------------------------------------------------------------------------
def order_key(item: Any, order_by: Iterable[OrderKey]) -> tuple[Any, ...]:
    """Sort key for scored results and records alike.

    Items expose ``score`` and ``usage_count`` plus either ``term`` or
    ``meddra_term``.
    """
    term = getattr(item, "term", None)
    if term is None:
        term = getattr(item, "meddra_term", "") or ""
    key: list[Any] = []
    for order in order_by:
        if order == OrderKey.RELEVANCE:
            key.append(-item.score)
        elif order == OrderKey.USAGE:
            key.append(-item.usage_count)
        elif order == OrderKey.LENGTH:
            key.append(len(term))
        elif order == OrderKey.TERM:
            key.append(term)
    return tuple(key)


# -----------------------------------------------------------------------------
def deduplicate_by_term(results: Iterable[ScoredResult]) -> list[ScoredResult]:
    seen: set[str] = set()
    unique: list[ScoredResult] = []
    for result in results:
        key = normalize_term(result.term)
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)
    return unique


###############################################################################
class RelevanceScorer:
    """Tiered lexical scorer for MedDRA term pools.

    The first matching tier sets the score: exact, prefix, suffix, word
    start, word end, substring, Soundex and then the capped synonym list in
    order with decaying scores. Repositories receive the same tiers as a
    `MatchSpec` and only pre-filter, the final score always comes from here.
    """

    order_by: tuple[OrderKey, ...] = DEFAULT_ORDER

    def __init__(
        self,
        dictionary: SynonymDictionary,
        settings: ScoringSettings,
        synonym_limit: int = 10,
    ) -> None:
        self.dictionary = dictionary
        self.settings = settings
        self.synonym_limit = synonym_limit

    # -------------------------------------------------------------------------
    def expand_synonyms(self, query: str) -> list[str]:
        return list(self.dictionary.synonyms_of(query, self.synonym_limit))

    # -------------------------------------------------------------------------
    def build_predicates(self, query: str, synonyms: list[str]) -> list[MatchPredicate]:
        scoring = self.settings
        predicates = [
            MatchPredicate(PredicateKind.EQUALS, query, scoring.exact_score),
            MatchPredicate(PredicateKind.PREFIX, query, scoring.prefix_score),
            MatchPredicate(PredicateKind.SUFFIX, query, scoring.suffix_score),
            MatchPredicate(PredicateKind.WORD_START, query, scoring.word_start_score),
            MatchPredicate(PredicateKind.WORD_END, query, scoring.word_end_score),
            MatchPredicate(PredicateKind.CONTAINS, query, scoring.contains_score),
        ]
        phonetic = phonetic_predicate(query, scoring.phonetic_score)
        if phonetic is not None:
            predicates.append(phonetic)
        predicates.extend(
            synonym_predicates(
                synonyms,
                scoring.synonym_base_score,
                scoring.synonym_step,
                scoring.synonym_floor_score,
            )
        )
        return predicates

    # -------------------------------------------------------------------------
    def build_spec(
        self,
        query: Any,
        pool: str,
        limit: int | None = None,
    ) -> MatchSpec | None:
        normalized = normalize_term(query)
        if not normalized:
            return None
        synonyms = self.expand_synonyms(normalized)
        return MatchSpec(
            pool=pool,
            query=normalized,
            predicates=tuple(self.build_predicates(normalized, synonyms)),
            fallback_score=self.settings.fallback_score,
            order_by=self.order_by,
            limit=limit,
        )

    # -------------------------------------------------------------------------
    def score(self, spec: MatchSpec, candidates: Iterable[MatchCandidate]) -> list[ScoredResult]:
        return [
            ScoredResult.from_candidate(candidate, spec.score(candidate.term))
            for candidate in candidates
            if candidate.term
        ]

    # -------------------------------------------------------------------------
    def rank(
        self,
        spec: MatchSpec,
        candidates: Iterable[MatchCandidate],
        limit: int | None = None,
    ) -> list[ScoredResult]:
        scored = self.score(spec, candidates)
        scored.sort(key=lambda result: order_key(result, spec.order_by))
        ranked = deduplicate_by_term(scored)
        if limit is not None:
            ranked = ranked[: max(limit, 0)]
        return ranked

    # -------------------------------------------------------------------------
    def rank_records(
        self,
        spec: MatchSpec,
        records: Iterable[AdverseEventRecord],
        sort_by: str | None = None,
        sort_order: str = "asc",
    ) -> list[AdverseEventRecord]:
        ranked = list(records)
        for record in ranked:
            record.score = spec.score(record.meddra_term)
        if sort_by in RECORD_SORT_COLUMNS:
            attribute = RECORD_SORT_COLUMNS[sort_by]
            # stable two-pass sort: column first, relevance on top
            ranked.sort(key=lambda record: record.id)
            ranked.sort(
                key=lambda record: (
                    getattr(record, attribute) is not None,
                    getattr(record, attribute),
                ),
                reverse=sort_order == "desc",
            )
            ranked.sort(key=lambda record: -record.score)
            return ranked
        ranked.sort(key=lambda record: (order_key(record, DEFAULT_ORDER), record.id))
        return ranked


###############################################################################
class SubstanceNameScorer(RelevanceScorer):
    """Two-tier scorer for product names: prefix, substring, else fallback."""

    order_by = SUBSTANCE_ORDER

    # -------------------------------------------------------------------------
    def build_spec(
        self,
        query: Any,
        pool: str,
        limit: int | None = None,
    ) -> MatchSpec | None:
        normalized = normalize_term(query)
        if not normalized:
            return None
        scoring = self.settings
        return MatchSpec(
            pool=pool,
            query=normalized,
            predicates=(
                MatchPredicate(PredicateKind.PREFIX, normalized, scoring.substance_prefix_score),
                MatchPredicate(PredicateKind.CONTAINS, normalized, scoring.substance_contains_score),
            ),
            fallback_score=scoring.substance_fallback_score,
            order_by=self.order_by,
            limit=limit,
        )


__all__ = [
    "DEFAULT_ORDER",
    "RelevanceScorer",
    "SUBSTANCE_ORDER",
    "SubstanceNameScorer",
    "deduplicate_by_term",
    "order_key",
]
