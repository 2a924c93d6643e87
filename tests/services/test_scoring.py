from __future__ import annotations

import unittest
from datetime import date

from PVLENS.server.utils.services.search.matching import (
    AdverseEventRecord,
    MatchCandidate,
    OrderKey,
    PredicateKind,
)
from PVLENS.server.utils.services.search.scoring import (
    DEFAULT_ORDER,
    RelevanceScorer,
    SubstanceNameScorer,
    order_key,
)
from tests.sample_vocabulary import SETTINGS, build_dictionary


# ------------------------------------------------------------------
def make_record(record_id: int, term: str, label_date: date | None, usage: int = 0):
    return AdverseEventRecord(
        id=record_id,
        substance_id=100,
        substance_name="Ibuprofen",
        meddra_id=record_id,
        meddra_code=None,
        meddra_term=term,
        meddra_term_type="PT",
        label_date=label_date,
        warning=False,
        blackbox=False,
        exact_match=True,
        usage_count=usage,
    )


class RelevanceScorerTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def setUp(self) -> None:
        self.scorer = RelevanceScorer(
            build_dictionary(), SETTINGS.search.scoring, SETTINGS.search.synonym_limit
        )
        self.spec = self.scorer.build_spec("Pain", "adverse_events")

    # ------------------------------------------------------------------
    def test_blank_query_builds_no_spec(self) -> None:
        self.assertIsNone(self.scorer.build_spec("   ", "adverse_events"))
        self.assertIsNone(self.scorer.build_spec(None, "adverse_events"))

    # ------------------------------------------------------------------
    def test_spec_lists_tiers_in_priority_order(self) -> None:
        kinds = [predicate.kind for predicate in self.spec.predicates]
        self.assertEqual(
            kinds,
            [
                PredicateKind.EQUALS,
                PredicateKind.PREFIX,
                PredicateKind.SUFFIX,
                PredicateKind.WORD_START,
                PredicateKind.WORD_END,
                PredicateKind.CONTAINS,
                PredicateKind.PHONETIC,
                PredicateKind.SYNONYM,
                PredicateKind.SYNONYM,
            ],
        )
        self.assertEqual(self.spec.query, "pain")
        self.assertEqual(self.spec.order_by, DEFAULT_ORDER)

    # ------------------------------------------------------------------
    def test_queries_without_letters_skip_phonetic_tier(self) -> None:
        spec = self.scorer.build_spec("123", "adverse_events")
        kinds = {predicate.kind for predicate in spec.predicates}
        self.assertNotIn(PredicateKind.PHONETIC, kinds)

    # ------------------------------------------------------------------
    def test_lexical_match_outranks_synonym_match(self) -> None:
        ranked = self.scorer.rank(
            self.spec,
            [
                MatchCandidate(2, "10019211", "Headache", "PT", usage_count=50),
                MatchCandidate(1, "10000001", "Acute Pain", "PT", usage_count=1),
            ],
        )
        self.assertEqual([result.term for result in ranked], ["Acute Pain", "Headache"])
        self.assertEqual([result.score for result in ranked], [90, 55])

    # ------------------------------------------------------------------
    def test_exact_match_scores_highest_and_sorts_first(self) -> None:
        ranked = self.scorer.rank(
            self.spec,
            [
                MatchCandidate(5, None, "Painful joints"),
                MatchCandidate(4, None, "Back pain", usage_count=9),
                MatchCandidate(3, None, "PAIN"),
            ],
        )
        self.assertEqual(ranked[0].term, "PAIN")
        self.assertEqual(ranked[0].score, 100)

    # ------------------------------------------------------------------
    def test_ties_break_on_usage_length_then_term(self) -> None:
        ranked = self.scorer.rank(
            self.spec,
            [
                MatchCandidate(1, None, "Zeta pain"),
                MatchCandidate(2, None, "Alpha pain"),
                MatchCandidate(3, None, "Beta pain"),
                MatchCandidate(4, None, "Chronic pain", usage_count=3),
            ],
        )
        self.assertEqual(
            [result.term for result in ranked],
            ["Chronic pain", "Beta pain", "Zeta pain", "Alpha pain"],
        )
        keys = [order_key(result, DEFAULT_ORDER) for result in ranked]
        self.assertEqual(keys, sorted(keys))

    # ------------------------------------------------------------------
    def test_duplicates_keep_highest_ranked_entry(self) -> None:
        ranked = self.scorer.rank(
            self.spec,
            [
                MatchCandidate(1, "A", "Back pain", usage_count=1),
                MatchCandidate(2, "B", "back pain ", usage_count=7),
            ],
        )
        self.assertEqual(len(ranked), 1)
        self.assertEqual(ranked[0].id, 1)

    # ------------------------------------------------------------------
    def test_rank_truncates_and_skips_blank_terms(self) -> None:
        ranked = self.scorer.rank(
            self.spec,
            [
                MatchCandidate(1, None, ""),
                MatchCandidate(2, None, "Pain"),
                MatchCandidate(3, None, "Back pain"),
            ],
            limit=1,
        )
        self.assertEqual([result.term for result in ranked], ["Pain"])

    # ------------------------------------------------------------------
    def test_records_default_order_uses_relevance_then_id(self) -> None:
        records = [
            make_record(3, "Headache", date(2021, 1, 1)),
            make_record(2, "Back pain", date(2020, 1, 1)),
            make_record(1, "Back pain", date(2019, 1, 1)),
            make_record(4, "Pain", None),
        ]
        ranked = self.scorer.rank_records(self.spec, records)
        self.assertEqual([record.id for record in ranked], [4, 1, 2, 3])
        self.assertEqual([record.score for record in ranked], [100, 90, 90, 55])

    # ------------------------------------------------------------------
    def test_records_sort_column_applies_within_score(self) -> None:
        records = [
            make_record(1, "Back pain", date(2019, 1, 1)),
            make_record(2, "Acute pain", None),
            make_record(3, "Chronic pain", date(2022, 1, 1)),
            make_record(4, "Headache", date(2023, 1, 1)),
        ]
        descending = self.scorer.rank_records(self.spec, records, "label_date", "desc")
        self.assertEqual([record.id for record in descending], [3, 1, 2, 4])
        ascending = self.scorer.rank_records(self.spec, records, "label_date", "asc")
        self.assertEqual([record.id for record in ascending], [2, 1, 3, 4])


class SubstanceNameScorerTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def setUp(self) -> None:
        self.scorer = SubstanceNameScorer(build_dictionary(), SETTINGS.search.scoring)

    # ------------------------------------------------------------------
    def test_prefix_then_contains_then_fallback(self) -> None:
        spec = self.scorer.build_spec("pain", "substances")
        self.assertEqual(spec.order_by, (OrderKey.RELEVANCE, OrderKey.TERM))
        ranked = self.scorer.rank(
            spec,
            [
                MatchCandidate(3, "0904-5765", "Antipain Cream"),
                MatchCandidate(2, "0363-0160", "Ibuprofen"),
                MatchCandidate(1, "50580-600", "Paincare Tablets"),
            ],
        )
        self.assertEqual(
            [(result.term, result.score) for result in ranked],
            [("Paincare Tablets", 90), ("Antipain Cream", 70), ("Ibuprofen", 50)],
        )

    # ------------------------------------------------------------------
    def test_synonyms_are_not_used_for_substances(self) -> None:
        spec = self.scorer.build_spec("pain", "substances")
        kinds = {predicate.kind for predicate in spec.predicates}
        self.assertEqual(kinds, {PredicateKind.PREFIX, PredicateKind.CONTAINS})


if __name__ == "__main__":
    unittest.main()
