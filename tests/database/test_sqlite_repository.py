from __future__ import annotations

import os
import tempfile
import unittest

from sqlalchemy import text

from PVLENS.server.database.sqlite import SQLiteRepository
from PVLENS.server.utils.constants import (
    ADVERSE_EVENT_POOL,
    INDICATION_POOL,
    SUBSTANCE_POOL,
)
from PVLENS.server.utils.exceptions import RepositoryUnavailableError
from PVLENS.server.utils.repository.serializer import VocabularySerializer
from PVLENS.server.utils.services.search.matching import (
    AdverseEventFilters,
    MatchPredicate,
    MatchSpec,
    PredicateKind,
)
from PVLENS.server.utils.services.search.orchestrator import SearchOrchestrator
from PVLENS.server.utils.services.search.scoring import RelevanceScorer
from tests.sample_vocabulary import (
    SETTINGS,
    build_dictionary,
    build_memory_repository,
    build_tables,
)


class SQLiteRepositoryTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.repository = SQLiteRepository(
            SETTINGS.database, db_path=os.path.join(self.tmpdir.name, "vocabulary.db")
        )
        self.addCleanup(self.repository.engine.dispose)
        VocabularySerializer().save_vocabulary(self.repository, build_tables())
        self.scorer = RelevanceScorer(
            build_dictionary(), SETTINGS.search.scoring, SETTINGS.search.synonym_limit
        )

    # ------------------------------------------------------------------
    def test_tables_are_populated(self) -> None:
        self.assertEqual(self.repository.count_rows("MEDDRA"), 12)
        self.assertEqual(self.repository.count_rows("PRODUCT_AE"), 9)
        frame = self.repository.load_from_database("NDC_CODE")
        self.assertEqual(sorted(frame["product_name"]), sorted(
            ["Paincare Tablets", "Ibuprofen", "Antipain Cream", "Loperamide"]
        ))

    # ------------------------------------------------------------------
    def test_reloading_replaces_rows(self) -> None:
        tables = build_tables()
        self.repository.save_into_database(tables["MEDDRA"].head(3), "MEDDRA")
        self.assertEqual(self.repository.count_rows("MEDDRA"), 3)

    # ------------------------------------------------------------------
    def test_unknown_table_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.repository.count_rows("DEVICES")

    # ------------------------------------------------------------------
    def test_candidates_are_ordered_in_sql(self) -> None:
        spec = self.scorer.build_spec("pain", ADVERSE_EVENT_POOL)
        candidates = self.repository.find_candidates(spec)
        self.assertEqual(
            [candidate.term for candidate in candidates],
            ["Pain", "Painful joints", "Back pain", "Acute pain", "Chronic pain syndrome", "Headache"],
        )
        usage = {candidate.term: candidate.usage_count for candidate in candidates}
        self.assertEqual(usage["Headache"], 2)
        self.assertEqual(usage["Painful joints"], 0)

    # ------------------------------------------------------------------
    def test_soundex_runs_inside_sqlite(self) -> None:
        spec = MatchSpec(
            pool=ADVERSE_EVENT_POOL,
            query="hedache",
            predicates=(MatchPredicate(PredicateKind.PHONETIC, "H320", 60),),
            fallback_score=30,
        )
        self.assertEqual(
            [candidate.term for candidate in self.repository.find_candidates(spec)], ["Headache"]
        )

    # ------------------------------------------------------------------
    def test_excluded_terms_and_limit(self) -> None:
        spec = MatchSpec(
            pool=ADVERSE_EVENT_POOL,
            query="diarrhea",
            predicates=(MatchPredicate(PredicateKind.PHONETIC, "D600", 60),),
            fallback_score=30,
            limit=5,
            excluded_terms=frozenset({"diarrhoea"}),
        )
        self.assertEqual(
            [candidate.term for candidate in self.repository.find_candidates(spec)], ["Dry eye"]
        )

    # ------------------------------------------------------------------
    def test_indication_pool_is_restricted(self) -> None:
        spec = self.scorer.build_spec("pain", INDICATION_POOL)
        candidates = self.repository.find_candidates(spec)
        self.assertEqual(
            [(candidate.term, candidate.usage_count) for candidate in candidates],
            [("Acute pain", 2), ("Chronic pain syndrome", 1)],
        )

    # ------------------------------------------------------------------
    def test_substance_pool_uses_product_names(self) -> None:
        spec = MatchSpec(
            pool=SUBSTANCE_POOL,
            query="pain",
            predicates=(
                MatchPredicate(PredicateKind.PREFIX, "pain", 90),
                MatchPredicate(PredicateKind.CONTAINS, "pain", 70),
            ),
            fallback_score=50,
        )
        candidates = self.repository.find_candidates(spec)
        self.assertEqual(
            [(candidate.term, candidate.code) for candidate in candidates],
            [("Paincare Tablets", "50580-600"), ("Antipain Cream", "0904-5765")],
        )

    # ------------------------------------------------------------------
    def test_adverse_event_records(self) -> None:
        spec = self.scorer.build_spec("pain", ADVERSE_EVENT_POOL)
        records = self.repository.find_adverse_events(spec, AdverseEventFilters())
        self.assertEqual([record.id for record in records], [1, 2, 3, 7, 8])
        first = records[0]
        self.assertEqual(first.substance_name, "Ibuprofen")
        self.assertTrue(first.warning)
        self.assertFalse(first.blackbox)
        self.assertEqual(first.label_date.isoformat(), "2020-01-15")
        blackbox = self.repository.find_adverse_events(
            spec, AdverseEventFilters(severity="blackbox")
        )
        self.assertEqual([record.id for record in blackbox], [3])

    # ------------------------------------------------------------------
    def test_matches_memory_repository(self) -> None:
        sql_search = SearchOrchestrator(self.repository, build_dictionary(), SETTINGS.search)
        memory_search = SearchOrchestrator(
            build_memory_repository(), build_dictionary(), SETTINGS.search
        )
        self.assertEqual(sql_search.suggest("pain"), memory_search.suggest("pain"))
        self.assertEqual(sql_search.spellcheck("diarrhea"), memory_search.spellcheck("diarrhea"))
        filters = AdverseEventFilters.from_values(sort_by="label_date", sort_order="desc")
        self.assertEqual(
            sql_search.fuzzy_search("pain", filters), memory_search.fuzzy_search("pain", filters)
        )

    # ------------------------------------------------------------------
    def test_query_errors_are_wrapped(self) -> None:
        with self.repository.engine.begin() as conn:
            conn.execute(text('DROP TABLE "MEDDRA"'))
        spec = self.scorer.build_spec("pain", ADVERSE_EVENT_POOL)
        with self.assertRaises(RepositoryUnavailableError) as context:
            self.repository.find_candidates(spec)
        self.assertEqual(context.exception.pool, ADVERSE_EVENT_POOL)
        self.assertTrue(self.repository.load_from_database("MEDDRA").empty)


if __name__ == "__main__":
    unittest.main()
