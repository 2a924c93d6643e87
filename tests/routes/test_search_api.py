from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from PVLENS.server.app import app
from PVLENS.server.routes.search import get_search_orchestrator
from PVLENS.server.utils.services.search.orchestrator import SearchOrchestrator
from tests.sample_vocabulary import SETTINGS, build_dictionary, build_memory_repository


###############################################################################
class BrokenOrchestrator:
    def suggest(self, *args, **kwargs):
        raise RuntimeError("vocabulary offline")

    def spellcheck(self, *args, **kwargs):
        raise RuntimeError("vocabulary offline")

    def fuzzy_search(self, *args, **kwargs):
        raise RuntimeError("vocabulary offline")


class SearchEndpointTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def setUp(self) -> None:
        orchestrator = SearchOrchestrator(
            build_memory_repository(), build_dictionary(), SETTINGS.search
        )
        app.dependency_overrides[get_search_orchestrator] = lambda: orchestrator
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    # ------------------------------------------------------------------
    def test_suggest_returns_camel_case_payload(self) -> None:
        response = self.client.get("/search/suggest", params={"q": "pain", "limit": 3})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual([item["term"] for item in payload], ["Pain", "Painful joints", "Acute pain"])
        self.assertEqual(payload[2]["usageCount"], 2)
        self.assertEqual(payload[2]["category"], "Indication")
        self.assertEqual(payload[0]["termType"], "PT")
        self.assertEqual(payload[0]["score"], 100)

    # ------------------------------------------------------------------
    def test_suggest_type_filter(self) -> None:
        response = self.client.get("/search/suggest", params={"q": "pain", "type": "substances"})
        self.assertEqual(
            [item["term"] for item in response.json()], ["Paincare Tablets", "Antipain Cream"]
        )

    # ------------------------------------------------------------------
    def test_blank_query_returns_empty_list(self) -> None:
        for path in ("/search/suggest", "/search/spellcheck", "/search/adverse-events"):
            response = self.client.get(path, params={"q": "   "})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), [])

    # ------------------------------------------------------------------
    def test_limit_is_validated(self) -> None:
        response = self.client.get("/search/suggest", params={"q": "pain", "limit": 0})
        self.assertEqual(response.status_code, 422)

    # ------------------------------------------------------------------
    def test_spellcheck_endpoint(self) -> None:
        response = self.client.get("/search/spellcheck", params={"q": "diarrhea"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json()[0], {"suggestion": "Diarrhoea", "usageCount": 2, "isSynonym": True}
        )

    # ------------------------------------------------------------------
    def test_adverse_event_endpoint_filters_and_paginates(self) -> None:
        response = self.client.get(
            "/search/adverse-events",
            params={"q": "pain", "substance_id": 100, "limit": 2, "offset": 1},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual([item["id"] for item in payload], [1, 2])
        self.assertEqual(payload[0]["substanceName"], "Ibuprofen")
        self.assertEqual(payload[0]["labelDate"], "2020-01-15")
        self.assertTrue(payload[0]["exactMatch"])

    # ------------------------------------------------------------------
    def test_unknown_filter_values_are_ignored(self) -> None:
        response = self.client.get(
            "/search/adverse-events", params={"q": "pain", "severity": "all", "sort_by": "colour"}
        )
        self.assertEqual([item["id"] for item in response.json()], [8, 7, 1, 2, 3])

    # ------------------------------------------------------------------
    def test_failures_map_to_server_error(self) -> None:
        app.dependency_overrides[get_search_orchestrator] = lambda: BrokenOrchestrator()
        for path in ("/search/suggest", "/search/spellcheck", "/search/adverse-events"):
            response = self.client.get(path, params={"q": "pain"})
            self.assertEqual(response.status_code, 500)
            self.assertIn("vocabulary offline", response.json()["detail"])

    # ------------------------------------------------------------------
    def test_root_redirects_to_docs(self) -> None:
        response = self.client.get("/", follow_redirects=False)
        self.assertIn(response.status_code, (302, 307))
        self.assertEqual(response.headers["location"], "/docs")


if __name__ == "__main__":
    unittest.main()
