from __future__ import annotations

from typing import Any

import pandas as pd

from PVLENS.server.utils.constants import (
    INDICATION_POOL,
    SUBSTANCE_POOL,
    VOCABULARY_TABLES,
)
from PVLENS.server.utils.exceptions import RepositoryUnavailableError
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.repository.serializer import VocabularySerializer, coerce_flag
from PVLENS.server.utils.services.search.matching import (
    AdverseEventFilters,
    AdverseEventRecord,
    MatchCandidate,
    MatchSpec,
    OrderKey,
)
from PVLENS.server.utils.services.text.normalization import coerce_text

POOL_COLUMNS = ["id", "code", "term", "term_type", "usage_count"]
# column and ascending flag used for each ordering key
ORDER_COLUMNS = {
    OrderKey.RELEVANCE: ("relevance", False),
    OrderKey.USAGE: ("usage_count", False),
    OrderKey.LENGTH: ("term_length", True),
    OrderKey.TERM: ("term", True),
}


# -----------------------------------------------------------------------------
def optional_date(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.date()
    return value


# [IN-MEMORY DATABASE]
###############################################################################
class DataFrameRepository:
    """Candidate repository over pandas frames keyed by vocabulary table name.

    Evaluates a `MatchSpec` with the same predicate semantics as the SQLite
    backend. Suited to tests and to small vocabularies loaded from CSV.
    """

    def __init__(self, tables: dict[str, pd.DataFrame] | None = None) -> None:
        self.db_path: str | None = None
        self.tables: dict[str, pd.DataFrame] = {}
        for table_name, columns in VOCABULARY_TABLES.items():
            frame = (tables or {}).get(table_name)
            if frame is None:
                frame = pd.DataFrame(columns=columns)
            self.tables[table_name] = frame.reindex(columns=columns)

    # -------------------------------------------------------------------------
    @classmethod
    def from_sources(cls, sources_path: str | None = None) -> DataFrameRepository:
        serializer = (
            VocabularySerializer(sources_path) if sources_path else VocabularySerializer()
        )
        return cls(serializer.load_source_tables())

    # -------------------------------------------------------------------------
    def load_from_database(self, table_name: str) -> pd.DataFrame:
        return self.tables.get(table_name, pd.DataFrame()).copy()

    # -------------------------------------------------------------------------
    def save_into_database(self, df: pd.DataFrame, table_name: str) -> None:
        columns = VOCABULARY_TABLES.get(table_name)
        if columns is None:
            raise ValueError(f"No table class found for name {table_name}")
        self.tables[table_name] = df.reindex(columns=columns).reset_index(drop=True)

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str) -> int:
        return len(self.tables.get(table_name, pd.DataFrame()))

    # -------------------------------------------------------------------------
    def usage_counts(self, table_name: str) -> pd.Series:
        links = self.tables[table_name]
        return links["meddra_id"].value_counts()

    # -------------------------------------------------------------------------
    def build_pool_frame(self, pool: str) -> pd.DataFrame:
        if pool == SUBSTANCE_POOL:
            products = self.tables["NDC_CODE"]
            frame = pd.DataFrame(
                {
                    "id": products["id"],
                    "code": products["ndc_code"],
                    "term": products["product_name"],
                    "term_type": None,
                    "usage_count": 0,
                }
            )
            return frame.reindex(columns=POOL_COLUMNS)

        terms = self.tables["MEDDRA"]
        link_table = "PRODUCT_IND" if pool == INDICATION_POOL else "PRODUCT_AE"
        counts = self.usage_counts(link_table)
        frame = pd.DataFrame(
            {
                "id": terms["id"],
                "code": terms["meddra_code"],
                "term": terms["meddra_term"],
                "term_type": terms["meddra_tty"],
                "usage_count": terms["id"].map(counts).fillna(0).astype(int),
            }
        )
        if pool == INDICATION_POOL:
            frame = frame[frame["id"].isin(set(self.tables["PRODUCT_IND"]["meddra_id"]))]
        return frame.reindex(columns=POOL_COLUMNS)

    # -------------------------------------------------------------------------
    def select_matches(self, frame: pd.DataFrame, spec: MatchSpec) -> pd.DataFrame:
        frame = frame[frame["term"].notna()]
        if frame.empty:
            return frame
        mask = frame["term"].astype(str).map(spec.accepts)
        return frame[mask.astype(bool)]

    # -------------------------------------------------------------------------
    def find_candidates(self, spec: MatchSpec) -> list[MatchCandidate]:
        if spec.is_empty():
            return []
        try:
            matched = self.select_matches(self.build_pool_frame(spec.pool), spec).copy()
        except (KeyError, ValueError) as exc:
            raise RepositoryUnavailableError(
                f"Unable to query {spec.pool} candidates", pool=spec.pool
            ) from exc
        if matched.empty:
            return []

        matched["term"] = matched["term"].astype(str)
        matched["relevance"] = matched["term"].map(spec.score)
        matched["term_length"] = matched["term"].str.len()
        order = [ORDER_COLUMNS[key] for key in spec.order_by]
        if order:
            matched = matched.sort_values(
                by=[column for column, _ in order],
                ascending=[ascending for _, ascending in order],
                kind="mergesort",
            )
        if spec.limit is not None:
            matched = matched.head(spec.limit)

        logger.debug("Retrieved %d %s candidates for '%s'", len(matched), spec.pool, spec.query)
        return [
            MatchCandidate(
                id=int(row.id),
                code=coerce_text(row.code),
                term=row.term,
                term_type=coerce_text(row.term_type),
                usage_count=int(row.usage_count),
            )
            for row in matched.itertuples(index=False)
        ]

    # -------------------------------------------------------------------------
    def substance_names(self) -> dict[int, str]:
        links = self.tables["PRODUCT_NDC"]
        products = self.tables["NDC_CODE"]
        merged = links.merge(products, left_on="ndc_id", right_on="id", how="inner")
        merged = merged.sort_values(by=["product_id", "ndc_id"], kind="mergesort")
        merged = merged.drop_duplicates(subset=["product_id"], keep="first")
        return {
            int(product_id): name
            for product_id, name in zip(merged["product_id"], merged["product_name"])
            if coerce_text(name) is not None
        }

    # -------------------------------------------------------------------------
    def find_adverse_events(
        self, spec: MatchSpec, filters: AdverseEventFilters
    ) -> list[AdverseEventRecord]:
        if spec.is_empty():
            return []
        try:
            links = self.tables["PRODUCT_AE"]
            terms = self.tables["MEDDRA"].rename(columns={"id": "meddra_key"})
            merged = links.merge(terms, left_on="meddra_id", right_on="meddra_key", how="inner")
            merged = merged[merged["meddra_term"].notna()]
            merged = merged[merged["meddra_term"].astype(str).map(spec.accepts).astype(bool)]
            counts = self.usage_counts("PRODUCT_AE")
            names = self.substance_names()
        except (KeyError, ValueError) as exc:
            raise RepositoryUnavailableError(
                "Unable to query adverse event records", pool=spec.pool
            ) from exc

        records: list[AdverseEventRecord] = []
        for row in merged.sort_values(by="id", kind="mergesort").itertuples(index=False):
            record = AdverseEventRecord(
                id=int(row.id),
                substance_id=int(row.product_id),
                substance_name=names.get(int(row.product_id)),
                meddra_id=int(row.meddra_id),
                meddra_code=coerce_text(row.meddra_code),
                meddra_term=str(row.meddra_term),
                meddra_term_type=coerce_text(row.meddra_tty),
                label_date=optional_date(row.label_date),
                warning=bool(coerce_flag(row.warning)),
                blackbox=bool(coerce_flag(row.blackbox)),
                exact_match=bool(coerce_flag(row.exact_match)),
                usage_count=int(counts.get(row.meddra_id, 0)),
            )
            if filters.accepts(record):
                records.append(record)
        if spec.limit is not None:
            records = records[: spec.limit]
        return records
