from __future__ import annotations

import os
from typing import Any

import pandas as pd
import sqlalchemy
from sqlalchemy import case, event, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased, sessionmaker

from PVLENS.server.database.schema import (
    Base,
    MeddraTerm,
    NdcCode,
    ProductAdverseEvent,
    ProductIndication,
    ProductNdc,
    VOCABULARY_MODELS,
)
from PVLENS.server.utils.configurations import DatabaseSettings
from PVLENS.server.utils.constants import (
    DATA_PATH,
    INDICATION_POOL,
    MISSING_TABLE_MESSAGE,
    SUBSTANCE_POOL,
)
from PVLENS.server.utils.exceptions import RepositoryUnavailableError
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.search.matching import (
    AdverseEventFilters,
    AdverseEventRecord,
    MatchCandidate,
    MatchPredicate,
    MatchSpec,
    OrderKey,
    PredicateKind,
)
from PVLENS.server.utils.services.text.phonetics import soundex


# -----------------------------------------------------------------------------
def register_sqlite_functions(dbapi_connection: Any, connection_record: Any) -> None:
    dbapi_connection.create_function("soundex", 1, soundex, deterministic=True)

# -----------------------------------------------------------------------------
def predicate_clause(column: Any, predicate: MatchPredicate) -> Any:
    lowered = func.lower(column)
    kind = predicate.kind
    if kind == PredicateKind.EQUALS:
        return lowered == predicate.value
    if kind == PredicateKind.PREFIX:
        return lowered.startswith(predicate.value, autoescape=True)
    if kind == PredicateKind.SUFFIX:
        return lowered.endswith(predicate.value, autoescape=True)
    if kind == PredicateKind.PHONETIC:
        return func.soundex(column) == predicate.value
    return lowered.contains(predicate.pattern(), autoescape=True)


# [SQLITE DATABASE]
###############################################################################
class SQLiteRepository:
    def __init__(self, settings: DatabaseSettings, db_path: str | None = None) -> None:
        self.db_path: str | None = db_path or os.path.join(DATA_PATH, settings.filename)
        os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        self.engine: Engine = sqlalchemy.create_engine(
            f"sqlite:///{self.db_path}", echo=False, future=True
        )
        event.listen(self.engine, "connect", register_sqlite_functions)
        self.session_factory = sessionmaker(bind=self.engine, future=True)
        self.insert_batch_size = settings.insert_batch_size
        Base.metadata.create_all(self.engine)

    # -------------------------------------------------------------------------
    def get_table_class(self, table_name: str) -> Any:
        table_cls = VOCABULARY_MODELS.get(table_name)
        if table_cls is None:
            raise ValueError(f"No table class found for name {table_name}")
        return table_cls

    # -------------------------------------------------------------------------
    def load_from_database(self, table_name: str) -> pd.DataFrame:
        with self.engine.connect() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table_name):
                logger.warning(MISSING_TABLE_MESSAGE, table_name)
                return pd.DataFrame()
            data = pd.read_sql_table(table_name, conn)
        return data

    # -------------------------------------------------------------------------
    def save_into_database(self, df: pd.DataFrame, table_name: str) -> None:
        table = self.get_table_class(table_name).__table__
        records = df.to_dict(orient="records")
        session = self.session_factory()
        try:
            session.execute(table.delete())
            for i in range(0, len(records), self.insert_batch_size):
                batch = records[i : i + self.insert_batch_size]
                if batch:
                    session.execute(table.insert(), batch)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str) -> int:
        table = self.get_table_class(table_name).__table__
        with self.engine.connect() as conn:
            value = conn.execute(select(func.count()).select_from(table)).scalar() or 0
        return int(value)

    # -------------------------------------------------------------------------
    def build_pool_columns(self, pool: str) -> tuple[Any, ...]:
        """Return id, code, term, term type and usage count columns of a pool."""
        if pool == SUBSTANCE_POOL:
            return (
                NdcCode.id,
                NdcCode.ndc_code,
                NdcCode.product_name,
                sqlalchemy.null(),
                sqlalchemy.literal(0),
            )
        link = ProductIndication if pool == INDICATION_POOL else ProductAdverseEvent
        usage = (
            select(func.count(link.id))
            .where(link.meddra_id == MeddraTerm.id)
            .scalar_subquery()
        )
        return (
            MeddraTerm.id,
            MeddraTerm.meddra_code,
            MeddraTerm.meddra_term,
            MeddraTerm.meddra_tty,
            usage,
        )

    # -------------------------------------------------------------------------
    def build_ordering(self, spec: MatchSpec, term: Any, relevance: Any, usage: Any) -> list[Any]:
        ordering: list[Any] = []
        for order in spec.order_by:
            if order == OrderKey.RELEVANCE:
                ordering.append(relevance.desc())
            elif order == OrderKey.USAGE:
                ordering.append(usage.desc())
            elif order == OrderKey.LENGTH:
                ordering.append(func.length(term).asc())
            elif order == OrderKey.TERM:
                ordering.append(term.asc())
        return ordering

    # -------------------------------------------------------------------------
    def find_candidates(self, spec: MatchSpec) -> list[MatchCandidate]:
        if spec.is_empty():
            return []
        id_col, code_col, term_col, type_col, usage = self.build_pool_columns(spec.pool)
        clauses = [predicate_clause(term_col, predicate) for predicate in spec.predicates]
        relevance = case(
            *[(clause, predicate.score) for clause, predicate in zip(clauses, spec.predicates)],
            else_=spec.fallback_score,
        ).label("relevance")
        usage = usage.label("usage_count")
        statement = select(id_col, code_col, term_col, type_col, usage, relevance).where(
            term_col.is_not(None), sqlalchemy.or_(*clauses)
        )
        if spec.excluded_terms:
            statement = statement.where(func.lower(term_col).not_in(sorted(spec.excluded_terms)))
        if spec.pool == INDICATION_POOL:
            statement = statement.where(
                MeddraTerm.id.in_(select(ProductIndication.meddra_id).distinct())
            )
        statement = statement.order_by(*self.build_ordering(spec, term_col, relevance, usage))
        if spec.limit is not None:
            statement = statement.limit(spec.limit)

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statement).all()
        except (SQLAlchemyError, OSError) as exc:
            raise RepositoryUnavailableError(
                f"Unable to query {spec.pool} candidates", pool=spec.pool
            ) from exc

        logger.debug("Retrieved %d %s candidates for '%s'", len(rows), spec.pool, spec.query)
        return [
            MatchCandidate(
                id=int(row[0]),
                code=row[1],
                term=row[2],
                term_type=row[3],
                usage_count=int(row[4] or 0),
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    def find_adverse_events(
        self, spec: MatchSpec, filters: AdverseEventFilters
    ) -> list[AdverseEventRecord]:
        if spec.is_empty():
            return []
        term_col = MeddraTerm.meddra_term
        clauses = [predicate_clause(term_col, predicate) for predicate in spec.predicates]
        usage_link = aliased(ProductAdverseEvent)
        usage = (
            select(func.count(usage_link.id))
            .where(usage_link.meddra_id == ProductAdverseEvent.meddra_id)
            .scalar_subquery()
        )
        substance_name = (
            select(NdcCode.product_name)
            .join(ProductNdc, NdcCode.id == ProductNdc.ndc_id)
            .where(ProductNdc.product_id == ProductAdverseEvent.product_id)
            .order_by(NdcCode.id)
            .limit(1)
            .scalar_subquery()
        )
        statement = (
            select(
                ProductAdverseEvent.id,
                ProductAdverseEvent.product_id,
                substance_name.label("substance_name"),
                ProductAdverseEvent.meddra_id,
                MeddraTerm.meddra_code,
                term_col,
                MeddraTerm.meddra_tty,
                ProductAdverseEvent.label_date,
                ProductAdverseEvent.warning,
                ProductAdverseEvent.blackbox,
                ProductAdverseEvent.exact_match,
                usage.label("usage_count"),
            )
            .select_from(ProductAdverseEvent)
            .join(MeddraTerm, ProductAdverseEvent.meddra_id == MeddraTerm.id)
            .where(sqlalchemy.or_(*clauses))
        )
        if filters.substance_id is not None:
            statement = statement.where(ProductAdverseEvent.product_id == filters.substance_id)
        if filters.severity == "blackbox":
            statement = statement.where(ProductAdverseEvent.blackbox == 1)
        elif filters.severity == "warning":
            statement = statement.where(
                ProductAdverseEvent.warning == 1, ProductAdverseEvent.blackbox == 0
            )
        if filters.match_type == "exact":
            statement = statement.where(ProductAdverseEvent.exact_match == 1)
        elif filters.match_type == "nlp":
            statement = statement.where(ProductAdverseEvent.exact_match == 0)
        statement = statement.order_by(ProductAdverseEvent.id)
        if spec.limit is not None:
            statement = statement.limit(spec.limit)

        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statement).all()
        except (SQLAlchemyError, OSError) as exc:
            raise RepositoryUnavailableError(
                "Unable to query adverse event records", pool=spec.pool
            ) from exc

        return [
            AdverseEventRecord(
                id=int(row.id),
                substance_id=int(row.product_id),
                substance_name=row.substance_name,
                meddra_id=int(row.meddra_id),
                meddra_code=row.meddra_code,
                meddra_term=row.meddra_term,
                meddra_term_type=row.meddra_tty,
                label_date=row.label_date,
                warning=bool(row.warning),
                blackbox=bool(row.blackbox),
                exact_match=bool(row.exact_match),
                usage_count=int(row.usage_count or 0),
            )
            for row in rows
        ]
