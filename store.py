"""Persistence of reconciled countries and the aggregates read back from them."""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

import config
from errors import PersistenceFailure
from reconcile import ReconciledCountry
from schema import Country, name_key

logger = structlog.get_logger(__name__)

# columns rewritten when an incoming record matches an existing name_key
UPDATE_COLUMNS = (
    "name",
    "capital",
    "region",
    "population",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "flag_url",
    "last_refreshed_at",
)


def upsert_statement(dialect_name: str, rows: List[dict]):
    """Build a multi-row insert-or-update keyed by ``countries.name_key``."""
    if dialect_name in ("sqlite", "postgresql"):
        insert = sqlite_insert if dialect_name == "sqlite" else pg_insert
        stmt = insert(Country).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[Country.name_key],
            set_={col: stmt.excluded[col] for col in UPDATE_COLUMNS},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql_insert(Country).values(rows)
        return stmt.on_duplicate_key_update({col: stmt.inserted[col] for col in UPDATE_COLUMNS})
    raise PersistenceFailure(f"upsert not supported for dialect {dialect_name!r}")


def unique_by_name(records: Iterable[ReconciledCountry]) -> List[ReconciledCountry]:
    """Collapse records whose names differ only by case; the last one wins."""
    by_key = {}
    for rec in records:
        key = name_key(rec.name)
        by_key.pop(key, None)
        by_key[key] = rec
    return list(by_key.values())


class CountryStore:
    def __init__(self, session_factory, batch_size: int = config.UPSERT_BATCH_SIZE):
        self.session_factory = session_factory
        self.batch_size = batch_size

    def upsert_all(self, records: Iterable[ReconciledCountry]) -> int:
        """Insert or update every record in a single transaction.

        Either all rows are written or, on any database error, none are and
        :class:`PersistenceFailure` is raised. Records sharing a
        case-insensitive name collapse to the last one seen.
        """
        rows = []
        for rec in unique_by_name(records):
            row = rec.as_row()
            row["name_key"] = name_key(rec.name)
            rows.append(row)
        if not rows:
            logger.info("store.upsert.empty")
            return 0

        try:
            with self.session_factory() as session, session.begin():
                dialect_name = session.get_bind().dialect.name
                for start in range(0, len(rows), self.batch_size):
                    chunk = rows[start:start + self.batch_size]
                    session.execute(upsert_statement(dialect_name, chunk))
        except SQLAlchemyError as exc:
            logger.error("store.upsert.rolled_back", rows=len(rows), error=str(exc))
            raise PersistenceFailure(f"commit of {len(rows)} countries failed") from exc

        logger.info("store.upsert.committed", rows=len(rows))
        return len(rows)

    def count(self) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count(Country.id))) or 0

    def status(self) -> dict:
        with self.session_factory() as session:
            total, last = session.execute(
                select(func.count(Country.id), func.max(Country.last_refreshed_at))
            ).one()
        return {"total_countries": total or 0, "last_refreshed_at": last if total else None}

    def get(self, name: str) -> Optional[Country]:
        with self.session_factory() as session:
            return session.scalar(select(Country).where(Country.name_key == name_key(name)))

    def delete(self, name: str) -> bool:
        with self.session_factory() as session, session.begin():
            result = session.execute(delete(Country).where(Country.name_key == name_key(name)))
        return result.rowcount > 0
