"""
Leg catalog loaders — where candidate legs come from.

The engine never decides which matches are eligible.  A catalog does, and
hands back a flat list of :class:`~parlay_edge.schemas.LegRecord` rows.

Two implementations:

    1. InMemoryLegCatalog — a fixed snapshot (tests, notebooks, callers
       that already hold the rows).
    2. SqlLegCatalog      — read-only SQLAlchemy query over ``matches`` and
       ``market_legs``.  Eligibility = active, UPCOMING, kickoff in the
       future; plus the quality floors the market sync job was tuned for
       (consensus prob ≥ 0.50, model agreement ≥ 0.65, top 100 rows).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from parlay_edge.models import MATCH_STATUS_UPCOMING, MarketLegRow, Match, SessionLocal
from parlay_edge.schemas import LegRecord

logger = logging.getLogger(__name__)

# Eligibility floors applied by the SQL catalog.
DEFAULT_MIN_CONSENSUS_PROB = 0.50
DEFAULT_MIN_MODEL_AGREEMENT = 0.65
DEFAULT_CATALOG_LIMIT = 100


class LegCatalog(Protocol):
    """Anything that can produce the current candidate legs."""

    def fetch_legs(self) -> List[LegRecord]:
        ...


def _validate_rows(rows: Iterable[Any]) -> List[LegRecord]:
    """Validate raw rows, skipping (and logging) any that cannot be parsed."""
    records: List[LegRecord] = []
    for row in rows:
        try:
            if isinstance(row, LegRecord):
                records.append(row)
            elif isinstance(row, dict):
                records.append(LegRecord.model_validate(row))
            else:
                records.append(LegRecord.model_validate(row, from_attributes=True))
        except ValidationError as exc:
            logger.warning(
                "Skipping unparseable catalog row %r: %d validation error(s)",
                getattr(row, "id", None) if not isinstance(row, dict) else row.get("id"),
                exc.error_count(),
            )
    return records


class InMemoryLegCatalog:
    """Catalog backed by a list of dicts, ORM rows or ``LegRecord`` objects."""

    def __init__(self, rows: Iterable[Any]):
        self._records = _validate_rows(rows)

    def fetch_legs(self) -> List[LegRecord]:
        # Copy so callers can't mutate the snapshot between runs
        return [record.model_copy() for record in self._records]


class SqlLegCatalog:
    """
    Read-only catalog over the market sync tables.

    Args:
        session_factory: Callable returning a SQLAlchemy ``Session``
            (e.g. ``SessionLocal``).  The session is closed after each fetch.
        now: Clock override for the "kickoff in the future" filter.
            Defaults to the current UTC time at fetch.
        min_consensus_prob: Rows below this consensus probability are not
            offered as candidates.
        min_model_agreement: Rows where the ensemble models disagree more
            than this are not offered.
        limit: Maximum number of rows returned.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        now: Optional[Callable[[], datetime]] = None,
        min_consensus_prob: float = DEFAULT_MIN_CONSENSUS_PROB,
        min_model_agreement: float = DEFAULT_MIN_MODEL_AGREEMENT,
        limit: int = DEFAULT_CATALOG_LIMIT,
    ):
        self._session_factory = session_factory
        self._now = now or (lambda: datetime.now(timezone.utc).replace(tzinfo=None))
        self.min_consensus_prob = min_consensus_prob
        self.min_model_agreement = min_model_agreement
        self.limit = limit

    def _query(self, now: datetime):
        return (
            select(MarketLegRow)
            .join(Match, Match.match_id == MarketLegRow.match_id)
            .where(
                Match.status == MATCH_STATUS_UPCOMING,
                Match.is_active.is_(True),
                Match.kickoff_date >= now,
                MarketLegRow.consensus_prob >= self.min_consensus_prob,
                MarketLegRow.model_agreement >= self.min_model_agreement,
            )
            .order_by(
                MarketLegRow.consensus_prob.desc(),
                MarketLegRow.model_agreement.desc(),
                MarketLegRow.edge_consensus.desc(),
                MarketLegRow.id,
            )
            .limit(self.limit)
        )

    def fetch_legs(self) -> List[LegRecord]:
        now = self._now()
        db = self._session_factory()
        try:
            rows = db.execute(self._query(now)).scalars().all()
            records = _validate_rows(rows)
        finally:
            db.close()

        logger.info(
            "Leg catalog: %d eligible legs across %d matches (kickoff >= %s)",
            len(records), len({r.match_id for r in records}), now.isoformat(),
        )
        return records


def default_catalog() -> SqlLegCatalog:
    """SQL catalog bound to ``DATABASE_URL``."""
    return SqlLegCatalog(SessionLocal)
