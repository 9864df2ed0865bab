"""
Database models read by the parlay edge engine.
SQLAlchemy ORM; the engine only ever SELECTs from these tables.
"""

import os
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

load_dotenv()

# SQLite fallback keeps local runs and tests free of a database server.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./parlay_edge.db")

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Status the fixture sync job writes for matches not yet kicked off; it
# moves them on to "LIVE" and "FINISHED", which the catalog never reads.
MATCH_STATUS_UPCOMING = "UPCOMING"


class Match(Base):
    """A fixture with kickoff time and lifecycle status"""

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(String, unique=True, nullable=False, index=True)  # From the odds feed
    home_team = Column(String, nullable=False)
    away_team = Column(String, nullable=False)
    league = Column(String)
    kickoff_date = Column(DateTime, nullable=False, index=True)
    status = Column(String, default=MATCH_STATUS_UPCOMING, index=True)
    is_active = Column(Boolean, default=True)

    markets = relationship("MarketLegRow", back_populates="match")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MarketLegRow(Base):
    """One priced market outcome with the consensus model's probability"""

    __tablename__ = "market_legs"
    __table_args__ = (
        UniqueConstraint(
            "match_id", "market_type", "market_subtype", "line",
            name="uq_market_leg_selection",
        ),
    )

    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("matches.match_id"), nullable=False, index=True)

    # What the leg is
    market_type = Column(String, nullable=False)      # 1X2, TOTALS, BTTS, DNB, DOUBLE_CHANCE
    market_subtype = Column(String)                   # HOME / OVER / YES / 1X ...
    line = Column(Numeric(6, 2))                      # Totals line, NULL otherwise

    # Consensus model output
    consensus_prob = Column(Numeric(8, 6), nullable=False)
    consensus_confidence = Column(Float)
    model_agreement = Column(Float)
    risk_level = Column(String)

    # Pricing (decimal odds)
    decimal_odds = Column(Numeric(8, 3))              # Best available price
    book_odds = Column(JSON)                          # {"bet365": 2.05, "pinnacle": 2.08}

    # Written by the sync job at the last refresh; may be stale vs. decimal_odds
    edge_consensus = Column(Float)
    implied_prob = Column(Float)

    match = relationship("Match", back_populates="markets")

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
