from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generator, List, Mapping, Optional, Union

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause
from sqlmodel import Field, SQLModel, create_engine

from .config import Settings
from .errors import DatabaseError

logger = logging.getLogger(__name__)

Statement = Union[str, TextClause]
Params = Optional[Mapping[str, Any]]


# Timestamps are stored as naive UTC in plain DateTime columns
def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SubscriptionStatus(str, Enum):
    trial = "trial"
    active = "active"
    cancelled = "cancelled"


# Largest id a BIGINT column can hold
MAX_BIG_ID = 2**63 - 1


def _big_id(*args: Any, **kwargs: Any) -> Column:
    # SQLite only autoincrements an INTEGER PRIMARY KEY
    return Column(BigInteger().with_variant(Integer(), "sqlite"), *args, **kwargs)


class User(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    email: Optional[str] = Field(default=None, max_length=255, unique=True)
    stripe_customer_id: Optional[str] = Field(default=None, max_length=255, unique=True)
    subscription_id: Optional[str] = Field(default=None, max_length=255)
    plan_id: Optional[str] = Field(default=None, max_length=50)
    status: str = Field(default=SubscriptionStatus.trial.value, max_length=50)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)


class Company(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "companies"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, sa_column=_big_id(primary_key=True, autoincrement=True))
    name: str = Field(max_length=255)
    ticker_symbol: Optional[str] = Field(default=None, max_length=10)
    industry_code: Optional[str] = Field(default=None, max_length=10)
    naics_code: Optional[str] = Field(default=None, max_length=10)
    sic_code: Optional[str] = Field(default=None, max_length=10)
    market_cap: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    headquarters_country: Optional[str] = Field(default=None, max_length=3)
    founded_date: Optional[date] = None
    employee_count: Optional[int] = None
    website: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)


class Industry(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "industries"
    __table_args__ = {"extend_existing": True}

    naics_code: str = Field(primary_key=True, max_length=10)
    industry_title: str = Field(max_length=255)
    description: Optional[str] = None


class FinancialMetric(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "financial_metrics"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, sa_column=_big_id(primary_key=True, autoincrement=True))
    company_id: Optional[int] = Field(default=None, sa_column=_big_id(ForeignKey("companies.id")))
    metric_type: Optional[str] = Field(default=None, max_length=50)
    metric_value: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    metric_unit: Optional[str] = Field(default=None, max_length=20)
    period_type: Optional[str] = Field(default=None, max_length=20)
    period_date: Optional[date] = None
    data_source: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)


class MarketData(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "market_data"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, sa_column=_big_id(primary_key=True, autoincrement=True))
    company_id: Optional[int] = Field(default=None, sa_column=_big_id(ForeignKey("companies.id")))
    measurement_date: Optional[date] = None
    stock_price: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=4)
    trading_volume: Optional[int] = Field(default=None, sa_column=Column(BigInteger()))
    market_cap: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    data_source: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)


class NewsSentiment(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "news_sentiment"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, sa_column=_big_id(primary_key=True, autoincrement=True))
    company_id: Optional[int] = Field(default=None, sa_column=_big_id(ForeignKey("companies.id")))
    headline: Optional[str] = None
    source_url: Optional[str] = Field(default=None, max_length=500)
    sentiment_score: Optional[float] = None
    published_date: Optional[datetime] = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime)


INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_companies_industry ON companies(industry_code, naics_code)",
    "CREATE INDEX IF NOT EXISTS idx_companies_market_cap ON companies(market_cap DESC)",
    "CREATE INDEX IF NOT EXISTS idx_financial_metrics_lookup ON financial_metrics(company_id, metric_type, period_date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_market_data_lookup ON market_data(company_id, measurement_date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_news_sentiment_lookup ON news_sentiment(company_id, published_date)",
)


def _as_clause(stmt: Statement) -> TextClause:
    return text(stmt) if isinstance(stmt, str) else stmt


class Database:
    """Process-wide handle on the connection pool.

    Every call checks a connection out of the pool for exactly one statement and
    returns it afterwards, whether the statement succeeded or not.
    """

    def __init__(self, url: str, connect_args: Optional[Dict[str, Any]] = None, echo: bool = False) -> None:
        args: Dict[str, Any] = dict(connect_args or {})
        if url.startswith("sqlite"):
            # Handlers run in the threadpool; the pool hands connections across threads
            args.setdefault("check_same_thread", False)
        self.url = url
        self.engine = create_engine(url, echo=echo, pool_pre_ping=True, connect_args=args)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "Database":
        connect_args: Dict[str, Any] = {}
        if cfg.is_production and cfg.DATABASE_URL.startswith("postgresql"):
            connect_args["sslmode"] = cfg.database_sslmode
        return cls(cfg.DATABASE_URL, connect_args=connect_args)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def connection(self, write: bool = False) -> Generator[Connection, None, None]:
        try:
            if write:
                with self.engine.begin() as conn:
                    yield conn
            else:
                with self.engine.connect() as conn:
                    yield conn
        except SQLAlchemyError as exc:
            raise DatabaseError("Database operation failed") from exc

    def fetch_all(self, stmt: Statement, params: Params = None) -> List[Dict[str, Any]]:
        with self.connection() as conn:
            result = conn.execute(_as_clause(stmt), dict(params or {}))
            return [dict(row._mapping) for row in result]

    def fetch_one(self, stmt: Statement, params: Params = None) -> Optional[Dict[str, Any]]:
        with self.connection() as conn:
            row = conn.execute(_as_clause(stmt), dict(params or {})).first()
            return dict(row._mapping) if row is not None else None

    def execute(self, stmt: Statement, params: Params = None) -> int:
        """Run a write statement in its own transaction; returns the affected row count."""
        with self.connection(write=True) as conn:
            result = conn.execute(_as_clause(stmt), dict(params or {}))
            return int(result.rowcount or 0)

    def ping(self) -> bool:
        try:
            self.fetch_one("SELECT 1 AS ok")
            return True
        except DatabaseError:
            logger.warning("Database ping failed", exc_info=True)
            return False

    def init_db(self) -> None:
        """Create tables and indexes if they are missing. Safe to run on every start."""
        try:
            SQLModel.metadata.create_all(self.engine)
            with self.engine.begin() as conn:
                for ddl in INDEX_DDL:
                    conn.exec_driver_sql(ddl)
            logger.info("Database tables created successfully")
        except SQLAlchemyError:
            logger.exception("Error creating database tables")

    def dispose(self) -> None:
        self.engine.dispose()
