"""SQL statement builders for the read endpoints.

Each builder returns ``(statement, params)``. Only placeholder names are
assembled into SQL text; every request value travels in ``params``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.sql.elements import TextClause

Built = Tuple[TextClause, Dict[str, Any]]

DETAIL_HISTORY_LIMIT = 20
SEARCH_LIMIT = 20
SENTIMENT_WINDOW_DAYS = 30


def list_companies(
    industry: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Built:
    clauses: List[str] = []
    params: Dict[str, Any] = {}
    if industry:
        clauses.append("industry_code = :industry")
        params["industry"] = industry
    if search:
        clauses.append("(LOWER(name) LIKE LOWER(:pattern) OR LOWER(ticker_symbol) LIKE LOWER(:pattern))")
        params["pattern"] = f"%{search}%"
    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    sql = (
        "SELECT * FROM companies"
        + where
        + " ORDER BY market_cap DESC NULLS LAST, id ASC LIMIT :limit OFFSET :offset"
    )
    params["limit"] = int(limit)
    params["offset"] = int(offset)
    return text(sql), params


def company_by_id(company_id: int) -> Built:
    return text("SELECT * FROM companies WHERE id = :id"), {"id": company_id}


def company_financial_metrics(company_id: int) -> Built:
    sql = "SELECT * FROM financial_metrics WHERE company_id = :id ORDER BY period_date DESC, id DESC LIMIT :limit"
    return text(sql), {"id": company_id, "limit": DETAIL_HISTORY_LIMIT}


def company_market_data(company_id: int) -> Built:
    sql = "SELECT * FROM market_data WHERE company_id = :id ORDER BY measurement_date DESC, id DESC LIMIT :limit"
    return text(sql), {"id": company_id, "limit": DETAIL_HISTORY_LIMIT}


def industry_analysis(code: str) -> Built:
    # Growth is averaged in a subquery so the metrics join cannot inflate the company count
    sql = """
        SELECT
            i.naics_code,
            i.industry_title,
            COUNT(c.id) AS company_count,
            AVG(c.market_cap) AS avg_market_cap,
            (
                SELECT AVG(fm.metric_value)
                FROM financial_metrics fm
                JOIN companies gc ON gc.id = fm.company_id
                WHERE gc.naics_code = i.naics_code AND fm.metric_type = 'revenue_growth'
            ) AS avg_growth_rate
        FROM industries i
        LEFT JOIN companies c ON c.naics_code = i.naics_code
        WHERE i.naics_code = :code
        GROUP BY i.naics_code, i.industry_title
    """
    return text(sql), {"code": code}


def compare_companies(company_ids: Sequence[int], now: Optional[datetime] = None) -> Built:
    current = now or datetime.now(timezone.utc).replace(tzinfo=None)
    since = current - timedelta(days=SENTIMENT_WINDOW_DAYS)
    sql = """
        SELECT
            c.id,
            c.name,
            c.ticker_symbol,
            c.market_cap,
            AVG(CASE WHEN fm.metric_type = 'revenue' THEN fm.metric_value END) AS revenue,
            AVG(CASE WHEN fm.metric_type = 'revenue_growth' THEN fm.metric_value END) AS growth_rate,
            AVG(ns.sentiment_score) AS avg_sentiment
        FROM companies c
        LEFT JOIN financial_metrics fm ON c.id = fm.company_id
        LEFT JOIN news_sentiment ns ON c.id = ns.company_id AND ns.published_date > :since
        WHERE c.id IN :ids
        GROUP BY c.id, c.name, c.ticker_symbol, c.market_cap
        ORDER BY c.id
    """
    stmt = text(sql).bindparams(
        bindparam("ids", expanding=True),
        bindparam("since", type_=DateTime()),
    )
    return stmt, {"ids": [int(i) for i in company_ids], "since": since}


def search_companies(query: str, dialect: str, industry: Optional[str] = None) -> Built:
    """Relevance-ranked company search.

    PostgreSQL gets real full-text search over name + description. Other
    backends (SQLite in development and tests) fall back to substring matching
    where relevance is the number of fields that matched.
    """
    params: Dict[str, Any] = {"limit": SEARCH_LIMIT}
    industry_clause = ""
    if industry:
        industry_clause = " AND c.industry_code = :industry"
        params["industry"] = industry

    if dialect == "postgresql":
        document = "to_tsvector('english', c.name || ' ' || COALESCE(c.description, ''))"
        sql = (
            "SELECT c.id, c.name, c.ticker_symbol, c.industry_code, c.market_cap, "
            f"ts_rank({document}, plainto_tsquery('english', :query)) AS relevance "
            "FROM companies c "
            f"WHERE {document} @@ plainto_tsquery('english', :query)"
            + industry_clause
            + " ORDER BY relevance DESC, c.market_cap DESC NULLS LAST LIMIT :limit"
        )
        params["query"] = query
        return text(sql), params

    name_hit = "CASE WHEN LOWER(c.name) LIKE LOWER(:pattern) THEN 1 ELSE 0 END"
    desc_hit = "CASE WHEN LOWER(COALESCE(c.description, '')) LIKE LOWER(:pattern) THEN 1 ELSE 0 END"
    sql = (
        "SELECT c.id, c.name, c.ticker_symbol, c.industry_code, c.market_cap, "
        f"({name_hit} + {desc_hit}) AS relevance "
        "FROM companies c "
        "WHERE (LOWER(c.name) LIKE LOWER(:pattern) OR LOWER(COALESCE(c.description, '')) LIKE LOWER(:pattern))"
        + industry_clause
        + " ORDER BY relevance DESC, c.market_cap DESC NULLS LAST, c.id ASC LIMIT :limit"
    )
    params["pattern"] = f"%{query}%"
    return text(sql), params
