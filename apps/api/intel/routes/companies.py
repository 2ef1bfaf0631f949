from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from starlette.concurrency import run_in_threadpool

from .. import queries
from ..db import MAX_BIG_ID, Database
from ..deps import get_db
from ..errors import DatabaseError, NotFound

router = APIRouter()


@router.get("")
def list_companies(
    industry: Optional[str] = Query(default=None, description="Exact industry code"),
    search: Optional[str] = Query(default=None, description="Substring of name or ticker"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
):
    stmt, params = queries.list_companies(industry=industry, search=search, limit=limit, offset=offset)
    try:
        return db.fetch_all(stmt, params)
    except DatabaseError as exc:
        raise DatabaseError("Failed to fetch companies") from exc


@router.get("/{company_id}")
async def get_company(company_id: int = Path(ge=1, le=MAX_BIG_ID), db: Database = Depends(get_db)):
    try:
        company, metrics, market = await asyncio.gather(
            run_in_threadpool(db.fetch_one, *queries.company_by_id(company_id)),
            run_in_threadpool(db.fetch_all, *queries.company_financial_metrics(company_id)),
            run_in_threadpool(db.fetch_all, *queries.company_market_data(company_id)),
        )
    except DatabaseError as exc:
        raise DatabaseError("Failed to fetch company details") from exc
    if company is None:
        raise NotFound("Company not found")
    return {"company": company, "financialMetrics": metrics, "marketData": market}
