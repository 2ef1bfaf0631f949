from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from .. import queries
from ..db import Database
from ..deps import get_db
from ..errors import DatabaseError

router = APIRouter()


class SearchFilters(BaseModel):
    model_config = ConfigDict(extra="ignore")

    industry: Optional[str] = None


class SearchBody(BaseModel):
    query: str
    filters: Optional[SearchFilters] = None


@router.post("")
def search(body: SearchBody, db: Database = Depends(get_db)):
    q = body.query.strip()
    if not q:
        return []
    filters = body.filters or SearchFilters()
    stmt, params = queries.search_companies(q, db.dialect, industry=filters.industry)
    try:
        return db.fetch_all(stmt, params)
    except DatabaseError as exc:
        raise DatabaseError("Search failed") from exc
