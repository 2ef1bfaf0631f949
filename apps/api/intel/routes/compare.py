from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, conint

from .. import queries
from ..db import MAX_BIG_ID, Database
from ..deps import get_db
from ..errors import DatabaseError, NotFound, ValidationError
from ..insights import generate_comparison_insights

router = APIRouter()

DEFAULT_METRICS = ["revenue", "market_cap", "growth_rate"]

CompanyId = conint(ge=1, le=MAX_BIG_ID)


class CompareBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company_ids: Optional[List[CompanyId]] = Field(default=None, alias="companyIds")
    metrics: Optional[List[str]] = None


@router.post("")
def compare(body: CompareBody, db: Database = Depends(get_db)):
    # Keep first-seen order while dropping repeats
    ids = list(dict.fromkeys(body.company_ids or []))
    if len(ids) < 2:
        raise ValidationError("At least 2 companies required for comparison")

    stmt, params = queries.compare_companies(ids)
    try:
        rows = db.fetch_all(stmt, params)
    except DatabaseError as exc:
        raise DatabaseError("Failed to compare companies") from exc
    if not rows:
        raise NotFound("Companies not found")

    return {
        "companies": rows,
        "insights": generate_comparison_insights(rows),
        "metrics": body.metrics if body.metrics is not None else list(DEFAULT_METRICS),
    }
