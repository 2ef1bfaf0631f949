from fastapi import APIRouter, Depends

from .. import queries
from ..db import Database
from ..deps import get_db
from ..errors import DatabaseError

router = APIRouter()


@router.get("/{code}/analysis")
def industry_analysis(code: str, db: Database = Depends(get_db)):
    stmt, params = queries.industry_analysis(code)
    try:
        row = db.fetch_one(stmt, params)
    except DatabaseError as exc:
        raise DatabaseError("Failed to fetch industry analysis") from exc
    return row or {}
