from fastapi import APIRouter, Depends

from ..db import Database
from ..deps import get_db

router = APIRouter()


# Exposed at GET /api/health via router prefix
@router.get("")
def health(db: Database = Depends(get_db)):
    return {"status": "ok", "database": "ok" if db.ping() else "unavailable"}
