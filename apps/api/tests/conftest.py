# Ensure the repository root is importable so "apps.api.intel" resolves
import sys
from pathlib import Path

THIS_DIR = Path(__file__).resolve().parent
REPO_ROOT = THIS_DIR.parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import hashlib  # noqa: E402
import hmac  # noqa: E402
import json  # noqa: E402
import time  # noqa: E402
from typing import Any, Callable, Dict, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from apps.api.intel.config import Settings  # noqa: E402
from apps.api.intel.main import create_app  # noqa: E402

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'intel_test.sqlite'}",
        stripe_secret_key="sk_test_dummy",
        stripe_webhook_secret=WEBHOOK_SECRET,
        frontend_url="https://app.example.com",
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    # Entering the client runs the lifespan: pool creation and schema bootstrap
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db(client):
    return client.app.state.db


@pytest.fixture()
def add_rows(db) -> Callable[..., list]:
    def _add(*rows):
        with Session(db.engine) as s:
            for r in rows:
                s.add(r)
            s.commit()
            for r in rows:
                s.refresh(r)
        return list(rows)

    return _add


def _signature(payload: str, secret: str, ts: Optional[int] = None) -> str:
    ts = int(ts if ts is not None else time.time())
    mac = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={mac}"


@pytest.fixture()
def post_webhook(client) -> Callable[..., Any]:
    """POST an event to the webhook route, signed like Stripe signs it."""

    def _post(event: Dict[str, Any], secret: str = WEBHOOK_SECRET, body: Optional[str] = None, ts: Optional[int] = None):
        payload = json.dumps(event)
        headers = {"Content-Type": "application/json", "Stripe-Signature": _signature(payload, secret, ts)}
        return client.post("/api/stripe-webhook", content=(body if body is not None else payload).encode("utf-8"), headers=headers)

    return _post


@pytest.fixture()
def sign() -> Callable[..., str]:
    return _signature


@pytest.fixture()
def seeded(add_rows):
    """Three companies across two industries, with metrics and recent news."""
    from datetime import date, datetime, timedelta, timezone
    from decimal import Decimal

    from apps.api.intel.db import Company, FinancialMetric, Industry, NewsSentiment

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    acme, globex, initech = add_rows(
        Company(
            name="Acme Cloud",
            ticker_symbol="ACME",
            industry_code="TECH",
            naics_code="541511",
            market_cap=Decimal("5000000000.00"),
            headquarters_country="USA",
            description="Cloud software platform for logistics",
        ),
        Company(
            name="Globex Robotics",
            ticker_symbol="GBX",
            industry_code="TECH",
            naics_code="541511",
            market_cap=Decimal("2000000000.00"),
            headquarters_country="USA",
            description="Industrial robotics and automation",
        ),
        Company(
            name="Initech Foods",
            ticker_symbol="INIT",
            industry_code="FOOD",
            naics_code="311999",
            market_cap=Decimal("800000000.00"),
            headquarters_country="CAN",
            description="Packaged snacks",
        ),
    )
    add_rows(
        Industry(naics_code="541511", industry_title="Custom Computer Programming Services"),
        Industry(naics_code="311999", industry_title="All Other Miscellaneous Food Manufacturing"),
        Industry(naics_code="999999", industry_title="Unclassified Establishments"),
        FinancialMetric(company_id=acme.id, metric_type="revenue", metric_value=Decimal("1200.00"), period_date=date(2024, 12, 31)),
        FinancialMetric(company_id=acme.id, metric_type="revenue", metric_value=Decimal("1000.00"), period_date=date(2023, 12, 31)),
        FinancialMetric(company_id=acme.id, metric_type="revenue_growth", metric_value=Decimal("12.50"), period_date=date(2024, 12, 31)),
        FinancialMetric(company_id=globex.id, metric_type="revenue", metric_value=Decimal("400.00"), period_date=date(2024, 12, 31)),
        FinancialMetric(company_id=globex.id, metric_type="revenue_growth", metric_value=Decimal("30.00"), period_date=date(2024, 12, 31)),
        NewsSentiment(company_id=acme.id, headline="Acme beats estimates", sentiment_score=0.9, published_date=now - timedelta(days=2)),
        NewsSentiment(company_id=globex.id, headline="Globex wins contract", sentiment_score=0.7, published_date=now - timedelta(days=5)),
        NewsSentiment(company_id=globex.id, headline="Old recall", sentiment_score=-1.0, published_date=now - timedelta(days=60)),
    )
    return {"acme": acme, "globex": globex, "initech": initech}
