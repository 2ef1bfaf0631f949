from datetime import date
from decimal import Decimal

from apps.api.intel.db import Company, FinancialMetric, MarketData


def test_list_companies_ordered_by_market_cap(client, seeded):
    r = client.get("/api/companies")
    assert r.status_code == 200
    names = [row["name"] for row in r.json()]
    assert names == ["Acme Cloud", "Globex Robotics", "Initech Foods"]


def test_list_companies_industry_filter(client, seeded):
    r = client.get("/api/companies", params={"industry": "FOOD"})
    assert r.status_code == 200
    rows = r.json()
    assert [row["ticker_symbol"] for row in rows] == ["INIT"]


def test_list_companies_search_matches_name_or_ticker_case_insensitive(client, seeded):
    by_ticker = client.get("/api/companies", params={"search": "gbx"}).json()
    assert [row["name"] for row in by_ticker] == ["Globex Robotics"]

    by_name = client.get("/api/companies", params={"search": "CLOUD"}).json()
    assert [row["ticker_symbol"] for row in by_name] == ["ACME"]


def test_list_companies_search_is_not_sql(client, seeded):
    r = client.get("/api/companies", params={"search": "' OR 1=1 --"})
    assert r.status_code == 200
    assert r.json() == []


def test_list_companies_pagination(client, add_rows):
    add_rows(*[Company(name=f"Company {i:02d}", market_cap=Decimal(i * 1_000_000_000)) for i in range(1, 36)])
    r = client.get("/api/companies", params={"limit": 10, "offset": 20})
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 10
    caps = [float(row["market_cap"]) for row in rows]
    assert caps == [float(i * 1_000_000_000) for i in range(15, 5, -1)]


def test_list_companies_rejects_bad_paging(client):
    assert client.get("/api/companies", params={"limit": 0}).status_code == 400
    assert client.get("/api/companies", params={"offset": -1}).status_code == 400
    r = client.get("/api/companies", params={"limit": "ten"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_company_detail(client, seeded, add_rows):
    acme = seeded["acme"]
    add_rows(
        MarketData(company_id=acme.id, measurement_date=date(2024, 1, 2), stock_price=Decimal("10.5")),
        MarketData(company_id=acme.id, measurement_date=date(2024, 3, 4), stock_price=Decimal("12.0")),
    )
    r = client.get(f"/api/companies/{acme.id}")
    assert r.status_code == 200
    data = r.json()
    assert data["company"]["name"] == "Acme Cloud"
    assert len(data["financialMetrics"]) == 3
    assert str(data["marketData"][0]["measurement_date"]).startswith("2024-03-04")
    assert str(data["marketData"][1]["measurement_date"]).startswith("2024-01-02")


def test_company_detail_caps_history_at_twenty(client, seeded, add_rows):
    globex = seeded["globex"]
    add_rows(
        *[
            FinancialMetric(company_id=globex.id, metric_type="eps", metric_value=Decimal(i), period_date=date(2000 + i, 1, 1))
            for i in range(25)
        ]
    )
    data = client.get(f"/api/companies/{globex.id}").json()
    metrics = data["financialMetrics"]
    assert len(metrics) == 20
    periods = [m["period_date"] for m in metrics]
    assert periods == sorted(periods, reverse=True)
    assert data["marketData"] == []


def test_company_detail_not_found(client, seeded):
    r = client.get("/api/companies/999999")
    assert r.status_code == 404
    body = r.json()
    assert body == {"error": "Company not found"}
    assert "financialMetrics" not in body and "marketData" not in body


def test_company_detail_non_numeric_id(client):
    assert client.get("/api/companies/acme").status_code == 400


def test_company_detail_id_beyond_bigint(client):
    r = client.get("/api/companies/99999999999999999999999")
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_company_detail_database_failure_is_generic_500(client, db, monkeypatch):
    from apps.api.intel.errors import DatabaseError

    def boom(*_a, **_k):
        raise DatabaseError("Database operation failed")

    monkeypatch.setattr(db, "fetch_all", boom)
    r = client.get("/api/companies/1")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch company details"}
