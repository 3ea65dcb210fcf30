from datetime import date

import httpx
import pytest
import pytest_asyncio

from driftwatch.api.main import app
from driftwatch.api.prices import get_provider
from driftwatch.core.database import get_db
from driftwatch.core.errors import PriceFetchError
from driftwatch.services.market_data import DailyClose
from driftwatch.services.symbol_directory import get_allow_list

from conftest import FakePriceProvider, add_price

DAY = date(2024, 5, 10)


@pytest.fixture
def provider():
    return FakePriceProvider({
        "SPY": DailyClose(DAY, 30.0),
        "TLT": DailyClose(DAY, 10.0),
    })


@pytest_asyncio.fixture
async def client(session_factory, allow_list, provider):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_allow_list] = lambda: allow_list
    app.dependency_overrides[get_provider] = lambda: provider

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


async def _create(client, symbol, shares, target_weight, **extra):
    body = {"symbol": symbol, "shares": shares, "targetWeight": target_weight, **extra}
    return await client.post("/api/holdings", json=body)


async def _drifted_portfolio(client):
    await _create(client, "SPY", 10, 0.5)
    await _create(client, "TLT", 10, 0.5)
    await client.post("/api/prices/refresh")
    return await client.post("/api/decisions/run")


# ---------- Health ----------

async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["service"] == "Driftwatch"


# ---------- Holdings ----------

async def test_create_and_list_holdings(client):
    response = await _create(client, "vti", 4, 0.6)

    assert response.status_code == 201
    holding_id = response.json()["id"]

    listed = (await client.get("/api/holdings")).json()
    assert len(listed) == 1
    assert listed[0]["id"] == holding_id
    assert listed[0]["symbol"] == "VTI"
    assert listed[0]["label"] == "Vanguard Total Stock Market ETF"
    assert listed[0]["targetWeight"] == 0.6
    assert "createdAt" in listed[0]


async def test_create_accepts_name_as_label(client):
    await _create(client, "SPY", 1, 0.5, name="Core")

    listed = (await client.get("/api/holdings")).json()
    assert listed[0]["label"] == "Core"


async def test_posting_existing_symbol_merges(client):
    first = await _create(client, "SPY", 10, 0.5)
    second = await _create(client, "SPY", 5, 0.7)

    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    listed = (await client.get("/api/holdings")).json()
    assert len(listed) == 1
    assert listed[0]["shares"] == 15
    assert listed[0]["targetWeight"] == 0.7


async def test_symbol_off_allow_list_is_rejected(client):
    response = await _create(client, "IBM", 1, 0.1)

    assert response.status_code == 422
    assert response.json()["detail"] == "symbol_not_allowed"


@pytest.mark.parametrize(
    "body",
    [
        {"symbol": "SPY", "shares": 0, "targetWeight": 0.5},
        {"symbol": "SPY", "shares": 1, "targetWeight": 1.5},
        {"symbol": "", "shares": 1, "targetWeight": 0.5},
        {"symbol": "WAYTOOLONGSYMBOL", "shares": 1, "targetWeight": 0.5},
        {"symbol": "SPY", "shares": 1},
    ],
)
async def test_invalid_holding_body(client, body):
    response = await client.post("/api/holdings", json=body)

    assert response.status_code == 422


async def test_update_holding(client):
    holding_id = (await _create(client, "SPY", 1, 0.5)).json()["id"]

    response = await client.put(
        f"/api/holdings/{holding_id}",
        json={"symbol": "VOO", "shares": 2, "targetWeight": 0.4, "label": "Core"},
    )

    assert response.json() == {"updated": 1}
    listed = (await client.get("/api/holdings")).json()
    assert listed[0]["symbol"] == "VOO"
    assert listed[0]["label"] == "Core"


async def test_update_missing_holding(client):
    response = await client.put(
        "/api/holdings/999", json={"symbol": "SPY", "shares": 1, "targetWeight": 0.4}
    )

    assert response.status_code == 200
    assert response.json() == {"updated": 0}


async def test_update_symbol_collision_conflicts(client):
    await _create(client, "SPY", 1, 0.5)
    tlt_id = (await _create(client, "TLT", 1, 0.5)).json()["id"]

    response = await client.put(
        f"/api/holdings/{tlt_id}", json={"symbol": "SPY", "shares": 1, "targetWeight": 0.5}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "symbol_already_exists"


async def test_delete_holding(client):
    holding_id = (await _create(client, "SPY", 1, 0.5)).json()["id"]

    assert (await client.delete(f"/api/holdings/{holding_id}")).json() == {"deleted": 1}
    assert (await client.delete(f"/api/holdings/{holding_id}")).json() == {"deleted": 0}


# ---------- Prices ----------

async def test_refresh_then_latest(client, provider):
    await _create(client, "SPY", 1, 0.5)
    await _create(client, "VTI", 1, 0.5)

    response = await client.post("/api/prices/refresh")

    assert response.status_code == 200
    assert response.json() == {
        "refreshed": 2,
        "results": [
            {"symbol": "SPY", "ok": True, "date": "2024-05-10", "close": 30.0},
            {"symbol": "VTI", "ok": False, "error": "no_quote"},
        ],
    }
    latest = (await client.get("/api/prices/latest")).json()
    assert latest == [{"symbol": "SPY", "date": "2024-05-10", "close": 30.0}]


async def test_latest_prices_empty(client):
    assert (await client.get("/api/prices/latest")).json() == []


# ---------- Decisions ----------

async def test_run_opens_drift_decisions(client):
    response = await _drifted_portfolio(client)

    assert response.json() == {"created": 2, "evaluated": 2}

    decisions = (await client.get("/api/decisions")).json()
    assert len(decisions) == 2
    spy = next(d for d in decisions if d["payload"]["symbol"] == "SPY")
    assert spy["decisionType"] == "portfolio.drift"
    assert spy["status"] == "open"
    assert spy["rationale"] == "SPY is overweight by 25.00% vs target."
    assert spy["payload"]["currentWeight"] == 0.75
    assert spy["payload"]["lastCloseDate"] == "2024-05-10"


async def test_second_run_is_idempotent(client):
    await _drifted_portfolio(client)

    response = await client.post("/api/decisions/run")

    assert response.json() == {"created": 0, "evaluated": 2}


async def test_run_with_no_holdings(client):
    response = await client.post("/api/decisions/run")

    assert response.json() == {"created": 0, "evaluated": 0}


async def test_status_workflow(client):
    await _drifted_portfolio(client)
    decisions = (await client.get("/api/decisions")).json()
    target = decisions[0]["id"]

    response = await client.post(f"/api/decisions/{target}/status", json={"status": "dismissed"})

    assert response.json() == {"updated": 1}
    dismissed = (await client.get("/api/decisions", params={"status": "dismissed"})).json()
    assert [d["id"] for d in dismissed] == [target]
    still_open = (await client.get("/api/decisions", params={"status": "open"})).json()
    assert len(still_open) == 1


async def test_status_update_unknown_decision(client):
    response = await client.post("/api/decisions/999/status", json={"status": "ack"})

    assert response.json() == {"updated": 0}


async def test_invalid_status_is_rejected(client):
    response = await client.post("/api/decisions/1/status", json={"status": "archived"})
    listing = await client.get("/api/decisions", params={"status": "archived"})

    assert response.status_code == 422
    assert listing.status_code == 422


async def test_reopen_conflicts_with_newer_open_decision(client):
    await _drifted_portfolio(client)
    spy = next(
        d for d in (await client.get("/api/decisions")).json() if d["payload"]["symbol"] == "SPY"
    )
    await client.post(f"/api/decisions/{spy['id']}/status", json={"status": "done"})
    assert (await client.post("/api/decisions/run")).json()["created"] == 1

    response = await client.post(f"/api/decisions/{spy['id']}/status", json={"status": "open"})

    assert response.status_code == 409
    assert response.json()["detail"] == "decision_already_open"


async def test_rebalance_suggestions(client):
    await _drifted_portfolio(client)

    suggestions = (await client.get("/api/decisions/rebalance")).json()

    by_symbol = {s["symbol"]: s for s in suggestions}
    assert by_symbol["SPY"]["action"] == "sell"
    assert by_symbol["SPY"]["deltaValue"] == -100.0
    assert by_symbol["TLT"]["action"] == "buy"
    assert by_symbol["TLT"]["sharesDelta"] == 10.0
    assert all("decisionId" in s for s in suggestions)


# ---------- Settings ----------

async def test_drift_threshold_get_and_put(client):
    assert (await client.get("/api/settings/drift-threshold")).json() == {"pct": 0.05}

    response = await client.put("/api/settings/drift-threshold", json={"pct": 0.3})

    assert response.json() == {"pct": 0.3}
    assert (await client.get("/api/settings/drift-threshold")).json() == {"pct": 0.3}


@pytest.mark.parametrize("pct", [-0.1, 1.5, "lots"])
async def test_drift_threshold_rejects_invalid(client, pct):
    response = await client.put("/api/settings/drift-threshold", json={"pct": pct})

    assert response.status_code == 422


async def test_raised_threshold_suppresses_drift(client):
    await client.put("/api/settings/drift-threshold", json={"pct": 0.3})

    response = await _drifted_portfolio(client)

    assert response.json() == {"created": 0, "evaluated": 2}


async def test_latest_uses_most_recent_stored_close(client, session):
    await add_price(session, "SPY", date(2024, 5, 9), 29.0)
    await add_price(session, "SPY", DAY, 31.0)

    latest = (await client.get("/api/prices/latest")).json()

    assert latest == [{"symbol": "SPY", "date": "2024-05-10", "close": 31.0}]


async def test_unmapped_domain_error_returns_its_code(client):
    def broken_provider():
        raise PriceFetchError("stooq_timeout")

    app.dependency_overrides[get_provider] = broken_provider

    response = await client.post("/api/prices/refresh")

    assert response.status_code == 400
    assert response.json() == {"detail": "price_fetch_failed"}
