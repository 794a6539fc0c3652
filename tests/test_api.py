from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import api
from agent_client import AgentError
from database import get_db
from storage import LocalStorage
from transactions import Transaction, save_transactions


@pytest.fixture
def client(engine, monkeypatch):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    api.app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(api, "init_db", lambda: None)
    with TestClient(api.app) as test_client:
        yield test_client
    api.app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_agent_proxy_forwards_reply(client, monkeypatch):
    calls = []

    def fake_call(message, agent_id):
        calls.append((message, agent_id))
        return {"success": True, "response": {"result": "Hi!"}, "raw_response": '{"result": "Hi!"}'}

    monkeypatch.setattr(api, "call_agent", fake_call)

    resp = client.post("/api/agent", json={"message": "hello", "agent_id": "abc"})

    assert resp.status_code == 200
    assert resp.json()["response"] == {"result": "Hi!"}
    assert calls == [("hello", "abc")]


def test_agent_proxy_rejects_blank_message(client, monkeypatch):
    monkeypatch.setattr(api, "call_agent", lambda *a: pytest.fail("agent should not be called"))

    resp = client.post("/api/agent", json={"message": "   ", "agent_id": "abc"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Message is required"}


@pytest.mark.parametrize("status_code, expected", [(None, 502), (200, 502), (429, 429)])
def test_agent_proxy_reports_upstream_failure(client, monkeypatch, status_code, expected):
    def fail(message, agent_id):
        raise AgentError("agent unavailable", status_code=status_code)

    monkeypatch.setattr(api, "call_agent", fail)

    resp = client.post("/api/agent", json={"message": "hello"})

    assert resp.status_code == expected
    assert resp.json() == {"success": False, "error": "agent unavailable"}


def test_transactions_and_summary(client, db):
    save_transactions(LocalStorage(db), [
        Transaction(id="1", date=date.today(), description="Pay", amount=100, category="Salary", type="income"),
        Transaction(id="2", date=date.today(), description="Lunch", amount=40, category="Food & Dining", type="expense"),
    ])

    txns = client.get("/api/transactions").json()
    assert [t["id"] for t in txns] == ["1", "2"]

    summary = client.get("/api/summary", params={"days": 3}).json()
    assert summary["income"] == 100
    assert summary["expenses"] == 40
    assert summary["net"] == 60
    assert summary["expenses_by_category"] == {"Food & Dining": 40}
    assert len(summary["daily"]) == 3
    assert summary["daily"][-1]["expenses"] == 40


def test_empty_store(client):
    assert client.get("/api/transactions").json() == []
    assert client.get("/api/summary").json()["net"] == 0
