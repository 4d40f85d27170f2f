"""
Multi-action Assistants proxy: each action maps onto one upstream call and
the upstream status code is mirrored.
"""

from __future__ import annotations

import json

import pytest

from fakes import FakeOpenAI, make_settings


def test_create_thread(api_client):
    upstream = FakeOpenAI()
    client = api_client(upstream)

    r = client.post("/api/assistant", json={"action": "create_thread"})

    assert r.status_code == 200
    data = r.json()
    assert data["action"] == "create_thread"
    assert data["ok"] is True
    assert data["data"] == {"id": "thread_1"}
    assert upstream.requests[0].headers["OpenAI-Beta"] == "assistants=v2"


def test_add_message_passes_thread_through(api_client):
    upstream = FakeOpenAI()
    client = api_client(upstream)

    r = client.post(
        "/api/assistant",
        json={"action": "add_message", "thread_id": "thread_1", "message": "hi"},
    )

    assert r.status_code == 200
    assert json.loads(upstream.requests[0].content) == {"role": "user", "content": "hi"}


def test_create_run_uses_configured_assistant(api_client):
    upstream = FakeOpenAI(initial_status="queued")
    client = api_client(upstream)

    r = client.post("/api/assistant", json={"action": "create_run", "thread_id": "thread_1"})

    assert r.status_code == 200
    assert r.json()["data"]["status"] == "queued"
    assert json.loads(upstream.requests[0].content)["assistant_id"] == "asst_test"


def test_get_run_and_list_messages(api_client):
    upstream = FakeOpenAI(run_statuses=["in_progress"])
    client = api_client(upstream)

    r = client.post(
        "/api/assistant",
        json={"action": "get_run", "thread_id": "thread_1", "run_id": "run_1"},
    )
    assert r.json()["data"]["status"] == "in_progress"

    r = client.post("/api/assistant", json={"action": "list_messages", "thread_id": "thread_1"})
    assert r.status_code == 200
    assert r.json()["data"]["data"][0]["content"][0]["text"]["value"] == "hello"
    assert upstream.requests[-1].url.params["order"] == "desc"


def test_upstream_status_is_mirrored(api_client):
    client = api_client(FakeOpenAI())

    r = client.post(
        "/api/assistant",
        json={"action": "get_run", "thread_id": "thread_9", "run_id": "run_9"},
    )

    assert r.status_code == 404
    data = r.json()
    assert data["ok"] is False
    assert data["status"] == 404
    assert "error" in data["data"]


def test_non_json_upstream_body_is_wrapped(api_client):
    client = api_client(FakeOpenAI(failures={"threads": 500}))

    r = client.post("/api/assistant", json={"action": "create_thread"})

    assert r.status_code == 500
    assert r.json()["data"] == {"error": "threads exploded"}


@pytest.mark.parametrize(
    "body",
    [
        {"action": "delete_everything"},
        {},
        {"action": "add_message", "message": "hi"},
        {"action": "get_run", "thread_id": "thread_1"},
    ],
)
def test_bad_requests_are_rejected_without_upstream_calls(api_client, body):
    upstream = FakeOpenAI()
    client = api_client(upstream)

    r = client.post("/api/assistant", json=body)

    assert r.status_code == 400
    assert upstream.requests == []


def test_missing_key(api_client):
    upstream = FakeOpenAI()
    client = api_client(upstream, make_settings(openai_api_key=""))

    r = client.post("/api/assistant", json={"action": "create_thread"})

    assert r.status_code == 500
    assert r.text == "Missing OPENAI_API_KEY"
    assert upstream.requests == []


def test_browser_preflight(api_client):
    upstream = FakeOpenAI()
    client = api_client(upstream)

    r = client.options(
        "/api/assistant",
        headers={
            "Origin": "https://example.org",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert r.status_code == 204
    assert r.content == b""
    assert r.headers["access-control-allow-headers"] == "*"
    assert upstream.requests == []
