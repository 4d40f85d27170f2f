"""
Smoke Test (live)
=================

Runs the FastAPI app via TestClient against the real OpenAI API and
prints concise outputs.

Requires OPENAI_API_KEY (and ASSISTANT_ID for the run flow) in the
environment or in backend/.env.
"""

from __future__ import annotations

import sys
from pathlib import Path

from fastapi.testclient import TestClient


def main() -> int:
    # Ensure `app` package is importable when running as a script
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

    from app.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()

    print("=== Smoke Test (live) ===")
    print(f"OPENAI_API_KEY set: {bool(settings.openai_api_key)}")
    print(f"ASSISTANT_ID set: {bool(settings.assistant_id)}")
    print(f"Chat flow: {settings.chat_flow}")

    from main import app

    client = TestClient(app)

    queries = [
        "What PPE is required for working at height?",
        "¿Qué hago si veo un derrame químico?",
    ]

    failures = 0
    for q in queries:
        r = client.post("/api/chat", json={"message": q})
        print("\n---")
        print("Q:", q)
        print("HTTP:", r.status_code)
        print(r.text[:400])
        if r.status_code != 200:
            failures += 1

    print("\n--- stream ---")
    with client.stream("POST", "/api/chat/stream", json={"message": queries[0]}) as r:
        print("HTTP:", r.status_code)
        for chunk in r.iter_text():
            print(chunk, end="", flush=True)
        print()
        if r.status_code != 200:
            failures += 1

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
