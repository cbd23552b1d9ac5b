"""
Shared helpers for linkauth examples.

Handles the health check and account creation so each example can
focus on its specific sign-in flow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:3001/api"
PASSWORD = "Demo-pass-1"


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  linkauth serve --reload")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database:      {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Session store: {'✓' if health['session_store'] == 'ok' else '✗'}")

    if health["database"] != "ok":
        print("\nERROR: Database is not connected. Run: linkauth init-db")
        sys.exit(1)


def new_account(client: httpx.Client) -> dict:
    """Sign up a fresh local user and return {email, password, user}.

    Uses a unique email per run so examples are repeatable.
    """
    run_id = uuid.uuid4().hex[:8]
    email = f"demo-{run_id}@example.com"

    resp = client.post(
        "/auth/signup",
        json={"fullName": f"Demo User {run_id}", "email": email, "password": PASSWORD},
    )
    if resp.status_code != 201:
        print(f"ERROR: Signup failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    return {"email": email, "password": PASSWORD, "user": resp.json()["user"]}
