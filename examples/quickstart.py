#!/usr/bin/env python3
"""
linkauth Quickstart — local account lifecycle in one script.

signup → login (session cookie) → /me → /protected → logout → /me is 401.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:3001
"""

import sys

import httpx

from _common import BASE, check_backend, new_account


def main():
    check_backend()

    # httpx.Client keeps cookies between requests, like a browser.
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Signup ────────────────────────────────────────────────────
    print("\n1. Signing up...")
    account = new_account(client)
    print(f"   User: {account['user']['fullName']} ({account['user']['id'][:8]}...)")

    # ── Duplicate signup is refused ───────────────────────────────
    print("\n2. Signing up again with the same email...")
    resp = client.post("/auth/signup", json={
        "fullName": "Someone Else",
        "email": account["email"],
        "password": account["password"],
    })
    print(f"   {resp.status_code}: {resp.json()['message']}")

    # ── Wrong password ────────────────────────────────────────────
    print("\n3. Logging in with the wrong password...")
    resp = client.post("/auth/login", json={"email": account["email"], "password": "Wrong-pass-1"})
    print(f"   {resp.status_code}: {resp.json()['message']}")

    # ── Login ─────────────────────────────────────────────────────
    print("\n4. Logging in...")
    resp = client.post("/auth/login", json={"email": account["email"], "password": account["password"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   {resp.json()['message']}")

    # ── Session-protected routes ──────────────────────────────────
    print("\n5. Calling session-protected routes...")
    me = client.get("/auth/me").json()
    print(f"   /auth/me:    {me['email']}")
    resp = client.get("/protected")
    print(f"   /protected:  {resp.json()['message']}")

    # ── Logout ────────────────────────────────────────────────────
    print("\n6. Logging out...")
    print(f"   {client.post('/auth/logout').json()['message']}")
    resp = client.get("/auth/me")
    print(f"   /auth/me afterwards: {resp.status_code}")
    if resp.status_code != 401:
        sys.exit(1)

    print(f"\nTo try Google sign-in, open {BASE}/auth/oauth/start in a browser")
    print(f"with the same email ({account['email']}) to see the accounts link.")


if __name__ == "__main__":
    main()
