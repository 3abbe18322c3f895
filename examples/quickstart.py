#!/usr/bin/env python3
"""
VidTube Quickstart — the session lifecycle in one script.

Registers a user → logs in → calls a protected route → rotates the
refresh token → shows the old one is now rejected → logs out.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"


def main():
    run_id = uuid.uuid4().hex[:6]
    username = f"demo_{run_id}"
    password = "demo-password-123"
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  uvicorn vidtube.main:app --reload --port 8000")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Redis:    {'✓' if health['redis'] == 'ok' else '✗'}")

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering...")
    resp = client.post("/users/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "fullname": f"Demo User {run_id}",
        "password": password,
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    user = resp.json()["data"]
    print(f"   User: {user['username']} ({user['id'][:8]}...)")

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/users/login", json={"username": username, "password": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    tokens = resp.json()["data"]
    print(f"   Access token:  {tokens['access_token'][:24]}...")
    print(f"   Refresh token: {tokens['refresh_token'][:24]}...")

    # ── Protected route ───────────────────────────────────────────
    print("\n3. Fetching current user with the access token...")
    auth = {"Authorization": f"Bearer {tokens['access_token']}"}
    resp = client.get("/users/me", headers=auth)
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Hello, {resp.json()['data']['fullname']}")

    # ── Rotate ────────────────────────────────────────────────────
    print("\n4. Rotating the refresh token...")
    resp = client.post("/users/refresh-token", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    rotated = resp.json()["data"]
    print(f"   New refresh token: {rotated['refresh_token'][:24]}...")

    print("\n5. Replaying the old refresh token...")
    resp = client.post("/users/refresh-token", json={"refresh_token": tokens["refresh_token"]})
    print(f"   {resp.status_code} {resp.json()['status_kind']}: {resp.json()['message']}")

    # ── Logout ────────────────────────────────────────────────────
    print("\n6. Logging out...")
    auth = {"Authorization": f"Bearer {rotated['access_token']}"}
    resp = client.post("/users/logout", headers=auth)
    assert resp.status_code == 200, f"Failed: {resp.text}"

    resp = client.post("/users/refresh-token", json={"refresh_token": rotated["refresh_token"]})
    print(f"   Refresh after logout: {resp.status_code} {resp.json()['status_kind']}")

    print("\nDone.")


if __name__ == "__main__":
    main()
