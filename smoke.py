"""
Smoke test against a running server.
Run: uvicorn surfspots.main:app  then  python smoke.py
"""
import sys
import uuid

import requests

BASE = "http://localhost:8000"


def smoke():
    print("Smoke testing Surf Spots API...\n")
    s = requests.Session()
    username = "smoke" + uuid.uuid4().hex[:8]

    print("✓ POST /create")
    r = s.post(f"{BASE}/create", json={
        "first_name": "Smoke",
        "last_name": "Test",
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret1",
    })
    assert r.status_code == 200, r.text

    print("✓ POST /login")
    r = s.post(f"{BASE}/login", json={"username": username, "password": "secret1"})
    assert r.status_code == 200, r.text

    print("✓ GET /me")
    r = s.get(f"{BASE}/me")
    assert r.json()["user"]["username"] == username

    print("✓ POST /api/spots")
    r = s.post(f"{BASE}/api/spots", json={"name": "Steamer Lane", "latitude": 36.97, "longitude": -122.03})
    assert r.status_code == 201, r.text
    spot_id = r.json()["id"]

    print(f"✓ GET /api/spots/{spot_id}")
    r = s.get(f"{BASE}/api/spots/{spot_id}")
    assert r.status_code == 200
    print(f"  Weather present: {r.json()['weather'] is not None}")

    print("✓ GET /api/weather")
    r = s.get(f"{BASE}/api/weather", params={"lat": "36.97", "lon": "-122.03"})
    assert r.status_code == 200, r.text

    print("✓ POST /logout")
    r = s.post(f"{BASE}/logout")
    assert r.status_code == 200
    assert s.get(f"{BASE}/me").json()["user"] is None

    print("\n✅ Smoke test passed!")


if __name__ == "__main__":
    try:
        smoke()
    except Exception as e:
        print(f"\n❌ Smoke test failed: {e}")
        sys.exit(1)
