from fastapi.testclient import TestClient

ADMIN_CREDENTIALS = {"username": "admin", "password": "admin-pass"}
VALID_GPS = {"latitude": 40.7128, "longitude": -74.006, "gps_accuracy": 12.0}


def login(client: TestClient, username: str, password: str) -> dict:
    res = client.post("/api/auth/login", json={"username": username, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def create_user(client: TestClient, headers: dict, username: str, role: str = "employee") -> dict:
    res = client.post(
        "/api/admin/users",
        json={
            "username": username,
            "password": "secret123",
            "name": username.replace(".", " ").title(),
            "email": f"{username}@example.com",
            "department": "Operations",
            "role": role,
        },
        headers=headers,
    )
    assert res.status_code == 201, res.text
    return res.json()
