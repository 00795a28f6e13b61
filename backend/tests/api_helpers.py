"""Shared request helpers for the API tests."""


async def create_user(client, name="Singer"):
    response = await client.post("/users", json={"display_name": name})
    assert response.status_code == 201
    user = response.json()
    return user, {"X-User-Id": user["id"]}


async def create_session(client, headers, name="Friday Night"):
    response = await client.post("/sessions", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()
