"""
Verify concurrent registration handling.

1. A host creates an event
2. One user fires 10 concurrent registration requests
3. Exactly 1 succeeds, the other 9 are rejected as duplicates
4. The participant list holds the user exactly once
5. Different users registering concurrently all succeed, in a single list
"""

from concurrent.futures import ThreadPoolExecutor

from fastapi.testclient import TestClient

from sportsmeet.models.users import User
from sportsmeet.realtime.router import BufferedConnection


def create_event(client: TestClient, headers: dict) -> dict:
    response = client.post(
        "/events",
        json={
            "title": "Race Test Cricket",
            "date": "2031-01-05T08:00:00Z",
            "location": {"type": "Point", "coordinates": [72.8777, 19.076]},
            "category": "Cricket",
            "skillLevel": "Open",
            "entryFee": 0,
        },
        headers=headers,
    )
    response.raise_for_status()
    return response.json()


def register(client: TestClient, event_id: int, headers: dict) -> tuple[int, str]:
    response = client.post(f"/events/{event_id}/register", headers=headers)
    body = response.json()
    return response.status_code, body.get("message") or body.get("detail", "")


def test_same_user_registers_concurrently(client: TestClient, host: User, player: User, auth_headers,
                                          notifications):
    event = create_event(client, auth_headers(host))
    connection = BufferedConnection("race-watcher")
    notifications.subscribe(connection, [event["id"]])

    num_requests = 10
    headers = auth_headers(player)
    with ThreadPoolExecutor(max_workers=num_requests) as executor:
        futures = [executor.submit(register, client, event["id"], headers) for _ in range(num_requests)]
        results = [f.result() for f in futures]

    successful = [r for r in results if r[0] == 200]
    rejected = [r for r in results if r[0] == 400]

    assert len(successful) == 1, f"Expected 1 successful registration, got {len(successful)}"
    assert len(rejected) == 9, f"Expected 9 rejected registrations, got {results}"
    assert all("already registered" in detail for _, detail in rejected)

    participants = client.get(f"/events/{event['id']}/participants", headers=auth_headers(host)).json()
    assert [p["id"] for p in participants] == [player.id]

    # one notification for the one successful registration
    assert len(connection.drain()) == 1
    notifications.disconnect("race-watcher")


def test_different_users_register_concurrently(client: TestClient, host: User, user_factory, auth_headers):
    event = create_event(client, auth_headers(host))
    players = [user_factory(f"Player {i}") for i in range(8)]

    with ThreadPoolExecutor(max_workers=len(players)) as executor:
        futures = [executor.submit(register, client, event["id"], auth_headers(p)) for p in players]
        results = [f.result() for f in futures]

    assert all(status == 200 for status, _ in results), results

    participants = client.get(f"/events/{event['id']}/participants", headers=auth_headers(host)).json()
    ids = [p["id"] for p in participants]
    assert sorted(ids) == sorted(p.id for p in players)
    assert len(ids) == len(set(ids))
