"""Integration tests for /trips and /shared endpoints."""

import uuid

import pytest
from fastapi.testclient import TestClient

ROME_TRIP = {
    "title": "Rome getaway",
    "destination": "Rome",
    "start_date": "2024-03-15",
    "end_date": "2024-03-18",
    "budget": 1200,
    "travelers": 2,
}


def _create(client: TestClient, headers: dict[str, str], **overrides: object) -> dict:
    response = client.post("/trips", json={**ROME_TRIP, **overrides}, headers=headers)
    assert response.status_code == 201
    return response.json()


def test_create_and_list(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    trip = _create(api_client, auth_headers)

    assert trip["status"] == "planning"
    assert trip["itinerary"] == []

    listed = api_client.get("/trips", headers=auth_headers).json()
    assert [t["id"] for t in listed] == [trip["id"]]


def test_create_rejects_inverted_dates(
    api_client: TestClient, auth_headers: dict[str, str]
) -> None:
    response = api_client.post(
        "/trips",
        json={**ROME_TRIP, "start_date": "2024-03-18", "end_date": "2024-03-15"},
        headers=auth_headers,
    )

    assert response.status_code == 422


def test_patch_merges_and_validates_dates(
    api_client: TestClient, auth_headers: dict[str, str]
) -> None:
    trip = _create(api_client, auth_headers)

    patched = api_client.patch(
        f"/trips/{trip['id']}", json={"budget": 900}, headers=auth_headers
    )
    assert patched.status_code == 200
    assert patched.json()["budget"] == 900
    assert patched.json()["destination"] == "Rome"

    inverted = api_client.patch(
        f"/trips/{trip['id']}", json={"end_date": "2024-03-01"}, headers=auth_headers
    )
    assert inverted.status_code == 422


@pytest.mark.parametrize(
    "field", ["title", "destination", "budget", "travelers", "status", "preferences"]
)
def test_patch_null_required_field_is_422(
    api_client: TestClient, auth_headers: dict[str, str], field: str
) -> None:
    trip = _create(api_client, auth_headers)

    response = api_client.patch(f"/trips/{trip['id']}", json={field: None}, headers=auth_headers)

    assert response.status_code == 422
    unchanged = api_client.get(f"/trips/{trip['id']}", headers=auth_headers).json()
    assert unchanged["title"] == "Rome getaway"
    assert unchanged["destination"] == "Rome"


def test_patch_can_clear_dates(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    trip = _create(api_client, auth_headers)

    response = api_client.patch(
        f"/trips/{trip['id']}", json={"start_date": None, "end_date": None}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["start_date"] is None
    assert response.json()["end_date"] is None


def test_unknown_trip_is_404(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    response = api_client.get(f"/trips/{uuid.uuid4()}", headers=auth_headers)

    assert response.status_code == 404


def test_replace_itinerary_renumbers(
    api_client: TestClient, auth_headers: dict[str, str]
) -> None:
    trip = _create(api_client, auth_headers)
    days = [
        {"day_number": 3, "activities": [{"name": "Colosseum"}, {"name": "Forum"}]},
        {"day_number": 8, "activities": [{"name": "Vatican"}]},
    ]

    response = api_client.put(f"/trips/{trip['id']}/itinerary", json=days, headers=auth_headers)

    assert response.status_code == 200
    itinerary = response.json()["itinerary"]
    assert [d["day_number"] for d in itinerary] == [1, 2]
    assert [a["name"] for a in itinerary[0]["activities"]] == ["Colosseum", "Forum"]


def test_generate_without_credentials_uses_template(
    api_client: TestClient, auth_headers: dict[str, str]
) -> None:
    trip = _create(api_client, auth_headers)

    response = api_client.post(f"/trips/{trip['id']}/itinerary/generate", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "template"
    assert data["reason"] == "credentials_missing"
    assert len(data["days"]) == 3

    stored = api_client.get(f"/trips/{trip['id']}", headers=auth_headers).json()
    assert [d["day_number"] for d in stored["itinerary"]] == [1, 2, 3]


def test_generate_requires_destination(
    api_client: TestClient, auth_headers: dict[str, str]
) -> None:
    trip = _create(api_client, auth_headers, destination="")

    response = api_client.post(f"/trips/{trip['id']}/itinerary/generate", headers=auth_headers)

    assert response.status_code == 422


def test_share_and_public_view(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    trip = _create(api_client, auth_headers)

    share = api_client.post(f"/trips/{trip['id']}/share", headers=auth_headers)
    assert share.status_code == 200
    share_id = share.json()["share_id"]

    public = api_client.get(f"/shared/{share_id}")
    assert public.status_code == 200
    assert public.json()["id"] == trip["id"]
    assert api_client.get("/shared/unknown").status_code == 404


def test_delete_trip(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    trip = _create(api_client, auth_headers)

    assert api_client.delete(f"/trips/{trip['id']}", headers=auth_headers).status_code == 204
    assert api_client.get(f"/trips/{trip['id']}", headers=auth_headers).status_code == 404


def test_trips_are_private(api_client: TestClient, auth_headers: dict[str, str]) -> None:
    trip = _create(api_client, auth_headers)
    other = api_client.post(
        "/auth/signup", json={"email": "other@example.com", "password": "longenough"}
    ).json()
    other_headers = {"Authorization": f"Bearer {other['token']}"}

    assert api_client.get(f"/trips/{trip['id']}", headers=other_headers).status_code == 404
    assert api_client.get("/trips", headers=other_headers).json() == []
