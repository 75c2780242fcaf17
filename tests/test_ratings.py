import pytest
from sqlalchemy import func, select

from app.models import Rating


async def count_ratings(async_session):
    result = await async_session.execute(select(func.count(Rating.id)))
    return result.scalar()


@pytest.mark.asyncio
async def test_submit_rating(client, module, rating_payload):
    response = await client.post(
        "/ratings",
        json=rating_payload(module["id"], remarks="  Great examples  "),
        headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )

    assert response.status_code == 201
    rating = response.json()
    assert rating["lecturer_module_id"] == module["id"]
    assert rating["criteria_3_score"] == 5
    assert rating["remarks"] == "Great examples"
    assert rating["created_at"] is not None
    assert "ip_address" not in rating
    assert "user_agent" not in rating


@pytest.mark.asyncio
async def test_audit_fields_visible_to_admin_only(client, admin_headers, module, rating_payload):
    await client.post(
        "/ratings",
        json=rating_payload(module["id"]),
        headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )

    response = await client.get("/admin/ratings", headers=admin_headers)

    assert response.status_code == 200
    [rating] = response.json()
    assert rating["ip_address"] == "203.0.113.7"
    assert rating["user_agent"] == "pytest-browser"


@pytest.mark.asyncio
@pytest.mark.parametrize("field, value", [
    ("criteria_1_score", 0),
    ("criteria_2_score", 6),
    ("criteria_5_score", -1),
    ("criteria_4_score", 2.5),
    ("criteria_3_score", None),
])
async def test_out_of_range_scores_are_rejected(client, module, rating_payload, async_session, field, value):
    payload = rating_payload(module["id"])
    payload[field] = value

    response = await client.post("/ratings", json=payload)

    assert response.status_code == 422
    assert await count_ratings(async_session) == 0


@pytest.mark.asyncio
async def test_missing_score_is_rejected(client, module, rating_payload, async_session):
    payload = rating_payload(module["id"])
    del payload["criteria_2_score"]

    response = await client.post("/ratings", json=payload)

    assert response.status_code == 422
    assert await count_ratings(async_session) == 0


@pytest.mark.asyncio
async def test_remarks_are_length_capped(client, module, rating_payload, async_session):
    response = await client.post("/ratings", json=rating_payload(module["id"], remarks="x" * 501))
    assert response.status_code == 422

    response = await client.post("/ratings", json=rating_payload(module["id"], remarks="x" * 500))
    assert response.status_code == 201
    assert await count_ratings(async_session) == 1


@pytest.mark.asyncio
async def test_blank_remarks_are_stored_as_null(client, module, rating_payload):
    response = await client.post("/ratings", json=rating_payload(module["id"], remarks="   "))

    assert response.status_code == 201
    assert response.json()["remarks"] is None


@pytest.mark.asyncio
async def test_rating_unknown_module(client, rating_payload, async_session):
    response = await client.post("/ratings", json=rating_payload(12345))

    assert response.status_code == 404
    assert await count_ratings(async_session) == 0


@pytest.mark.asyncio
async def test_inactive_module_accepts_no_new_ratings(client, admin_headers, module, rating_payload):
    await client.post(f"/admin/modules/{module['id']}/toggle-active", headers=admin_headers)

    response = await client.post("/ratings", json=rating_payload(module["id"]))

    assert response.status_code == 400
    assert response.json()["detail"] == "Module is not accepting ratings"


@pytest.mark.asyncio
async def test_server_accepts_repeat_ratings(client, module, rating_payload, async_session):
    for _ in range(3):
        response = await client.post("/ratings", json=rating_payload(module["id"]))
        assert response.status_code == 201

    assert await count_ratings(async_session) == 3


@pytest.mark.asyncio
async def test_admin_ratings_filter_by_module(client, admin_headers, module, module_payload, rating_payload):
    module_payload["module_name"] = "Compilers"
    other = (await client.post("/admin/modules", json=module_payload, headers=admin_headers)).json()
    await client.post("/ratings", json=rating_payload(module["id"]))
    await client.post("/ratings", json=rating_payload(other["id"], scores=(1, 1, 1, 1, 1)))
    await client.post("/ratings", json=rating_payload(other["id"], scores=(2, 2, 2, 2, 2)))

    response = await client.get("/admin/ratings", params={"lecturer_module_id": other["id"]},
                                headers=admin_headers)

    assert response.status_code == 200
    assert len(response.json()) == 2
    assert {r["lecturer_module_id"] for r in response.json()} == {other["id"]}
    assert len((await client.get("/admin/ratings", headers=admin_headers)).json()) == 3


@pytest.mark.asyncio
async def test_criteria_labels(client):
    response = await client.get("/criteria")

    assert response.status_code == 200
    assert len(response.json()) == 5
    assert response.json()[-1] == "Overall assessment of lecturer"
