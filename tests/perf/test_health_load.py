import asyncio

import pytest


@pytest.mark.anyio
async def test_health_under_load(client):
    results = await asyncio.gather(*[client.get("/health") for _ in range(20)])
    assert all(r.status_code == 200 for r in results)


@pytest.mark.anyio
async def test_concurrent_book_creation_assigns_unique_ids(client, auth_headers, book_payload):
    results = await asyncio.gather(
        *[client.post("/api/books", json={**book_payload, "title": f"Parallel {n}"}, headers=auth_headers) for n in range(10)]
    )
    assert all(r.status_code == 201 for r in results)
    ids = {r.json()["data"]["id"] for r in results}
    assert len(ids) == 10
