import pytest


async def _create_category(client, headers, name="Fiction") -> int:
    resp = await client.post("/api/categories", json={"name": name}, headers=headers)
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


@pytest.mark.anyio
async def test_create_and_get_book_round_trip(client, auth_headers, book_payload):
    category_id = await _create_category(client, auth_headers)
    resp = await client.post("/api/books", json={**book_payload, "category_id": category_id}, headers=auth_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Book created successfully"
    created = body["data"]
    assert created["thickness"] == "thick"
    assert created["category_name"] == "Fiction"
    assert created["created_by"] == "tester"
    assert created["modified_by"] == "tester"

    fetched = await client.get(f"/api/books/{created['id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["data"] == created


@pytest.mark.anyio
@pytest.mark.parametrize(("total_page", "thickness"), [(1, "thin"), (100, "thin"), (101, "thick"), (900, "thick")])
async def test_thickness_is_derived_from_page_count(client, auth_headers, book_payload, total_page, thickness):
    resp = await client.post("/api/books", json={**book_payload, "total_page": total_page}, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["data"]["thickness"] == thickness


@pytest.mark.anyio
async def test_client_cannot_set_thickness(client, auth_headers, book_payload):
    resp = await client.post(
        "/api/books", json={**book_payload, "total_page": 50, "thickness": "thick"}, headers=auth_headers
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["thickness"] == "thin"


@pytest.mark.anyio
async def test_create_book_without_category_omits_category_name(client, auth_headers, book_payload):
    resp = await client.post("/api/books", json={**book_payload, "category_id": None}, headers=auth_headers)
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["category_id"] is None
    assert "category_name" not in data

    fetched = await client.get(f"/api/books/{data['id']}", headers=auth_headers)
    assert "category_name" not in fetched.json()["data"]


@pytest.mark.anyio
async def test_create_book_with_unknown_category_returns_400(client, auth_headers, book_payload):
    resp = await client.post("/api/books", json={**book_payload, "category_id": 424242}, headers=auth_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Invalid category ID"
    assert "data" not in body


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("field", "value"),
    [("release_year", 1979), ("release_year", 2025), ("price", -1), ("total_page", 0), ("title", "")],
)
async def test_create_book_rejects_out_of_bounds_fields(client, auth_headers, book_payload, field, value):
    resp = await client.post("/api/books", json={**book_payload, field: value}, headers=auth_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Invalid request body"
    assert body["error"].startswith(field)


@pytest.mark.anyio
async def test_create_book_rejects_missing_required_field(client, auth_headers, book_payload):
    payload = {key: value for key, value in book_payload.items() if key != "release_year"}
    resp = await client.post("/api/books", json=payload, headers=auth_headers)
    assert resp.status_code == 400
    assert "release_year" in resp.json()["error"]


@pytest.mark.anyio
async def test_list_books_ordered_by_id(client, auth_headers, book_payload):
    empty = await client.get("/api/books", headers=auth_headers)
    assert empty.status_code == 200
    assert empty.json()["data"] == []

    for title in ("B", "A", "C"):
        await client.post("/api/books", json={**book_payload, "title": title}, headers=auth_headers)

    resp = await client.get("/api/books", headers=auth_headers)
    books = resp.json()["data"]
    assert [book["title"] for book in books] == ["B", "A", "C"]
    assert [book["id"] for book in books] == sorted(book["id"] for book in books)


@pytest.mark.anyio
async def test_list_books_filtered_by_category(client, auth_headers, book_payload):
    fiction = await _create_category(client, auth_headers, "Fiction")
    science = await _create_category(client, auth_headers, "Science")
    await client.post("/api/books", json={**book_payload, "title": "F1", "category_id": fiction}, headers=auth_headers)
    await client.post("/api/books", json={**book_payload, "title": "S1", "category_id": science}, headers=auth_headers)

    resp = await client.get("/api/books", params={"category_id": science}, headers=auth_headers)
    assert resp.status_code == 200
    assert [book["title"] for book in resp.json()["data"]] == ["S1"]

    missing = await client.get("/api/books", params={"category_id": 999999}, headers=auth_headers)
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_get_book_invalid_id_returns_400(client, auth_headers):
    resp = await client.get("/api/books/abc", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid book ID"


@pytest.mark.anyio
async def test_get_missing_book_returns_404(client, auth_headers):
    resp = await client.get("/api/books/999999", headers=auth_headers)
    assert resp.status_code == 404
    body = resp.json()
    assert body == {
        "success": False,
        "message": "Book not found",
        "error": "book with specified ID does not exist",
    }


@pytest.mark.anyio
async def test_delete_book(client, auth_headers, book_payload):
    created = (await client.post("/api/books", json=book_payload, headers=auth_headers)).json()["data"]

    deleted = await client.delete(f"/api/books/{created['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Book deleted successfully"}

    missing = await client.get(f"/api/books/{created['id']}", headers=auth_headers)
    assert missing.status_code == 404

    again = await client.delete(f"/api/books/{created['id']}", headers=auth_headers)
    assert again.status_code == 404


@pytest.mark.anyio
async def test_delete_book_invalid_id_returns_400(client, auth_headers):
    resp = await client.delete("/api/books/not-a-number", headers=auth_headers)
    assert resp.status_code == 400


@pytest.mark.anyio
@pytest.mark.parametrize("raw", ["1_0", "%205", "5%20", "99999999999999999999", "-99999999999999999999", "1e3", "0x10"])
async def test_book_id_must_be_a_plain_int64(client, auth_headers, book_payload, raw):
    for n in range(10):
        await client.post("/api/books", json={**book_payload, "title": f"Book {n}"}, headers=auth_headers)

    for method in ("GET", "DELETE"):
        resp = await client.request(method, f"/api/books/{raw}", headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid book ID"


@pytest.mark.anyio
async def test_signed_book_id_is_parsed(client, auth_headers, book_payload):
    created = (await client.post("/api/books", json=book_payload, headers=auth_headers)).json()["data"]
    resp = await client.get(f"/api/books/+{created['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert (await client.get("/api/books/-1", headers=auth_headers)).status_code == 404
