from datetime import datetime, timedelta, timezone

from storefront.models.favorite import Favorite
from storefront.models.review import Review


def test_review_page(client, db, make_user, make_product):
    alice = make_user(email="alice@example.com", name="Alice")
    product = make_product()
    base = datetime(2025, 5, 1, tzinfo=timezone.utc)
    for i in range(12):
        db.add(Review(product_id=product.id, user_id=alice.id, score=5 if i % 3 else 4,
                      content=f"review {i}", created_at=base + timedelta(hours=i)))
    db.commit()

    res = client.get(f"/api/products/{product.id}/reviews")

    assert res.status_code == 200
    body = res.json()
    assert len(body["reviews"]) == 10
    assert body["reviews"][0]["content"] == "review 11"
    assert body["reviews"][0]["user_name"] == "Alice"
    assert body["review_avg"] == 4.7
    assert body["pagination"] == {"currentPage": 1, "perPage": 10, "totalItems": 12, "totalPages": 2}

    second = client.get(f"/api/products/{product.id}/reviews", params={"page": 2}).json()
    assert [r["content"] for r in second["reviews"]] == ["review 1", "review 0"]


def test_review_page_for_unreviewed_product(client, make_product):
    product = make_product()

    body = client.get(f"/api/products/{product.id}/reviews").json()

    assert body["reviews"] == []
    assert body["review_avg"] == 0.0
    assert body["pagination"]["totalPages"] == 0


def test_post_review(client, db, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()

    res = client.post(f"/api/products/{product.id}/reviews", json={"rating": 4, "content": " Sturdy "},
                      headers=auth_headers(user))

    assert res.status_code == 201
    review = db.query(Review).one()
    assert (review.user_id, review.score, review.content) == (user.id, 4, "Sturdy")


def test_post_review_validation(client, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()
    url = f"/api/products/{product.id}/reviews"

    assert client.post(url, json={"rating": 6, "content": "x"}, headers=auth_headers(user)).status_code == 400
    assert client.post(url, json={"rating": 0, "content": "x"}, headers=auth_headers(user)).status_code == 400
    blank = client.post(url, json={"rating": 3, "content": "   "}, headers=auth_headers(user))
    assert blank.status_code == 400
    assert blank.json() == {"error": "Please enter a comment"}
    assert client.post(url, json={"rating": 3, "content": "ok"}).status_code == 401
    missing = client.post("/api/products/999/reviews", json={"rating": 3, "content": "ok"}, headers=auth_headers(user))
    assert missing.status_code == 404


def test_favorites_flow(client, db, make_user, make_product, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    first = make_product(name="First")
    second = make_product(name="Second")

    assert client.get(f"/api/favorites/{first.id}", headers=headers).json() == {"isFavorite": False}

    assert client.post("/api/favorites", json={"productId": first.id}, headers=headers).status_code == 200
    # Adding twice is harmless
    assert client.post("/api/favorites", json={"productId": first.id}, headers=headers).status_code == 200
    assert db.query(Favorite).count() == 1
    assert client.post("/api/favorites", json={"productId": second.id}, headers=headers).status_code == 200

    assert client.get(f"/api/favorites/{first.id}", headers=headers).json() == {"isFavorite": True}
    listed = client.get("/api/favorites", headers=headers).json()
    assert [p["name"] for p in listed] == ["Second", "First"]

    assert client.delete(f"/api/favorites/{first.id}", headers=headers).status_code == 200
    res = client.delete(f"/api/favorites/{first.id}", headers=headers)
    assert res.status_code == 404
    assert res.json() == {"error": "Favorite not found"}


def test_favorites_are_per_user(client, make_user, make_product, auth_headers):
    owner = make_user(email="owner@example.com")
    other = make_user(email="other@example.com")
    product = make_product()

    client.post("/api/favorites", json={"productId": product.id}, headers=auth_headers(owner))

    assert client.get("/api/favorites", headers=auth_headers(other)).json() == []
    assert client.delete(f"/api/favorites/{product.id}", headers=auth_headers(other)).status_code == 404


def test_favorite_unknown_product_is_404(client, make_user, auth_headers):
    user = make_user()

    assert client.post("/api/favorites", json={"productId": 999}, headers=auth_headers(user)).status_code == 404


def test_favorites_require_authentication(client):
    assert client.get("/api/favorites").status_code == 401
