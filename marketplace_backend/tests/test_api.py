import logging
import uuid

from marketplace.db.models import ProductRating


def test_health(client):
    assert client.get("/").json() == {"message": "Healthy"}
    assert client.get("/health/db").json() == {"database": "ok", "ok": True}


def test_product_listing_endpoint(client, make_product):
    make_product("Mango Chutney", base_price=1200, variants=[{"title": "Jar", "price_in_cents": 1100}])
    make_product("Pepper Sauce", base_price=999)

    body = client.get("/products", params={"sort_by": "price-low", "per_page": 1}).json()
    assert body["total"] == 2
    assert body["per_page"] == 1
    assert body["relations"] == ["ratings", "variants"]
    assert body["filters"]["sort_by"] == "price-low"
    assert [p["title"] for p in body["products"]] == ["Pepper Sauce"]

    assert client.get("/products", params={"per_page": 0}).status_code == 422


def test_product_listing_survives_missing_ratings_table(client, engine, make_product):
    make_product("Mango Chutney", base_price=1200)
    ProductRating.__table__.drop(engine)

    body = client.get("/products", params={"sort_by": "rating"}).json()
    assert body["relations"] == ["variants"]
    assert body["products"][0]["rating"] is None


def test_product_detail_and_images(client, make_product):
    product = make_product(
        "Sorrel Syrup",
        base_price=2500,
        gallery_images=["https://cdn.example.com/sorrel-1.jpg"],
        variants=[{"title": "Bottle", "price_in_cents": 2500, "image_url": "https://cdn.example.com/bottle.jpg"}],
    )

    detail = client.get("/products/sorrel-syrup").json()
    assert detail["id"] == str(product.id)
    assert detail["display"]["is_displayable"] is True

    images = client.get(f"/products/{product.id}/images").json()
    assert images == {
        "primary": "https://cdn.example.com/bottle.jpg",
        "images": ["https://cdn.example.com/sorrel-1.jpg", "https://cdn.example.com/bottle.jpg"],
    }

    quantities = client.post("/products/quantities", json={"product_ids": [str(product.id)]}).json()
    assert len(quantities["variants"]) == 1


def test_errors_are_json_with_status_codes(client, people, caplog):
    with caplog.at_level(logging.INFO, logger="marketplace"):
        response = client.get("/products/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Product does-not-exist not found"}
    assert any("404" in record.getMessage() for record in caplog.records)

    assert client.get(f"/vendors/{uuid.uuid4()}").status_code == 404
    assert client.get("/wishlist", headers={"X-User-Id": "not-a-uuid"}).json() == {"error": "Invalid user identity"}


def test_unknown_roles_are_treated_as_customers(client, people):
    headers = {"X-User-Id": str(people.admin.id), "X-User-Role": "superuser"}
    assert client.get("/admin/alerts", headers=headers).status_code == 403
