import uuid

import pytest
from sqlalchemy import select

from marketplace.db.models import AdminAlert, Category, Product
from marketplace.errors import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.services.categories import DEFAULT_CATEGORY_NAME, list_alerts, resolve_alert
from marketplace.services.products import create_product, delete_product, list_products_by_vendor, update_product


def test_create_product_adds_a_default_variant(db, vendor):
    product = create_product(db, vendor.id, {"title": "Guava Jam", "price_in_cents": 1450})

    assert product["title"] == "Guava Jam"
    assert product["slug"].startswith("guava-jam-")
    assert product["base_price"] == 1450
    assert len(product["variants"]) == 1
    variant = product["variants"][0]
    assert variant["title"] == "Default"
    assert variant["sku"] == "GUAVA-JAM-DEFAULT"
    assert variant["price_in_cents"] == 1450


def test_create_product_with_variants(db, vendor):
    product = create_product(
        db,
        vendor.id,
        {
            "title": "Hot Sauce",
            "price_in_cents": 900,
            "variants": [
                {"title": "Small", "price_in_cents": 900},
                {"title": "Large", "price_in_cents": 1500, "sale_price_in_cents": 1300, "sku": "HS-L"},
            ],
        },
    )
    assert [v["sku"] for v in product["variants"]] == ["HOT-SAUCE-1", "HS-L"]
    assert product["effective_price_cents"] == 900


def test_create_product_validates_title(db, vendor):
    with pytest.raises(ValidationError):
        create_product(db, vendor.id, {"title": " ab "})


def test_create_product_for_unknown_vendor(db, people):
    with pytest.raises(NotFoundError):
        create_product(db, uuid.uuid4(), {"title": "Orphan"})


def test_category_by_name_is_created_once(db, vendor):
    first = create_product(db, vendor.id, {"title": "Nutmeg", "category": "Spices"})
    second = create_product(db, vendor.id, {"title": "Cinnamon", "category": "spices"})
    assert first["category_id"] == second["category_id"]
    category = db.get(Category, first["category_id"])
    assert category.slug == "spices"
    assert category.metadata_["auto_created"] is True


def test_missing_category_falls_back_to_uncategorized(db, vendor):
    product = create_product(db, vendor.id, {"title": "Mystery Box"})
    assert db.get(Category, product["category_id"]).name == DEFAULT_CATEGORY_NAME


def test_unresolvable_category_raises_an_admin_alert(db, vendor):
    home = Category(name="Home & Garden", slug="home-garden")
    db.add(home)
    db.commit()

    product = create_product(db, vendor.id, {"title": "Clay Pot", "category": "Home Garden"})
    assert db.get(Category, product["category_id"]).name == DEFAULT_CATEGORY_NAME

    alerts = list_alerts(db)
    assert len(alerts) == 1
    assert alerts[0]["product_id"] == product["id"]
    assert alerts[0]["requested_category_name"] == "Home Garden"
    assert alerts[0]["reason"] == "AUTO_ASSIGNED"

    resolved = resolve_alert(db, alerts[0]["id"], home.id)
    assert resolved["status"] == "resolved"
    assert list_alerts(db) == []
    db.expire_all()
    assert db.get(Product, product["id"]).category_id == home.id
    assert db.get(AdminAlert, alerts[0]["id"]).resolved_category_id == home.id


def test_unknown_category_id_is_rejected(db, vendor):
    with pytest.raises(NotFoundError):
        create_product(db, vendor.id, {"title": "Sea Moss", "category_id": str(uuid.uuid4())})
    assert db.scalars(select(Product)).all() == []

    created = create_product(db, vendor.id, {"title": "Sea Moss"})
    with pytest.raises(NotFoundError):
        update_product(db, vendor.id, created["id"], {"category_id": str(uuid.uuid4())})
    with pytest.raises(ValidationError):
        update_product(db, vendor.id, created["id"], {"category_id": "not-a-uuid"})
    assert db.get(Product, created["id"]).category_id == created["category_id"]

    spices = Category(name="Spices", slug="spices")
    db.add(spices)
    db.commit()
    updated = update_product(db, vendor.id, created["id"], {"category_id": str(spices.id)})
    assert updated["category_id"] == spices.id


def test_update_product_maps_dashboard_fields(db, vendor):
    created = create_product(db, vendor.id, {"title": "Cassava Chips", "price_in_cents": 500, "image_url": "https://cdn.example.com/a.jpg"})

    updated = update_product(
        db,
        vendor.id,
        created["id"],
        {"title": "Cassava Crisps", "price_in_cents": 650, "image": "short", "is_published": False},
    )
    assert updated["title"] == "Cassava Crisps"
    assert updated["base_price"] == 650
    assert updated["image_url"] == "https://cdn.example.com/a.jpg"
    assert updated["is_published"] is False

    updated = update_product(db, vendor.id, created["id"], {"image": "https://cdn.example.com/b.jpg"})
    assert updated["image_url"] == "https://cdn.example.com/b.jpg"


def test_only_the_owning_vendor_can_edit(db, vendor, other_vendor):
    created = create_product(db, vendor.id, {"title": "Coconut Oil"})
    with pytest.raises(PermissionDeniedError):
        update_product(db, other_vendor.id, created["id"], {"title": "Stolen"})
    with pytest.raises(PermissionDeniedError):
        delete_product(db, other_vendor.id, created["id"])
    with pytest.raises(NotFoundError):
        update_product(db, vendor.id, uuid.uuid4(), {"title": "Ghost"})


def test_list_products_by_vendor_includes_drafts(db, vendor, make_product):
    make_product("Published One", base_price=100)
    make_product("Draft Two", base_price=200, is_published=False)
    make_product("Published Three", base_price=300)

    result = list_products_by_vendor(db, vendor.id, per_page=2)
    assert [p["title"] for p in result["products"]] == ["Published Three", "Draft Two"]
    assert result["pagination"] == {"page": 1, "per_page": 2, "total": 3, "total_pages": 2}

    searched = list_products_by_vendor(db, vendor.id, search="draft")
    assert [p["title"] for p in searched["products"]] == ["Draft Two"]


def test_product_crud_round_trip_over_http(client, vendor, people, auth):
    headers = auth(people.owner)
    base = f"/vendors/{vendor.id}/products"

    response = client.post(base, json={"title": "Tamarind Balls", "price_in_cents": 350, "category": "Sweets"}, headers=headers)
    assert response.status_code == 201
    product_id = response.json()["id"]

    listed = client.get(base, headers=headers).json()
    assert [p["id"] for p in listed["products"]] == [product_id]

    storefront = client.get("/products", params={"search": "tamarind"}).json()
    assert storefront["total"] == 1
    assert storefront["products"][0]["price_formatted"] == "$3.50"

    response = client.patch(f"{base}/{product_id}", json={"price_in_cents": 400}, headers=headers)
    assert response.status_code == 200
    assert response.json()["base_price"] == 400

    assert client.get(f"/products/{product_id}").json()["base_price"] == 400

    response = client.delete(f"{base}/{product_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["deleted"] is True

    response = client.get(f"/products/{product_id}")
    assert response.status_code == 404
    assert "error" in response.json()


def test_vendor_product_routes_require_the_owner(client, vendor, people, auth):
    base = f"/vendors/{vendor.id}/products"
    assert client.post(base, json={"title": "Nope"}).status_code == 401
    assert client.post(base, json={"title": "Nope"}, headers=auth(people.other_owner)).status_code == 403
    assert client.post(base, json={"title": "Admin Made"}, headers=auth(people.admin)).status_code == 201
    assert client.post(base, json={"title": "ab"}, headers=auth(people.owner)).status_code == 400
    assert client.get(f"/vendors/{uuid.uuid4()}/products", headers=auth(people.owner)).status_code == 404


def test_create_product_with_unknown_category_id_over_http(client, vendor, people, auth):
    response = client.post(
        f"/vendors/{vendor.id}/products",
        json={"title": "Sea Moss", "category_id": str(uuid.uuid4())},
        headers=auth(people.owner),
    )
    assert response.status_code == 404
    assert "Category" in response.json()["error"]
