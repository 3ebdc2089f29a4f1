import uuid
from decimal import Decimal

import pytest

from marketplace.db.models import VendorRating
from marketplace.errors import NotFoundError, PermissionDeniedError, ValidationError
from marketplace.services.catalog import list_products
from marketplace.services.vendors import get_vendor, get_vendor_by_owner, list_vendors, update_vendor


def test_list_vendors_with_featured_product_and_rating(db, vendor, other_vendor, make_product):
    make_product("Unreleased Relish", base_price=700, is_published=False)
    make_product("Pepper Sauce", base_price=999)
    db.add(VendorRating(vendor_id=vendor.id, avg_rating=Decimal("4.50"), rating_count=12))
    db.commit()

    vendors = list_vendors(db)
    assert [v["name"] for v in vendors] == ["Cocoa Coast", "Island Pantry"]

    cocoa, pantry = vendors
    assert cocoa["featured_product"] is None
    assert cocoa["total_products"] == 0
    assert cocoa["rating"] is None

    assert pantry["total_products"] == 2
    assert pantry["featured_product"]["title"] == "Pepper Sauce"
    assert pantry["featured_product"]["price_formatted"] == "$9.99"
    assert pantry["rating"] == {"average": 4.5, "count": 12}


def test_featured_product_price_matches_the_storefront(db, vendor, make_product):
    make_product(
        "Sorrel Syrup",
        base_price=2500,
        variants=[{"title": "Bottle", "price_in_cents": 2500, "sale_price_in_cents": 1800}],
    )

    featured = get_vendor(db, vendor.id)["featured_product"]
    storefront = list_products(db).products[0]
    assert featured["price_in_cents"] == storefront["effective_price_cents"] == 1800
    assert featured["price_formatted"] == storefront["price_formatted"] == "$18.00"
    assert list_vendors(db)[0]["featured_product"]["price_in_cents"] == 1800


def test_vendor_rating_is_none_without_the_ratings_table(db, engine, vendor):
    VendorRating.__table__.drop(engine)
    assert get_vendor(db, vendor.id)["rating"] is None


def test_get_vendor_by_owner(db, vendor, people):
    assert get_vendor_by_owner(db, people.owner.id)["id"] == vendor.id
    with pytest.raises(NotFoundError):
        get_vendor_by_owner(db, people.customer.id)
    with pytest.raises(NotFoundError):
        get_vendor(db, uuid.uuid4())


def test_update_vendor(db, vendor, people):
    updated = update_vendor(db, vendor.id, people.owner.id, {"description": "  Pantry staples  ", "website": None})
    assert updated["description"] == "Pantry staples"
    assert updated["website"] is None

    with pytest.raises(PermissionDeniedError):
        update_vendor(db, vendor.id, people.other_owner.id, {"name": "Taken Over"})
    with pytest.raises(ValidationError):
        update_vendor(db, vendor.id, people.owner.id, {"name": "  "})


def test_vendor_routes(client, vendor, people, auth):
    assert client.get("/vendors").json()["vendors"][0]["slug"] == "island-pantry"
    assert client.get(f"/vendors/{vendor.id}").json()["location"] == "Port of Spain"
    assert client.get(f"/vendors/by-owner/{people.owner.id}").json()["id"] == str(vendor.id)

    response = client.patch(f"/vendors/{vendor.id}", json={"location": "San Fernando"}, headers=auth(people.owner))
    assert response.status_code == 200
    assert response.json()["location"] == "San Fernando"
    assert client.patch(f"/vendors/{vendor.id}", json={"location": "X"}, headers=auth(people.customer)).status_code == 403
