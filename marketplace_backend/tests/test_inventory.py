import uuid

import pytest

from marketplace.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from marketplace.services.inventory import create_inventory, get_inventory, list_inventory, low_stock, update_inventory


@pytest.fixture
def variants(make_product):
    product = make_product(
        "Cocoa Tea",
        base_price=4000,
        variants=[
            {"title": "Small", "sku": "COCOA-S", "price_in_cents": 4000},
            {"title": "Large", "sku": "COCOA-L", "price_in_cents": 7000},
            {"title": "Bulk", "sku": "COCOA-B", "price_in_cents": 20000},
        ],
    )
    return product.variants


def test_create_inventory_defaults_and_log(db, vendor, variants):
    record = create_inventory(db, vendor.id, {"variant_id": str(variants[0].id), "available_quantity": 25})
    assert record["available_quantity"] == 25
    assert record["low_stock_threshold"] == 10
    assert record["is_low_stock"] is False
    assert record["sku"] == "COCOA-S"

    detail = get_inventory(db, vendor.id, variants[0].id)
    assert [(log["action"], log["quantity_change"]) for log in detail["logs"]] == [("added", 25)]


def test_one_record_per_variant(db, vendor, variants):
    create_inventory(db, vendor.id, {"variant_id": variants[0].id})
    with pytest.raises(ConflictError):
        create_inventory(db, vendor.id, {"variant_id": variants[0].id, "available_quantity": 3})


def test_create_inventory_validation(db, vendor, variants):
    with pytest.raises(NotFoundError):
        create_inventory(db, vendor.id, {"variant_id": uuid.uuid4()})
    with pytest.raises(ValidationError):
        create_inventory(db, vendor.id, {"variant_id": variants[0].id, "available_quantity": -1})
    with pytest.raises(ValidationError):
        create_inventory(db, vendor.id, {"variant_id": "nope"})


def test_update_inventory_logs_the_delta(db, vendor, variants):
    create_inventory(db, vendor.id, {"variant_id": variants[1].id, "available_quantity": 20})
    updated = update_inventory(db, vendor.id, variants[1].id, 12, action="damaged", reason="Water damage")
    assert updated["available_quantity"] == 12

    logs = get_inventory(db, vendor.id, variants[1].id)["logs"]
    assert sorted((log["action"], log["quantity_change"]) for log in logs) == [("added", 20), ("damaged", -8)]

    with pytest.raises(ValidationError):
        update_inventory(db, vendor.id, variants[1].id, -5)


def test_only_the_owning_vendor_can_track_a_variant(db, vendor, other_vendor, variants):
    with pytest.raises(PermissionDeniedError):
        create_inventory(db, other_vendor.id, {"variant_id": variants[0].id, "available_quantity": 99})

    record = create_inventory(db, vendor.id, {"variant_id": variants[0].id, "available_quantity": 4})
    assert record["vendor_id"] == vendor.id


def test_log_entries_record_the_acting_profile(db, people, vendor, variants):
    create_inventory(db, vendor.id, {"variant_id": variants[0].id, "available_quantity": 5}, actor_id=people.owner.id)
    update_inventory(db, vendor.id, variants[0].id, 3, actor_id=people.admin.id)

    logs = get_inventory(db, vendor.id, variants[0].id)["logs"]
    assert sorted((log["quantity_change"], log["created_by"]) for log in logs) == [
        (-2, people.admin.id),
        (5, people.owner.id),
    ]


def test_records_are_scoped_to_their_vendor(db, vendor, other_vendor, variants):
    create_inventory(db, vendor.id, {"variant_id": variants[0].id})
    with pytest.raises(NotFoundError):
        get_inventory(db, other_vendor.id, variants[0].id)
    with pytest.raises(NotFoundError):
        update_inventory(db, other_vendor.id, variants[0].id, 1)
    assert list_inventory(db, other_vendor.id)["inventory"] == []


def test_list_and_low_stock(db, vendor, variants):
    create_inventory(db, vendor.id, {"variant_id": variants[0].id, "available_quantity": 50})
    create_inventory(db, vendor.id, {"variant_id": variants[1].id, "available_quantity": 8})
    create_inventory(db, vendor.id, {"variant_id": variants[2].id, "available_quantity": 2, "low_stock_threshold": 1})

    listed = list_inventory(db, vendor.id, product_id=variants[0].product_id)
    assert listed["pagination"]["total"] == 3
    assert len(list_inventory(db, vendor.id, limit=2)["inventory"]) == 2

    assert [r["sku"] for r in low_stock(db, vendor.id)] == ["COCOA-L"]
    update_inventory(db, vendor.id, variants[0].id, 0)
    assert [r["sku"] for r in low_stock(db, vendor.id)] == ["COCOA-S", "COCOA-L"]


def test_inventory_routes(client, vendor, other_vendor, people, variants, auth):
    headers = auth(people.owner)
    assert client.get("/inventory", headers=auth(people.customer)).status_code == 403
    foreign = client.post("/inventory", json={"variant_id": str(variants[0].id)}, headers=auth(people.other_owner))
    assert foreign.status_code == 403

    response = client.post("/inventory", json={"variant_id": str(variants[0].id), "available_quantity": 4}, headers=headers)
    assert response.status_code == 201
    assert client.post("/inventory", json={"variant_id": str(variants[0].id)}, headers=headers).status_code == 409

    assert [r["sku"] for r in client.get("/inventory/low-stock/items", headers=headers).json()["items"]] == ["COCOA-S"]

    response = client.patch(f"/inventory/{variants[0].id}", json={"available_quantity": 40, "reason": "Restock"}, headers=headers)
    assert response.json()["available_quantity"] == 40
    assert client.patch(f"/inventory/{variants[0].id}", json={"available_quantity": -1}, headers=headers).status_code == 400
    assert len(client.get(f"/inventory/{variants[0].id}", headers=headers).json()["logs"]) == 2
    assert {log["created_by"] for log in client.get(f"/inventory/{variants[0].id}", headers=headers).json()["logs"]} == {
        str(people.owner.id)
    }
