import pytest

from marketplace.db.models import Category
from marketplace.errors import NotFoundError, ValidationError
from marketplace.services.categories import (
    DEFAULT_CATEGORY_NAME,
    category_stats,
    get_or_create_category,
    list_categories,
    migrate_missing_categories,
    resolve_alert,
    slugify,
)


@pytest.mark.parametrize(
    "name, slug",
    [("Home & Garden", "home-garden"), ("  Spices  ", "spices"), ("Rum/Spirits 2024", "rum-spirits-2024"), ("***", "")],
)
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_get_or_create_category_is_case_insensitive(db):
    created = get_or_create_category(db, "Spices")
    db.commit()
    assert get_or_create_category(db, "  SPICES ").id == created.id
    assert [c["name"] for c in list_categories(db)] == ["Spices"]


def test_blank_category_names(db):
    with pytest.raises(ValidationError):
        get_or_create_category(db, "   ")
    assert get_or_create_category(db, None, raise_on_blank=False) is None


def test_migrate_missing_categories(db, make_product):
    make_product("No Category A")
    make_product("No Category B")

    assert migrate_missing_categories(db) == {"total": 2, "updated": 0, "errors": []}
    assert migrate_missing_categories(db, dry_run=False) == {"total": 2, "updated": 2, "errors": []}
    assert migrate_missing_categories(db, dry_run=False)["total"] == 0

    stats = category_stats(db)
    assert list(stats.values()) == [{"name": DEFAULT_CATEGORY_NAME, "count": 2}]


def test_category_stats_reports_uncategorized(db, make_product):
    drinks = Category(name="Drinks", slug="drinks")
    db.add(drinks)
    db.commit()
    make_product("Mauby", category_id=drinks.id)
    make_product("Sea Moss", category_id=drinks.id)
    make_product("Loose Item")

    assert category_stats(db) == {
        str(drinks.id): {"name": "Drinks", "count": 2},
        "uncategorized": {"name": DEFAULT_CATEGORY_NAME, "count": 1},
    }


def test_resolve_unknown_alert(db):
    category = get_or_create_category(db, "Crafts")
    db.commit()
    with pytest.raises(NotFoundError):
        resolve_alert(db, category.id, category.id)


def test_category_and_admin_routes(client, people, make_product, auth):
    response = client.post("/categories", json={"name": "Sauces"}, headers=auth(people.owner))
    assert response.status_code == 201
    assert response.json()["slug"] == "sauces"
    assert client.post("/categories", json={"name": "Sauces"}).status_code == 401
    assert [c["name"] for c in client.get("/categories").json()["categories"]] == ["Sauces"]

    make_product("Uncategorized Thing")
    assert client.get("/categories/stats").json()["uncategorized"]["count"] == 1

    assert client.get("/admin/alerts", headers=auth(people.customer)).status_code == 403
    assert client.get("/admin/alerts", headers=auth(people.admin)).json() == {"alerts": []}

    response = client.post("/admin/categories/migrate", params={"dry_run": "false"}, headers=auth(people.admin))
    assert response.json()["updated"] == 1
