import pytest

from app.application.categories import CategoryCatalog
from app.infrastructure.exceptions import ConflictError, ValidationError


@pytest.fixture
def catalog(session, audit):
    return CategoryCatalog(session, audit)


def test_create_trims_and_records_author(catalog, audit):
    category = catalog.create("  Collateral ", created_by="alice")
    assert category.id is not None
    assert category.name == "Collateral"
    assert category.created_by == "alice"
    assert category.is_deleted is False
    assert audit.actions() == ["category_created"]
    assert audit.events[0].metadata == {"categoryId": category.id}
    assert audit.events[0].description == 'Created new category: "Collateral"'


def test_list_is_sorted_by_name(catalog):
    for name in ("Security", "Income", "Collateral"):
        catalog.create(name)
    assert [c.name for c in catalog.list()] == ["Collateral", "Income", "Security"]


def test_duplicate_name_conflicts(catalog, audit):
    catalog.create("Income")
    with pytest.raises(ConflictError, match="Category already exists"):
        catalog.create("INCOME")
    assert len(catalog.list()) == 1
    assert audit.actions() == ["category_created"]


@pytest.mark.parametrize("name", [None, "", "  "])
def test_name_is_required(catalog, name):
    with pytest.raises(ValidationError) as exc:
        catalog.create(name)
    assert exc.value.field == "name"
    assert exc.value.user_message == "Category name is required"
