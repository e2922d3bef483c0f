"""
Tests for BrandService and the brand component entry points.
"""

from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from storefront.components.brands import (
    BrandService,
    CreateBrandInput,
    GetBrandInput,
    ListBrandsInput,
    SetBrandActiveInput,
    UpdateBrandInput,
    run_create,
    run_get,
    run_list,
    run_set_active,
    run_update,
    validate_brand_data,
)
from storefront.core.services.listing import ListParams
from storefront.domain.entities import Brand

# --- Mock Repository ---


class MockBrandRepo:
    def __init__(self) -> None:
        self.brands: dict[UUID, Brand] = {}

    def save(self, brand: Brand) -> Brand:
        self.brands[brand.id] = brand
        return brand

    def get_by_id(self, brand_id: UUID) -> Brand | None:
        return self.brands.get(brand_id)

    def get_by_slug(self, slug: str) -> Brand | None:
        return next((b for b in self.brands.values() if b.slug == slug), None)

    def get_by_name(self, name: str) -> Brand | None:
        wanted = name.strip().lower()
        return next((b for b in self.brands.values() if b.name.lower() == wanted), None)

    def slug_exists(self, slug: str) -> bool:
        return self.get_by_slug(slug) is not None

    def list(self, params: ListParams, is_active: bool | None = None) -> tuple[list[Brand], int]:
        items = [b for b in self.brands.values() if is_active is None or b.is_active == is_active]
        return items[params.offset : params.offset + params.limit], len(items)

    def count_by_active(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for brand in self.brands.values():
            key = "1" if brand.is_active else "0"
            counts[key] = counts.get(key, 0) + 1
        return counts


# --- Test Fixtures ---


@pytest.fixture
def repo() -> MockBrandRepo:
    return MockBrandRepo()


@pytest.fixture
def service(repo, clock) -> BrandService:
    return BrandService(repo=repo, clock=clock)


# --- Validation ---


class TestValidateBrandData:
    def test_valid(self):
        assert validate_brand_data(name="Acme", website="https://acme.test") == []

    def test_name_required(self):
        errors = validate_brand_data(name="   ")
        assert errors[0].code == "name_required"

    def test_name_length(self):
        assert validate_brand_data(name="A")[0].code == "name_length"
        assert validate_brand_data(name="A" * 101)[0].code == "name_length"

    def test_bad_urls_and_email(self):
        codes = {
            e.code
            for e in validate_brand_data(
                logo_url="https://cdn.test/logo.exe",
                website="acme.test",
                contact_email="nope",
            )
        }
        assert codes == {"logo_url_invalid", "website_invalid", "contact_email_invalid"}

    def test_unset_fields_not_checked(self):
        assert validate_brand_data() == []


# --- Service ---


class TestBrandService:
    def test_create_generates_slug(self, service, fixed_now):
        brand, errors = service.create("Acme Tools & Co.", contact_email="Sales@Acme.test")
        assert errors == []
        assert brand is not None
        assert brand.slug == "acme-tools-co"
        assert brand.contact_email == "sales@acme.test"
        assert brand.created_at == fixed_now

    def test_duplicate_name_case_insensitive(self, service):
        service.create("Acme")
        brand, errors = service.create("ACME")
        assert brand is None
        assert errors[0].code == "name_duplicate"

    def test_slug_collision_gets_suffix(self, service, repo):
        repo.save(Brand(name="Other", slug="acme"))
        brand, _ = service.create("Acme")
        assert brand.slug == "acme-1"

    def test_get_by_id_or_slug(self, service):
        brand, _ = service.create("Acme")
        assert service.get(str(brand.id)).id == brand.id
        assert service.get("acme").id == brand.id

    def test_inactive_hidden_unless_requested(self, service):
        brand, _ = service.create("Acme", is_active=False)
        assert service.get("acme") is None
        assert service.get("acme", include_inactive=True) is not None

    def test_update_renames_and_reslugs(self, service):
        brand, _ = service.create("Acme")
        updated, errors = service.update(brand.id, {"name": "Acme Pro", "website": None})
        assert errors == []
        assert updated.name == "Acme Pro"
        assert updated.slug == "acme-pro"

    def test_update_rejects_taken_name(self, service):
        service.create("Acme")
        other, _ = service.create("Bolt")
        updated, errors = service.update(other.id, {"name": "acme"})
        assert updated is None
        assert errors[0].code == "name_duplicate"

    def test_update_missing(self, service):
        updated, errors = service.update(uuid4(), {"name": "X"})
        assert updated is None
        assert errors[0].code == "brand_not_found"

    def test_delete_is_soft(self, service, repo):
        brand, _ = service.create("Acme")
        deleted, errors = service.delete(brand.id)
        assert deleted is True
        assert errors == []
        assert repo.get_by_id(brand.id).is_active is False

    def test_stats(self, service):
        service.create("Acme")
        service.create("Bolt", is_active=False)
        assert service.stats() == {"total": 2, "active": 1, "inactive": 1}


# --- Component entry points ---


class TestBrandComponent:
    def test_run_create_and_get(self, service):
        out = run_create(CreateBrandInput(name="Acme"), service)
        assert out.success is True

        got = run_get(GetBrandInput(identifier="acme"), service)
        assert got.brand.id == out.brand.id

    def test_run_get_missing(self, service):
        out = run_get(GetBrandInput(identifier="ghost"), service)
        assert out.success is False
        assert out.errors[0].code == "brand_not_found"

    def test_run_update_and_set_active(self, service):
        created = run_create(CreateBrandInput(name="Acme"), service).brand
        out = run_update(
            UpdateBrandInput(brand_id=created.id, changes={"description": "Tools"}), service
        )
        assert out.brand.description == "Tools"

        out = run_set_active(SetBrandActiveInput(brand_id=created.id, is_active=False), service)
        assert out.brand.is_active is False

    def test_run_list_filters_active(self, service):
        service.create("Acme")
        service.create("Bolt", is_active=False)
        out = run_list(ListBrandsInput(params=ListParams()), service)
        assert out.total == 1
        assert out.brands[0].name == "Acme"
