from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from storefront.adapters.sqlite.repos import SQLiteProductRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_optional_user,
    get_policy,
    get_product_service,
    is_admin,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, raise_for_errors
from storefront.components.products import ProductDetail, ProductListing, ProductService
from storefront.core.services.listing import ListParams, Pagination, split_csv
from storefront.domain.entities import User
from storefront.domain.policy import PolicyEngine
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

router = APIRouter()

manage = require_permission("catalog:manage")


class ProductCreateRequest(BaseModel):
    name: str
    description: str
    category_id: str
    short_description: str | None = None
    images: list[str] = Field(default_factory=list)
    brand_id: UUID | None = None
    seo: dict[str, Any] | None = None
    is_active: bool = True


class ProductUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    category_id: str | None = None
    short_description: str | None = None
    images: list[str] | None = None
    brand_id: UUID | None = None
    seo: dict[str, Any] | None = None
    is_active: bool | None = None


def _listing_view(listing: ProductListing) -> dict[str, Any]:
    data = dump(listing.product)
    data["min_price"] = float(listing.min_price) if listing.min_price is not None else None
    return data


def _detail_view(detail: ProductDetail) -> dict[str, Any]:
    data = dump(detail.product)
    data["variants"] = [dump(v) for v in detail.variants]
    return data


@router.get("")
def list_products(
    params: ListParams = Depends(list_params(SQLiteProductRepo.sort_columns)),
    include_inactive: bool = False,
    is_active: bool | None = None,
    category_id: str | None = None,
    brand_id: str | None = None,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: ProductService = Depends(get_product_service),
) -> dict[str, Any]:
    listings, total = service.list(
        params,
        is_admin=is_admin(user, policy),
        include_inactive=include_inactive,
        is_active=is_active,
        category_ids=split_csv(category_id),
        brand_ids=split_csv(brand_id),
    )
    return ok(
        [_listing_view(item) for item in listings],
        pagination=Pagination.build(params, total),
    )


@router.get("/stats")
def product_stats(
    _: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
) -> dict[str, Any]:
    return ok(service.stats())


@router.get("/{identifier}")
def get_product(
    identifier: str,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: ProductService = Depends(get_product_service),
) -> dict[str, Any]:
    detail = service.get(identifier, is_admin=is_admin(user, policy))
    if detail is None:
        raise not_found("Product not found")
    return ok(_detail_view(detail))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    request: Request,
    body: ProductCreateRequest,
    user: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    product, errors = service.create(**body.model_dump())
    if product is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.CREATE, EntityType.PRODUCT, product.id, actor_context(request, user))
    return ok(dump(product), message="Product created successfully")


@router.put("/{product_id}")
def update_product(
    request: Request,
    product_id: UUID,
    body: ProductUpdateRequest,
    user: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    product, errors = service.update(product_id, changes)
    if product is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.PRODUCT, product_id, changes, actor_context(request, user))
    return ok(dump(product), message="Product updated successfully")


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    request: Request,
    product_id: UUID,
    user: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    product, errors = service.set_active(product_id, False)
    if product is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.PRODUCT, product_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{product_id}/activate")
def activate_product(
    request: Request,
    product_id: UUID,
    user: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    product, errors = service.set_active(product_id, True)
    if product is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.ACTIVATE, EntityType.PRODUCT, product_id, actor_context(request, user))
    return ok(dump(product), message="Product activated successfully")


@router.patch("/{product_id}/deactivate")
def deactivate_product(
    request: Request,
    product_id: UUID,
    user: User = Depends(manage),
    service: ProductService = Depends(get_product_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    product, errors = service.set_active(product_id, False)
    if product is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.DEACTIVATE, EntityType.PRODUCT, product_id, actor_context(request, user)
    )
    return ok(dump(product), message="Product deactivated successfully")
