import os
from collections.abc import Callable, Collection
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from storefront.adapters.auth.crypto import JWTAuthAdapter
from storefront.adapters.clock import SystemClock
from storefront.adapters.sqlite.commerce_repos import (
    SQLiteCampaignRepo,
    SQLiteCartRepo,
    SQLitePaymentMethodRepo,
    SQLiteReviewRepo,
    SQLiteSupportTicketRepo,
    SQLiteUserCouponRepo,
    SQLiteWalletRepo,
    SQLiteWalletTransactionRepo,
)
from storefront.adapters.sqlite.repos import (
    SQLiteBrandRepo,
    SQLiteInventoryRepo,
    SQLiteOptionRepo,
    SQLiteProductRepo,
    SQLiteUserRepo,
    SQLiteVariantRepo,
)
from storefront.app_shell.rate_limit import RateLimiter
from storefront.components.brands import BrandService
from storefront.components.cart import CartService
from storefront.components.coupons import CampaignService, UserCouponService
from storefront.components.inventory import InventoryService
from storefront.components.options import OptionService
from storefront.components.payment_methods import PaymentMethodService
from storefront.components.products import ProductService
from storefront.components.reviews import ReviewService
from storefront.components.support import SupportService
from storefront.components.variants import VariantService
from storefront.components.wallets import WalletService
from storefront.core.services.listing import ListParams, build_list_params
from storefront.domain.entities import User
from storefront.domain.policy import PolicyEngine
from storefront.rules.loader import load_rules
from storefront.rules.models import Rules
from storefront.shell.hooks.audit_hooks import ActorContext, AuditHooks


# --- Settings ---
class Settings:
    def __init__(self, data_dir: str | None = None, rules_path: str | None = None) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(data_dir or os.environ.get("STORE_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "store.db")
        self.rules_path = Path(
            rules_path or os.environ.get("STORE_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = str(self.base_dir / "migrations")
        self.cors_origins = [
            origin.strip()
            for origin in os.environ.get("STORE_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Adapters ---
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


def get_auth_adapter() -> JWTAuthAdapter:
    return JWTAuthAdapter()


_rate_limiter_instance: RateLimiter | None = None


def get_rate_limiter(rules: Rules = Depends(get_rules)) -> RateLimiter:
    """Rate limiter singleton; attempt history lives in process memory."""
    global _rate_limiter_instance
    if _rate_limiter_instance is None:
        _rate_limiter_instance = RateLimiter(rules.rate_limits)
    return _rate_limiter_instance


_audit_hooks_instance: AuditHooks | None = None


def get_audit_hooks() -> AuditHooks:
    global _audit_hooks_instance
    if _audit_hooks_instance is None:
        _audit_hooks_instance = AuditHooks()
    return _audit_hooks_instance


# --- Repos ---
def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


def get_brand_repo(settings: Settings = Depends(get_settings)) -> SQLiteBrandRepo:
    return SQLiteBrandRepo(settings.db_path)


def get_option_repo(settings: Settings = Depends(get_settings)) -> SQLiteOptionRepo:
    return SQLiteOptionRepo(settings.db_path)


def get_product_repo(settings: Settings = Depends(get_settings)) -> SQLiteProductRepo:
    return SQLiteProductRepo(settings.db_path)


def get_variant_repo(settings: Settings = Depends(get_settings)) -> SQLiteVariantRepo:
    return SQLiteVariantRepo(settings.db_path)


def get_inventory_repo(settings: Settings = Depends(get_settings)) -> SQLiteInventoryRepo:
    return SQLiteInventoryRepo(settings.db_path)


def get_campaign_repo(settings: Settings = Depends(get_settings)) -> SQLiteCampaignRepo:
    return SQLiteCampaignRepo(settings.db_path)


def get_user_coupon_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserCouponRepo:
    return SQLiteUserCouponRepo(settings.db_path)


def get_cart_repo(settings: Settings = Depends(get_settings)) -> SQLiteCartRepo:
    return SQLiteCartRepo(settings.db_path)


def get_review_repo(settings: Settings = Depends(get_settings)) -> SQLiteReviewRepo:
    return SQLiteReviewRepo(settings.db_path)


def get_wallet_repo(settings: Settings = Depends(get_settings)) -> SQLiteWalletRepo:
    return SQLiteWalletRepo(settings.db_path)


def get_wallet_transaction_repo(
    settings: Settings = Depends(get_settings),
) -> SQLiteWalletTransactionRepo:
    return SQLiteWalletTransactionRepo(settings.db_path)


def get_payment_method_repo(settings: Settings = Depends(get_settings)) -> SQLitePaymentMethodRepo:
    return SQLitePaymentMethodRepo(settings.db_path)


def get_support_ticket_repo(settings: Settings = Depends(get_settings)) -> SQLiteSupportTicketRepo:
    return SQLiteSupportTicketRepo(settings.db_path)


# --- Component Services ---
def get_brand_service(
    repo: SQLiteBrandRepo = Depends(get_brand_repo),
    clock: SystemClock = Depends(get_clock),
) -> BrandService:
    return BrandService(repo=repo, clock=clock)


def get_option_service(
    repo: SQLiteOptionRepo = Depends(get_option_repo),
    clock: SystemClock = Depends(get_clock),
) -> OptionService:
    return OptionService(repo=repo, clock=clock)


def get_product_service(
    repo: SQLiteProductRepo = Depends(get_product_repo),
    variants: SQLiteVariantRepo = Depends(get_variant_repo),
    brands: SQLiteBrandRepo = Depends(get_brand_repo),
    clock: SystemClock = Depends(get_clock),
) -> ProductService:
    return ProductService(repo=repo, variants=variants, brands=brands, clock=clock)


def get_variant_service(
    repo: SQLiteVariantRepo = Depends(get_variant_repo),
    products: SQLiteProductRepo = Depends(get_product_repo),
    options: SQLiteOptionRepo = Depends(get_option_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> VariantService:
    return VariantService(
        repo=repo,
        products=products,
        options=options,
        clock=clock,
        pack_option_type=rules.inventory.pack_option_type,
    )


def get_inventory_service(
    repo: SQLiteInventoryRepo = Depends(get_inventory_repo),
    variants: VariantService = Depends(get_variant_service),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> InventoryService:
    return InventoryService(
        repo=repo,
        variants=variants,
        clock=clock,
        max_min_stock_level=rules.inventory.max_min_stock_level,
    )


def get_campaign_service(
    repo: SQLiteCampaignRepo = Depends(get_campaign_repo),
    coupons: SQLiteUserCouponRepo = Depends(get_user_coupon_repo),
    users: SQLiteUserRepo = Depends(get_user_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> CampaignService:
    return CampaignService(
        repo=repo,
        coupons=coupons,
        users=users,
        clock=clock,
        code_length=rules.coupons.code_random_length,
    )


def get_user_coupon_service(
    repo: SQLiteUserCouponRepo = Depends(get_user_coupon_repo),
    campaigns: SQLiteCampaignRepo = Depends(get_campaign_repo),
    clock: SystemClock = Depends(get_clock),
) -> UserCouponService:
    return UserCouponService(repo=repo, campaigns=campaigns, clock=clock)


def get_cart_service(
    repo: SQLiteCartRepo = Depends(get_cart_repo),
    variants: VariantService = Depends(get_variant_service),
    inventory: InventoryService = Depends(get_inventory_service),
    coupons: UserCouponService = Depends(get_user_coupon_service),
    clock: SystemClock = Depends(get_clock),
) -> CartService:
    return CartService(repo=repo, variants=variants, stock=inventory, coupons=coupons, clock=clock)


def get_review_service(
    repo: SQLiteReviewRepo = Depends(get_review_repo),
    variants: SQLiteVariantRepo = Depends(get_variant_repo),
    products: SQLiteProductRepo = Depends(get_product_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ReviewService:
    return ReviewService(
        repo=repo,
        variants=variants,
        products=products,
        clock=clock,
        flag_threshold=rules.reviews.flag_threshold,
        max_images=rules.reviews.max_images,
    )


def get_wallet_service(
    repo: SQLiteWalletRepo = Depends(get_wallet_repo),
    transactions: SQLiteWalletTransactionRepo = Depends(get_wallet_transaction_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> WalletService:
    return WalletService(
        repo=repo,
        transactions=transactions,
        clock=clock,
        max_transaction_amount=rules.wallets.max_transaction_amount,
        default_currency=rules.wallets.default_currency,
    )


def get_payment_method_service(
    repo: SQLitePaymentMethodRepo = Depends(get_payment_method_repo),
    hasher: JWTAuthAdapter = Depends(get_auth_adapter),
    clock: SystemClock = Depends(get_clock),
) -> PaymentMethodService:
    return PaymentMethodService(repo=repo, hasher=hasher, clock=clock)


def get_support_service(
    repo: SQLiteSupportTicketRepo = Depends(get_support_ticket_repo),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> SupportService:
    return SupportService(
        repo=repo,
        clock=clock,
        response_hours=rules.support.response_hours,
        resolution_hours=rules.support.resolution_hours,
    )


# --- Services ---
def get_policy(rules: Rules = Depends(get_rules)) -> PolicyEngine:
    return PolicyEngine(rules)


# --- Listing ---
def _int_or_none(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def list_params(
    sortable: Collection[str], default_sort: str = "created_at"
) -> Callable[..., ListParams]:
    """Dependency reading page/limit/sort_by/sort_order/search from the query string."""

    def dependency(
        rules: Rules = Depends(get_rules),
        page: str | None = None,
        limit: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        search: str | None = None,
    ) -> ListParams:
        return build_list_params(
            rules.listing,
            sortable,
            page=_int_or_none(page),
            limit=_int_or_none(limit),
            sort_by=sort_by,
            sort_order=sort_order,
            search=search,
            default_sort=default_sort,
        )

    return dependency


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


def _request_token(request: Request, header_token: str | None) -> str | None:
    # Cookie first (HttpOnly), then the Authorization header
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        return cookie_token.split(" ", 1)[1]
    return header_token


def _resolve_user(token: str, user_repo: SQLiteUserRepo, auth_adapter: JWTAuthAdapter) -> User:
    subject = auth_adapter.validate_token(token)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        parsed: UUID | None = UUID(subject)
    except ValueError:
        parsed = None
    if parsed is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = user_repo.get_by_id(parsed)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled"
        )

    return user


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
) -> User:
    token = _request_token(request, token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _resolve_user(token, user_repo, auth_adapter)


async def get_optional_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
) -> User | None:
    """Like get_current_user, but anonymous requests get None instead of 401."""
    token = _request_token(request, token)
    if not token:
        return None
    return _resolve_user(token, user_repo, auth_adapter)


def require_permission(action: str) -> Callable[..., User]:
    """Dependency that authenticates and then checks `action` against the RBAC rules."""

    def dependency(
        user: User = Depends(get_current_user),
        policy: PolicyEngine = Depends(get_policy),
    ) -> User:
        if not policy.check_permission(user, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return user

    return dependency


def is_admin(user: User | None, policy: PolicyEngine, action: str = "catalog:manage") -> bool:
    return user is not None and policy.check_permission(user, action)


def actor_context(request: Request, user: User) -> ActorContext:
    return ActorContext(
        actor_id=user.id,
        actor_email=user.email,
        ip_address=request.client.host if request.client else None,
    )
