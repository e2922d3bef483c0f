from decimal import Decimal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str
    required_sections: list[str]

class CsrfRules(BaseModel):
    enabled: bool
    cookie_name: str = "csrf_token"
    header_name: str = "X-CSRF-Token"

class SecurityRules(BaseModel):
    fail_fast_on_invalid_rules: bool
    csrf: CsrfRules

class PasswordHashingRules(BaseModel):
    algorithm: str
    min_length: int

class CookieRules(BaseModel):
    secure: bool
    http_only: bool
    same_site: str

class AuthRules(BaseModel):
    password_hashing: PasswordHashingRules
    access_token_ttl_minutes: int = 60 * 24
    cookie: CookieRules

class RbacRules(BaseModel):
    roles: dict[str, list[str]]
    public_permissions: list[str]

class ListingRules(BaseModel):
    default_limit: int = 10
    max_limit: int = 100

class InventoryRules(BaseModel):
    max_min_stock_level: int = 10000
    pack_option_type: str = "pack"

class ReviewRules(BaseModel):
    flag_threshold: int = 3
    max_images: int = 10

class CouponRules(BaseModel):
    code_random_length: int = 8

class WalletRules(BaseModel):
    default_currency: str = "INR"
    currencies: list[str]
    max_transaction_amount: Decimal

class SupportRules(BaseModel):
    response_hours: dict[str, int]
    resolution_hours: dict[str, int]

class RateLimitWindow(BaseModel):
    window_seconds: int
    max_attempts: int | None = None
    max_requests: int | None = None

class RateLimitRules(BaseModel):
    login: RateLimitWindow
    register: RateLimitWindow

class AdminBootstrapRules(BaseModel):
    enabled_if_no_users: bool
    required_env_when_enabled: list[str]

class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)
    bootstrap_admin: AdminBootstrapRules

class Rules(BaseModel):
    project: ProjectRules
    security: SecurityRules
    auth: AuthRules
    rbac: RbacRules
    listing: ListingRules
    inventory: InventoryRules
    reviews: ReviewRules
    coupons: CouponRules
    wallets: WalletRules
    support: SupportRules
    rate_limits: RateLimitRules
    ops: OpsRules
