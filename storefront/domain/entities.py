from datetime import UTC, datetime
from typing import Annotated, Literal
from uuid import UUID, uuid4

from pydantic import AfterValidator, BaseModel, Field, computed_field

from storefront.domain.money import ZERO, Money
from storefront.domain.stock import StockStatus, stock_status

# --- Enums / Literals ---
RoleType = Literal["admin", "customer"]
UserStatus = Literal["active", "disabled"]
DiscountType = Literal["PERCENTAGE", "AMOUNT", "FREE_SHIPPING"]
CouponStatus = Literal["ACTIVE", "REDEEMED", "EXPIRED", "INACTIVE"]
ReviewStatus = Literal["PENDING_APPROVAL", "APPROVED", "REJECTED", "FLAGGED"]
WalletStatus = Literal["ACTIVE", "BLOCKED", "INACTIVE"]
Currency = Literal["INR", "USD", "EUR", "GBP", "AUD", "CAD"]
TransactionType = Literal["CREDIT", "DEBIT"]
TransactionStatus = Literal["PENDING", "COMPLETED", "FAILED", "ROLLED_BACK"]
InitiatedBy = Literal["USER", "ADMIN", "SYSTEM"]
PaymentMethodType = Literal["CREDIT_CARD", "DEBIT_CARD", "UPI", "WALLET", "NETBANKING", "OTHER"]
CardBrand = Literal["Visa", "MasterCard", "RuPay", "Amex", "Discover", "Other"]
WalletProvider = Literal["Paytm", "PhonePe", "GooglePay", "Mobikwik", "JioMoney", "Other"]
TicketCategory = Literal[
    "ORDER_ISSUE",
    "PAYMENT_PROBLEM",
    "PRODUCT_INQUIRY",
    "SHIPPING_DELIVERY",
    "RETURNS_REFUNDS",
    "ACCOUNT_ACCESS",
    "TECHNICAL_SUPPORT",
    "BILLING_INQUIRY",
    "PRODUCT_DEFECT",
    "WEBSITE_BUG",
    "FEATURE_REQUEST",
    "COMPLAINT",
    "OTHER",
]
TicketPriority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
TicketStatus = Literal["OPEN", "IN_PROGRESS", "PENDING_USER", "RESOLVED", "CLOSED", "CANCELLED"]
MessageRole = Literal["user", "admin", "support"]
ResolutionType = Literal[
    "SOLVED", "REFUNDED", "REPLACED", "WORKAROUND", "DUPLICATE", "NOT_REPRODUCIBLE", "OTHER"
]


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes from clients are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


def empty_distribution() -> dict[str, int]:
    return {str(star): 0 for star in range(1, 6)}


# --- User & Auth ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    email: str
    password_hash: str
    roles: list[RoleType] = Field(default_factory=list)
    status: UserStatus = "active"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

# --- Catalog ---

class Brand(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    slug: str
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None
    contact_email: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class Option(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    option_type: str
    option_value: str
    name: str
    slug: str
    sort_order: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class SeoMeta(BaseModel):
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)

class Product(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    slug: str
    description: str
    short_description: str | None = None
    images: list[str] = Field(default_factory=list)
    category_id: str
    brand_id: UUID | None = None
    seo: SeoMeta = Field(default_factory=SeoMeta)
    average_rating: float = 0.0
    reviews_count: int = 0
    rating_distribution: dict[str, int] = Field(default_factory=empty_distribution)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class ProductVariant(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    product_id: UUID
    option_ids: list[UUID] = Field(default_factory=list)
    sku_code: str
    price: Money
    discount_price: Money | None = None
    is_on_sale: bool = False
    images: list[str] = Field(default_factory=list)
    sort_order: int = 0
    average_rating: float = 0.0
    reviews_count: int = 0
    rating_distribution: dict[str, int] = Field(default_factory=empty_distribution)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_price(self) -> Money:
        if self.is_on_sale and self.discount_price is not None:
            return self.discount_price
        return self.price

class InventoryRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    product_variant_id: UUID
    stock_quantity: int = 0
    min_stock_level: int = 0
    location: str | None = None
    notes: str | None = None
    last_restock_date: datetime | None = None
    last_sold_date: datetime | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def stock_status(self) -> StockStatus:
        return stock_status(self.stock_quantity, self.min_stock_level)

# --- Coupons ---

class CouponCampaign(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    slug: str
    description: str | None = None
    code_prefix: str = ""
    discount_type: DiscountType
    discount_value: Money
    min_purchase_amount: Money = ZERO
    max_coupon_discount: Money | None = None
    valid_from: UtcDatetime
    valid_until: UtcDatetime
    max_global_usage: int | None = None
    current_global_usage: int = 0
    max_usage_per_user: int = 1
    is_unique_per_user: bool = True
    eligibility_criteria: list[str] = Field(default_factory=lambda: ["NONE"])
    applicable_product_variant_ids: list[UUID] = Field(default_factory=list)
    is_active: bool = True
    created_by: UUID | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class UserCoupon(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    campaign_id: UUID
    user_id: UUID
    coupon_code: str
    current_usage_count: int = 0
    expires_at: UtcDatetime
    is_redeemed: bool = False
    redeemed_at: datetime | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

# --- Cart ---

class CartItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    product_variant_id: UUID
    quantity: int
    price_at_addition: Money
    added_at: datetime = Field(default_factory=utc_now)

class Cart(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    items: list[CartItem] = Field(default_factory=list)
    applied_coupon_code: str | None = None
    coupon_discount_amount: Money = ZERO
    subtotal_amount: Money = ZERO
    cart_total_amount: Money = ZERO
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def find_item(self, variant_id: UUID) -> CartItem | None:
        return next((i for i in self.items if i.product_variant_id == variant_id), None)

# --- Reviews ---

class Review(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    product_variant_id: UUID
    rating: int
    title: str | None = None
    review_text: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    video_url: str | None = None
    status: ReviewStatus = "PENDING_APPROVAL"
    helpful_votes: int = 0
    unhelpful_votes: int = 0
    reported_count: int = 0
    moderated_by: UUID | None = None
    moderated_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

# --- Wallets ---

class Wallet(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    balance: Money = ZERO
    currency: Currency = "INR"
    status: WalletStatus = "ACTIVE"
    last_transaction_at: datetime | None = None
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

class WalletTransaction(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    wallet_id: UUID
    user_id: UUID
    transaction_type: TransactionType
    amount: Money
    currency: Currency
    description: str
    reference_type: str | None = None
    reference_id: str | None = None
    balance_after: Money | None = None
    status: TransactionStatus = "PENDING"
    initiated_by: InitiatedBy = "SYSTEM"
    initiated_by_user_id: UUID | None = None
    failure_reason: str | None = None
    processed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

# --- Payment Methods ---

class PaymentMethod(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    method_type: PaymentMethodType
    alias: str | None = None
    is_default: bool = False
    card_brand: CardBrand | None = None
    last4: str | None = None
    expiry_month: str | None = None
    expiry_year: str | None = None
    card_holder_name: str | None = None
    token_fingerprint: str | None = None
    upi_id: str | None = None
    wallet_provider: WalletProvider | None = None
    bank_name: str | None = None
    account_holder_name: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

# --- Support ---

class TicketMessage(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    sender_id: UUID
    sender_name: str
    sender_role: MessageRole
    message: str
    attachments: list[str] = Field(default_factory=list)
    is_internal: bool = False
    created_at: datetime = Field(default_factory=utc_now)

class SupportTicket(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    ticket_number: str
    subject: str
    description: str
    user_id: UUID
    user_name: str
    user_email: str
    category: TicketCategory
    priority: TicketPriority = "MEDIUM"
    status: TicketStatus = "OPEN"
    assigned_to: UUID | None = None
    assigned_at: datetime | None = None
    related_order_number: str | None = None
    related_product_id: UUID | None = None
    tags: list[str] = Field(default_factory=list)
    messages: list[TicketMessage] = Field(default_factory=list)
    resolution_note: str | None = None
    resolution_type: ResolutionType | None = None
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    satisfaction_rating: int | None = None
    satisfaction_feedback: str | None = None
    response_due: datetime | None = None
    resolution_due: datetime | None = None
    first_response_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def is_overdue(self, now: datetime) -> bool:
        if self.status in ("RESOLVED", "CLOSED", "CANCELLED"):
            return False
        if self.first_response_at is None and self.response_due and now > self.response_due:
            return True
        return bool(self.resolution_due and now > self.resolution_due)

# --- Aggregates ---

class RatingSummary(BaseModel):
    average_rating: float
    total_reviews: int
    rating_distribution: dict[str, int]
