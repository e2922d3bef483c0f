"""
SQLite repositories for coupons, carts, reviews, wallets, payment methods and
support tickets.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from storefront.adapters.sqlite.repos import SQLiteRepo, encode_value
from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    Cart,
    CartItem,
    CouponCampaign,
    CouponStatus,
    DiscountType,
    PaymentMethod,
    PaymentMethodType,
    Review,
    ReviewStatus,
    SupportTicket,
    TicketMessage,
    UserCoupon,
    Wallet,
    WalletTransaction,
)

COUPON_STATUS_SQL: dict[CouponStatus, str] = {
    "INACTIVE": "is_active = 0",
    "REDEEMED": "is_active = 1 AND is_redeemed = 1",
    "EXPIRED": "is_active = 1 AND is_redeemed = 0 AND expires_at < ?",
    "ACTIVE": "is_active = 1 AND is_redeemed = 0 AND expires_at >= ?",
}


class SQLiteCampaignRepo(SQLiteRepo[CouponCampaign]):
    table = "coupon_campaigns"
    model = CouponCampaign
    json_fields = ("eligibility_criteria", "applicable_product_variant_ids")
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "name": "name COLLATE NOCASE",
        "valid_from": "valid_from",
        "valid_until": "valid_until",
        "discount_value": "CAST(discount_value AS REAL)",
    }
    search_columns = ("name", "description", "code_prefix")

    def get_by_slug(self, slug: str) -> CouponCampaign | None:
        return self._get_one("SELECT * FROM coupon_campaigns WHERE slug = ?", (slug,))

    def get_by_name(self, name: str) -> CouponCampaign | None:
        return self._get_one(
            "SELECT * FROM coupon_campaigns WHERE name = ? COLLATE NOCASE", (name.strip(),)
        )

    def slug_exists(self, slug: str) -> bool:
        return self._exists("slug = ?", (slug,))

    def list(
        self,
        params: ListParams,
        now: datetime,
        is_active: bool | None = None,
        discount_type: DiscountType | None = None,
        validity: str | None = None,
    ) -> tuple[list[CouponCampaign], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        if discount_type:
            clauses.append("discount_type = ?")
            values.append(discount_type)
        stamp = now.isoformat()
        if validity == "active":
            clauses.append("valid_from <= ? AND valid_until >= ?")
            values.extend([stamp, stamp])
        elif validity == "expired":
            clauses.append("valid_until < ?")
            values.append(stamp)
        elif validity == "upcoming":
            clauses.append("valid_from > ?")
            values.append(stamp)
        return self._page(clauses, values, params)


class SQLiteUserCouponRepo(SQLiteRepo[UserCoupon]):
    table = "user_coupons"
    model = UserCoupon
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "expires_at": "expires_at",
        "coupon_code": "coupon_code",
    }
    search_columns = ("coupon_code",)

    def get_by_code(self, code: str) -> UserCoupon | None:
        return self._get_one(
            "SELECT * FROM user_coupons WHERE coupon_code = ?", (code.strip().upper(),)
        )

    def code_exists(self, code: str) -> bool:
        return self._exists("coupon_code = ?", (code,))

    def record_redemption(self, coupon: UserCoupon, expected_usage_count: int) -> bool:
        """
        Store one redemption of `coupon` and count it against its campaign.

        Both rows change in one transaction. Nothing is written and False is
        returned when the stored usage count no longer equals
        `expected_usage_count`, the coupon is already redeemed, or the
        campaign has reached `max_global_usage`.
        """
        stamp = coupon.updated_at.isoformat()
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.execute(
                "UPDATE user_coupons SET current_usage_count = ?, is_redeemed = ?, "
                "redeemed_at = ?, updated_at = ? "
                "WHERE id = ? AND current_usage_count = ? AND is_redeemed = 0",
                (
                    coupon.current_usage_count,
                    encode_value(coupon.is_redeemed),
                    encode_value(coupon.redeemed_at),
                    stamp,
                    str(coupon.id),
                    expected_usage_count,
                ),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return False
            cur = conn.execute(
                "UPDATE coupon_campaigns SET current_global_usage = current_global_usage + 1, "
                "updated_at = ? WHERE id = ? "
                "AND (max_global_usage IS NULL OR current_global_usage < max_global_usage)",
                (stamp, str(coupon.campaign_id)),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return False
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def user_ids_for_campaign(self, campaign_id: UUID) -> set[UUID]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT DISTINCT user_id FROM user_coupons WHERE campaign_id = ?",
                (str(campaign_id),),
            ).fetchall()
            return {UUID(row["user_id"]) for row in rows}
        finally:
            conn.close()

    def list_by_user(self, user_id: UUID) -> list[UserCoupon]:
        return self._get_all(
            "SELECT * FROM user_coupons WHERE user_id = ? ORDER BY created_at DESC",
            (str(user_id),),
        )

    def list(
        self,
        params: ListParams,
        now: datetime,
        campaign_id: UUID | None = None,
        user_id: UUID | None = None,
        status: CouponStatus | None = None,
    ) -> tuple[list[UserCoupon], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if campaign_id is not None:
            clauses.append("campaign_id = ?")
            values.append(str(campaign_id))
        if user_id is not None:
            clauses.append("user_id = ?")
            values.append(str(user_id))
        if status is not None:
            condition = COUPON_STATUS_SQL[status]
            clauses.append(f"({condition})")
            if "?" in condition:
                values.append(now.isoformat())
        return self._page(clauses, values, params)


class SQLiteCartRepo(SQLiteRepo[Cart]):
    table = "carts"
    model = Cart
    child_fields = ("items",)
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "cart_total_amount": "CAST(cart_total_amount AS REAL)",
    }
    search_columns = ("applied_coupon_code",)

    def save(self, cart: Cart) -> Cart:
        conn = self._get_conn()
        try:
            # 1. Upsert cart
            self._upsert(conn, "carts", self._to_row(cart))

            # 2. Replace lines
            conn.execute("DELETE FROM cart_items WHERE cart_id = ?", (str(cart.id),))
            for position, item in enumerate(cart.items):
                conn.execute(
                    """
                    INSERT INTO cart_items
                    (id, cart_id, product_variant_id, quantity, price_at_addition,
                     added_at, position)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        str(item.id),
                        str(cart.id),
                        str(item.product_variant_id),
                        item.quantity,
                        encode_value(item.price_at_addition),
                        item.added_at.isoformat(),
                        position,
                    ),
                )

            conn.commit()
            return cart
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_user(self, user_id: UUID) -> Cart | None:
        return self._get_one("SELECT * FROM carts WHERE user_id = ?", (str(user_id),))

    def _map_row(self, row: dict[str, Any]) -> Cart:
        conn = self._get_conn()
        try:
            item_rows = conn.execute(
                "SELECT * FROM cart_items WHERE cart_id = ? ORDER BY position ASC", (row["id"],)
            ).fetchall()
        finally:
            conn.close()
        row["items"] = [CartItem.model_validate(r) for r in item_rows]
        return Cart.model_validate(row)

    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        has_coupon: bool | None = None,
        has_items: bool | None = None,
        min_total: Decimal | None = None,
        max_total: Decimal | None = None,
    ) -> tuple[list[Cart], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if user_id is not None:
            clauses.append("user_id = ?")
            values.append(str(user_id))
        if has_coupon is not None:
            clauses.append(
                "applied_coupon_code IS NOT NULL" if has_coupon else "applied_coupon_code IS NULL"
            )
        if has_items is not None:
            exists = "EXISTS (SELECT 1 FROM cart_items ci WHERE ci.cart_id = carts.id)"
            clauses.append(exists if has_items else f"NOT {exists}")
        if min_total is not None:
            clauses.append("CAST(cart_total_amount AS REAL) >= ?")
            values.append(float(min_total))
        if max_total is not None:
            clauses.append("CAST(cart_total_amount AS REAL) <= ?")
            values.append(float(max_total))
        return self._page(clauses, values, params)


class SQLiteReviewRepo(SQLiteRepo[Review]):
    table = "reviews"
    model = Review
    json_fields = ("image_urls",)
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "rating": "rating",
        "helpful_votes": "helpful_votes",
        "reported_count": "reported_count",
    }
    search_columns = ("title", "review_text")

    def get_by_user_variant(self, user_id: UUID, variant_id: UUID) -> Review | None:
        return self._get_one(
            "SELECT * FROM reviews WHERE user_id = ? AND product_variant_id = ?",
            (str(user_id), str(variant_id)),
        )

    def list(
        self,
        params: ListParams,
        status: ReviewStatus | None = None,
        product_variant_id: UUID | None = None,
        user_id: UUID | None = None,
        rating: int | None = None,
        min_rating: int | None = None,
        max_rating: int | None = None,
    ) -> tuple[list[Review], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if status is not None:
            clauses.append("status = ?")
            values.append(status)
        if product_variant_id is not None:
            clauses.append("product_variant_id = ?")
            values.append(str(product_variant_id))
        if user_id is not None:
            clauses.append("user_id = ?")
            values.append(str(user_id))
        if rating is not None:
            clauses.append("rating = ?")
            values.append(rating)
        if min_rating is not None:
            clauses.append("rating >= ?")
            values.append(min_rating)
        if max_rating is not None:
            clauses.append("rating <= ?")
            values.append(max_rating)
        return self._page(clauses, values, params)

    def approved_ratings_for_variant(self, variant_id: UUID) -> list[int]:
        return self._ratings(
            "SELECT rating FROM reviews WHERE product_variant_id = ? AND status = 'APPROVED'",
            (str(variant_id),),
        )

    def approved_ratings_for_product(self, product_id: UUID) -> list[int]:
        return self._ratings(
            "SELECT r.rating FROM reviews r "
            "JOIN product_variants v ON v.id = r.product_variant_id "
            "WHERE v.product_id = ? AND r.status = 'APPROVED'",
            (str(product_id),),
        )

    def _ratings(self, query: str, params: Sequence[Any]) -> list[int]:
        conn = self._get_conn()
        try:
            return [int(row["rating"]) for row in conn.execute(query, params).fetchall()]
        finally:
            conn.close()

    def record_vote(self, review_id: UUID, user_id: UUID, helpful: bool, at: datetime) -> bool:
        """Store one vote per user and bump the matching counter. False if already voted."""
        column = "helpful_votes" if helpful else "unhelpful_votes"
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT OR IGNORE INTO review_votes (review_id, user_id, kind, created_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    str(review_id),
                    str(user_id),
                    "helpful" if helpful else "unhelpful",
                    at.isoformat(),
                ),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return False
            conn.execute(
                f"UPDATE reviews SET {column} = {column} + 1 WHERE id = ?", (str(review_id),)
            )
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def record_report(
        self,
        review_id: UUID,
        user_id: UUID,
        reason: str,
        custom_reason: str | None,
        at: datetime,
    ) -> int | None:
        """
        Store one report per user.

        Returns the new reported_count, or None if the user already reported.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "INSERT OR IGNORE INTO review_reports "
                "(review_id, user_id, reason, custom_reason, created_at) VALUES (?, ?, ?, ?, ?)",
                (str(review_id), str(user_id), reason, custom_reason, at.isoformat()),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return None
            conn.execute(
                "UPDATE reviews SET reported_count = reported_count + 1 WHERE id = ?",
                (str(review_id),),
            )
            row = conn.execute(
                "SELECT reported_count FROM reviews WHERE id = ?", (str(review_id),)
            ).fetchone()
            conn.commit()
            return int(row["reported_count"]) if row else None
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


class SQLiteWalletRepo(SQLiteRepo[Wallet]):
    table = "wallets"
    model = Wallet
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "balance": "CAST(balance AS REAL)",
        "last_transaction_at": "last_transaction_at",
    }

    def get_by_user(self, user_id: UUID) -> Wallet | None:
        return self._get_one("SELECT * FROM wallets WHERE user_id = ?", (str(user_id),))

    def list(
        self,
        params: ListParams,
        status: str | None = None,
        currency: str | None = None,
        min_balance: Decimal | None = None,
        max_balance: Decimal | None = None,
    ) -> tuple[list[Wallet], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if status:
            clauses.append("status = ?")
            values.append(status)
        if currency:
            clauses.append("currency = ?")
            values.append(currency)
        if min_balance is not None:
            clauses.append("CAST(balance AS REAL) >= ?")
            values.append(float(min_balance))
        if max_balance is not None:
            clauses.append("CAST(balance AS REAL) <= ?")
            values.append(float(max_balance))
        return self._page(clauses, values, params)

    def list_all(self) -> list[Wallet]:
        return self._get_all("SELECT * FROM wallets")

    def update_status(self, wallet_id: UUID, status: str, at: datetime) -> Wallet | None:
        """Change status and bump version; balance is untouched."""
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE wallets SET status = ?, version = version + 1, updated_at = ? "
                "WHERE id = ?",
                (status, at.isoformat(), str(wallet_id)),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_by_id(wallet_id)

    def apply_transaction(
        self, wallet: Wallet, transaction: WalletTransaction, expected_version: int
    ) -> bool:
        """
        Write the new balance and its transaction together.

        The update only lands if the wallet is still ACTIVE and its stored
        version equals `expected_version`; otherwise nothing is written and
        False is returned.
        """
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cur = conn.execute(
                "UPDATE wallets SET balance = ?, version = ?, last_transaction_at = ?, "
                "updated_at = ? WHERE id = ? AND version = ? AND status = 'ACTIVE'",
                (
                    encode_value(wallet.balance),
                    wallet.version,
                    encode_value(wallet.last_transaction_at),
                    wallet.updated_at.isoformat(),
                    str(wallet.id),
                    expected_version,
                ),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return False
            self._upsert(conn, "wallet_transactions", self._to_row_any(transaction))
            conn.commit()
            return True
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _to_row_any(self, transaction: WalletTransaction) -> dict[str, Any]:
        data = transaction.model_dump()
        return {name: encode_value(data[name]) for name in WalletTransaction.model_fields}


class SQLiteWalletTransactionRepo(SQLiteRepo[WalletTransaction]):
    table = "wallet_transactions"
    model = WalletTransaction
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "amount": "CAST(amount AS REAL)",
    }
    search_columns = ("description", "reference_id")

    def list(
        self,
        params: ListParams,
        wallet_id: UUID | None = None,
        user_id: UUID | None = None,
        transaction_type: str | None = None,
        status: str | None = None,
    ) -> tuple[list[WalletTransaction], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if wallet_id is not None:
            clauses.append("wallet_id = ?")
            values.append(str(wallet_id))
        if user_id is not None:
            clauses.append("user_id = ?")
            values.append(str(user_id))
        if transaction_type:
            clauses.append("transaction_type = ?")
            values.append(transaction_type)
        if status:
            clauses.append("status = ?")
            values.append(status)
        return self._page(clauses, values, params)


class SQLitePaymentMethodRepo(SQLiteRepo[PaymentMethod]):
    table = "payment_methods"
    model = PaymentMethod
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "method_type": "method_type",
    }
    search_columns = ("alias", "card_holder_name", "account_holder_name", "bank_name")

    def list_for_user(
        self,
        user_id: UUID,
        method_type: PaymentMethodType | None = None,
        active_only: bool = True,
    ) -> list[PaymentMethod]:
        query = "SELECT * FROM payment_methods WHERE user_id = ?"
        values: list[Any] = [str(user_id)]
        if active_only:
            query += " AND is_active = 1"
        if method_type:
            query += " AND method_type = ?"
            values.append(method_type)
        return self._get_all(query + " ORDER BY is_default DESC, created_at DESC", values)

    def get_default(self, user_id: UUID) -> PaymentMethod | None:
        return self._get_one(
            "SELECT * FROM payment_methods WHERE user_id = ? AND is_default = 1 AND is_active = 1",
            (str(user_id),),
        )

    def set_default(self, user_id: UUID, method_id: UUID | None, at: datetime) -> None:
        """Make `method_id` the only default for the user (None clears all)."""
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE payment_methods SET is_default = CASE WHEN id = ? THEN 1 ELSE 0 END, "
                "updated_at = ? WHERE user_id = ?",
                (str(method_id) if method_id else None, at.isoformat(), str(user_id)),
            )
            conn.commit()
        finally:
            conn.close()

    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        method_type: PaymentMethodType | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[PaymentMethod], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if user_id is not None:
            clauses.append("user_id = ?")
            values.append(str(user_id))
        if method_type:
            clauses.append("method_type = ?")
            values.append(method_type)
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        return self._page(clauses, values, params)


OPEN_TICKET_SQL = "status NOT IN ('RESOLVED', 'CLOSED', 'CANCELLED')"


class SQLiteSupportTicketRepo(SQLiteRepo[SupportTicket]):
    table = "support_tickets"
    model = SupportTicket
    json_fields = ("tags",)
    child_fields = ("messages",)
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "priority": (
            "CASE priority WHEN 'URGENT' THEN 4 WHEN 'HIGH' THEN 3 "
            "WHEN 'MEDIUM' THEN 2 ELSE 1 END"
        ),
        "status": "status",
        "ticket_number": "ticket_number",
    }
    search_columns = ("subject", "ticket_number", "user_email")

    def save(self, ticket: SupportTicket) -> SupportTicket:
        conn = self._get_conn()
        try:
            self._upsert(conn, "support_tickets", self._to_row(ticket))

            conn.execute("DELETE FROM ticket_messages WHERE ticket_id = ?", (str(ticket.id),))
            for position, message in enumerate(ticket.messages):
                conn.execute(
                    """
                    INSERT INTO ticket_messages
                    (id, ticket_id, sender_id, sender_name, sender_role, message,
                     attachments, is_internal, created_at, position)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        str(message.id),
                        str(ticket.id),
                        str(message.sender_id),
                        message.sender_name,
                        message.sender_role,
                        message.message,
                        encode_value(message.attachments),
                        int(message.is_internal),
                        message.created_at.isoformat(),
                        position,
                    ),
                )

            conn.commit()
            return ticket
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> SupportTicket:
        conn = self._get_conn()
        try:
            message_rows = conn.execute(
                "SELECT * FROM ticket_messages WHERE ticket_id = ? ORDER BY position ASC",
                (row["id"],),
            ).fetchall()
        finally:
            conn.close()
        for m in message_rows:
            m["attachments"] = json.loads(m["attachments"] or "[]")
        row["messages"] = [TicketMessage.model_validate(m) for m in message_rows]
        return super()._map_row(row)

    def last_sequence_for_year(self, year: int) -> int:
        """Highest NNNNNN issued as TKT-<year>-NNNNNN, 0 if none."""
        prefix = f"TKT-{year}-"
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT MAX(CAST(substr(ticket_number, ?) AS INTEGER)) AS seq "
                "FROM support_tickets WHERE ticket_number LIKE ?",
                (len(prefix) + 1, f"{prefix}%"),
            ).fetchone()
            return int(row["seq"]) if row and row["seq"] is not None else 0
        finally:
            conn.close()

    def list(
        self,
        params: ListParams,
        now: datetime,
        user_id: UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        assigned_to: UUID | None = None,
        overdue: bool | None = None,
    ) -> tuple[list[SupportTicket], int]:
        clauses: list[str] = []
        values: list[Any] = []
        for column, value in (
            ("user_id", user_id),
            ("status", status),
            ("priority", priority),
            ("category", category),
            ("assigned_to", assigned_to),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                values.append(str(value))
        if overdue is not None:
            condition = (
                f"{OPEN_TICKET_SQL} AND ((first_response_at IS NULL AND response_due < ?) "
                "OR resolution_due < ?)"
            )
            clauses.append(f"({condition})" if overdue else f"NOT ({condition})")
            values.extend([now.isoformat(), now.isoformat()])
        return self._page(clauses, values, params)

    def count_by_status(self) -> dict[str, int]:
        return self._count_by("status")

    def count_by_priority(self) -> dict[str, int]:
        return self._count_by("priority")

