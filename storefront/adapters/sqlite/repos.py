from __future__ import annotations

import json
import sqlite3
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel

from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    Brand,
    InventoryRecord,
    Option,
    Product,
    ProductVariant,
    User,
)
from storefront.domain.stock import StockStatus

M = TypeVar("M", bound=BaseModel)


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def encode_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, UUID | Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list | dict):
        return json.dumps(value, default=str)
    return value


def like_term(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def in_clause(column: str, values: Sequence[Any]) -> tuple[str, list[Any]]:
    placeholders = ", ".join("?" for _ in values)
    return f"{column} IN ({placeholders})", [str(v) for v in values]


class SQLiteRepo(Generic[M]):
    """
    Table-per-entity repository.

    Columns are named after the model fields; list/dict fields are stored as
    JSON text, money as decimal text, datetimes as ISO-8601.
    """

    table: str
    model: type[M]
    json_fields: tuple[str, ...] = ()
    child_fields: tuple[str, ...] = ()
    sort_columns: dict[str, str] = {"created_at": "created_at", "updated_at": "updated_at"}
    search_columns: tuple[str, ...] = ()

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _to_row(self, entity: M) -> dict[str, Any]:
        data = entity.model_dump()
        return {
            name: encode_value(data[name])
            for name in type(entity).model_fields
            if name not in self.child_fields
        }

    def _map_row(self, row: dict[str, Any]) -> M:
        for name in self.json_fields:
            if isinstance(row.get(name), str):
                row[name] = json.loads(row[name])
        return self.model.model_validate(row)

    def _upsert(self, conn: sqlite3.Connection, table: str, row: dict[str, Any]) -> None:
        columns = list(row)
        updates = ", ".join(f"{c}=excluded.{c}" for c in columns if c not in ("id", "created_at"))
        conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            [row[c] for c in columns],
        )

    def save(self, entity: M) -> M:
        conn = self._get_conn()
        try:
            self._upsert(conn, self.table, self._to_row(entity))
            conn.commit()
            return entity
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, entity_id: UUID) -> M | None:
        return self._get_one(f"SELECT * FROM {self.table} WHERE id = ?", (str(entity_id),))

    def get_many(self, ids: Sequence[UUID]) -> list[M]:
        if not ids:
            return []
        clause, params = in_clause("id", ids)
        return self._get_all(f"SELECT * FROM {self.table} WHERE {clause}", params)

    def delete(self, entity_id: UUID) -> None:
        conn = self._get_conn()
        try:
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (str(entity_id),))
            conn.commit()
        finally:
            conn.close()

    def _get_one(self, query: str, params: Sequence[Any]) -> M | None:
        conn = self._get_conn()
        try:
            row = conn.execute(query, params).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def _get_all(self, query: str, params: Sequence[Any] = ()) -> list[M]:
        conn = self._get_conn()
        try:
            rows = conn.execute(query, params).fetchall()
            return [self._map_row(row) for row in rows]
        finally:
            conn.close()

    def _exists(self, where: str, params: Sequence[Any]) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT 1 AS found FROM {self.table} WHERE {where} LIMIT 1", params
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def _count_by(self, column: str) -> dict[str, int]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT {column} AS k, COUNT(*) AS cnt FROM {self.table} GROUP BY {column}"
            ).fetchall()
            return {str(row["k"]): row["cnt"] for row in rows}
        finally:
            conn.close()

    def _page(
        self,
        clauses: list[str],
        params: list[Any],
        list_params: ListParams,
        from_clause: str | None = None,
        select: str = "*",
    ) -> tuple[list[M], int]:
        """Filter, count, sort and slice in one round trip per step."""
        if list_params.search and self.search_columns:
            ors = " OR ".join(f"{col} LIKE ? ESCAPE '\\'" for col in self.search_columns)
            clauses = [*clauses, f"({ors})"]
            params = [*params, *([like_term(list_params.search)] * len(self.search_columns))]

        source = from_clause or self.table
        where = " AND ".join(clauses) if clauses else "1=1"
        query = f"SELECT {select} FROM {source} WHERE {where}"

        conn = self._get_conn()
        try:
            row = conn.execute(f"SELECT COUNT(*) AS cnt FROM ({query})", params).fetchone()
            total = row["cnt"] if row else 0

            order_column = self.sort_columns.get(
                list_params.sort_by, self.sort_columns["created_at"]
            )
            direction = "ASC" if list_params.sort_order == "asc" else "DESC"
            query += f" ORDER BY {order_column} {direction} LIMIT ? OFFSET ?"

            rows = conn.execute(query, [*params, list_params.limit, list_params.offset]).fetchall()
            return [self._map_row(r) for r in rows], total
        finally:
            conn.close()


class SQLiteUserRepo(SQLiteRepo[User]):
    table = "users"
    model = User
    child_fields = ("roles",)

    def save(self, user: User) -> User:
        conn = self._get_conn()
        try:
            self._upsert(conn, "users", self._to_row(user))

            # Roles live in role_assignments; replace them wholesale
            conn.execute("DELETE FROM role_assignments WHERE user_id = ?", (str(user.id),))
            for role in user.roles:
                conn.execute(
                    "INSERT INTO role_assignments (id, user_id, role, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (str(uuid4()), str(user.id), role, datetime.now(UTC).isoformat()),
                )

            conn.commit()
            return user
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_email(self, email: str) -> User | None:
        return self._get_one("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))

    def list_all(self) -> list[User]:
        return self._get_all("SELECT * FROM users ORDER BY email")

    def _map_row(self, row: dict[str, Any]) -> User:
        conn = self._get_conn()
        try:
            role_rows = conn.execute(
                "SELECT role FROM role_assignments WHERE user_id = ? ORDER BY created_at",
                (row["id"],),
            ).fetchall()
        finally:
            conn.close()
        row["roles"] = [r["role"] for r in role_rows]
        return User.model_validate(row)


class SQLiteBrandRepo(SQLiteRepo[Brand]):
    table = "brands"
    model = Brand
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "name": "name COLLATE NOCASE",
    }
    search_columns = ("name", "description")

    def get_by_slug(self, slug: str) -> Brand | None:
        return self._get_one("SELECT * FROM brands WHERE slug = ?", (slug,))

    def get_by_name(self, name: str) -> Brand | None:
        return self._get_one("SELECT * FROM brands WHERE name = ? COLLATE NOCASE", (name.strip(),))

    def slug_exists(self, slug: str) -> bool:
        return self._exists("slug = ?", (slug,))

    def list(
        self, params: ListParams, is_active: bool | None = None
    ) -> tuple[list[Brand], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        return self._page(clauses, values, params)

    def count_by_active(self) -> dict[str, int]:
        return self._count_by("is_active")


class SQLiteOptionRepo(SQLiteRepo[Option]):
    table = "options"
    model = Option
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "option_type": "option_type COLLATE NOCASE",
        "sort_order": "sort_order",
        "name": "name COLLATE NOCASE",
    }
    search_columns = ("name", "option_value", "option_type")

    def get_by_slug(self, slug: str) -> Option | None:
        return self._get_one("SELECT * FROM options WHERE slug = ?", (slug,))

    def get_by_type_value(self, option_type: str, option_value: str) -> Option | None:
        return self._get_one(
            "SELECT * FROM options WHERE option_type = ? COLLATE NOCASE "
            "AND option_value = ? COLLATE NOCASE",
            (option_type.strip(), option_value.strip()),
        )

    def slug_exists(self, slug: str) -> bool:
        return self._exists("slug = ?", (slug,))

    def list(
        self,
        params: ListParams,
        option_type: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[Option], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if option_type:
            clauses.append("option_type = ? COLLATE NOCASE")
            values.append(option_type.strip())
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        return self._page(clauses, values, params)

    def list_active(self) -> list[Option]:
        return self._get_all(
            "SELECT * FROM options WHERE is_active = 1 "
            "ORDER BY option_type COLLATE NOCASE, sort_order, option_value"
        )

    def count_by_active(self) -> dict[str, int]:
        return self._count_by("is_active")


class SQLiteProductRepo(SQLiteRepo[Product]):
    table = "products"
    model = Product
    json_fields = ("images", "seo", "rating_distribution")
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "name": "name COLLATE NOCASE",
        "average_rating": "average_rating",
    }
    search_columns = ("name", "description", "short_description")

    def get_by_slug(self, slug: str) -> Product | None:
        return self._get_one("SELECT * FROM products WHERE slug = ?", (slug,))

    def get_by_name(self, name: str) -> Product | None:
        return self._get_one(
            "SELECT * FROM products WHERE name = ? COLLATE NOCASE", (name.strip(),)
        )

    def slug_exists(self, slug: str) -> bool:
        return self._exists("slug = ?", (slug,))

    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        category_ids: Sequence[str] = (),
        brand_ids: Sequence[str] = (),
    ) -> tuple[list[Product], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        if category_ids:
            clause, extra = in_clause("category_id", category_ids)
            clauses.append(clause)
            values.extend(extra)
        if brand_ids:
            clause, extra = in_clause("brand_id", brand_ids)
            clauses.append(clause)
            values.extend(extra)
        return self._page(clauses, values, params)

    def count_by_active(self) -> dict[str, int]:
        return self._count_by("is_active")


class SQLiteVariantRepo(SQLiteRepo[ProductVariant]):
    table = "product_variants"
    model = ProductVariant
    json_fields = ("option_ids", "images", "rating_distribution")
    sort_columns = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "price": "CAST(price AS REAL)",
        "sku_code": "sku_code",
        "sort_order": "sort_order",
    }
    search_columns = ("sku_code",)

    def get_by_sku(self, sku_code: str) -> ProductVariant | None:
        return self._get_one(
            "SELECT * FROM product_variants WHERE sku_code = ?", (sku_code.strip().upper(),)
        )

    def sku_exists(self, sku_code: str) -> bool:
        return self._exists("sku_code = ?", (sku_code,))

    def list_by_product(
        self, product_id: UUID, active_only: bool = False
    ) -> list[ProductVariant]:
        query = "SELECT * FROM product_variants WHERE product_id = ?"
        if active_only:
            query += " AND is_active = 1"
        return self._get_all(query + " ORDER BY sort_order, created_at", (str(product_id),))

    def list_active_for_products(self, product_ids: Sequence[UUID]) -> list[ProductVariant]:
        if not product_ids:
            return []
        clause, params = in_clause("product_id", product_ids)
        return self._get_all(
            f"SELECT * FROM product_variants WHERE is_active = 1 AND {clause}", params
        )

    def list(
        self,
        params: ListParams,
        product_id: UUID | None = None,
        is_active: bool | None = None,
        is_on_sale: bool | None = None,
    ) -> tuple[list[ProductVariant], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if product_id is not None:
            clauses.append("product_id = ?")
            values.append(str(product_id))
        if is_active is not None:
            clauses.append("is_active = ?")
            values.append(int(is_active))
        if is_on_sale is not None:
            clauses.append("is_on_sale = ?")
            values.append(int(is_on_sale))
        return self._page(clauses, values, params)


STOCK_STATUS_SQL: dict[StockStatus, str] = {
    "out_of_stock": "i.stock_quantity <= 0",
    "low_stock": (
        "i.stock_quantity > 0 AND i.min_stock_level > 0 "
        "AND i.stock_quantity <= i.min_stock_level"
    ),
    "in_stock": (
        "i.stock_quantity > 0 AND (i.min_stock_level <= 0 "
        "OR i.stock_quantity > i.min_stock_level)"
    ),
}


class SQLiteInventoryRepo(SQLiteRepo[InventoryRecord]):
    table = "inventory_records"
    model = InventoryRecord
    sort_columns = {
        "created_at": "i.created_at",
        "updated_at": "i.updated_at",
        "stock_quantity": "i.stock_quantity",
        "min_stock_level": "i.min_stock_level",
    }
    search_columns = ("v.sku_code", "i.location", "i.notes")

    def get_by_variant(self, variant_id: UUID) -> InventoryRecord | None:
        return self._get_one(
            "SELECT * FROM inventory_records WHERE product_variant_id = ?", (str(variant_id),)
        )

    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        stock_status: StockStatus | None = None,
        location: str | None = None,
        product_id: UUID | None = None,
    ) -> tuple[list[InventoryRecord], int]:
        clauses: list[str] = []
        values: list[Any] = []
        if is_active is not None:
            clauses.append("i.is_active = ?")
            values.append(int(is_active))
        if stock_status is not None:
            clauses.append(f"({STOCK_STATUS_SQL[stock_status]})")
        if location:
            clauses.append("i.location LIKE ? ESCAPE '\\'")
            values.append(like_term(location.strip()))
        if product_id is not None:
            clauses.append("v.product_id = ?")
            values.append(str(product_id))
        return self._page(
            clauses,
            values,
            params,
            from_clause=(
                "inventory_records i LEFT JOIN product_variants v "
                "ON v.id = i.product_variant_id"
            ),
            select="i.*",
        )

    def count_by_status(self) -> dict[str, int]:
        conn = self._get_conn()
        try:
            counts: dict[str, int] = {}
            for status, condition in STOCK_STATUS_SQL.items():
                row = conn.execute(
                    "SELECT COUNT(*) AS cnt FROM inventory_records i "
                    f"WHERE i.is_active = 1 AND ({condition})"
                ).fetchone()
                counts[status] = row["cnt"] if row else 0
            return counts
        finally:
            conn.close()
