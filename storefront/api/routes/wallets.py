from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from storefront.adapters.sqlite.commerce_repos import (
    SQLiteWalletRepo,
    SQLiteWalletTransactionRepo,
)
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_wallet_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.wallets import WalletService
from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    Currency,
    TransactionStatus,
    TransactionType,
    User,
    WalletStatus,
)
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

user_router = APIRouter()
admin_router = APIRouter()

owner = require_permission("wallets:own")
manage = require_permission("wallets:manage")

transaction_params = list_params(SQLiteWalletTransactionRepo.sort_columns)


class AdjustBalanceRequest(BaseModel):
    transaction_type: TransactionType
    amount: Decimal
    description: str
    reference_type: str | None = None
    reference_id: str | None = None


class WalletStatusRequest(BaseModel):
    status: str


# --- My wallet ---


@user_router.get("")
def my_wallet(
    user: User = Depends(owner),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    return ok(dump(service.get_or_create(user.id)))


@user_router.get("/transactions")
def my_transactions(
    params: ListParams = Depends(transaction_params),
    transaction_type: TransactionType | None = None,
    tx_status: TransactionStatus | None = Query(default=None, alias="status"),
    user: User = Depends(owner),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    transactions, total = service.list_transactions(
        params, user_id=user.id, transaction_type=transaction_type, status=tx_status
    )
    return page(transactions, total, params)


# --- Admin ---


@admin_router.get("")
def list_wallets(
    params: ListParams = Depends(list_params(SQLiteWalletRepo.sort_columns)),
    wallet_status: WalletStatus | None = Query(default=None, alias="status"),
    currency: Currency | None = None,
    min_balance: Decimal | None = None,
    max_balance: Decimal | None = None,
    _: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    wallets, total = service.list(
        params,
        status=wallet_status,
        currency=currency,
        min_balance=min_balance,
        max_balance=max_balance,
    )
    return page(wallets, total, params)


@admin_router.get("/stats")
def wallet_stats(
    _: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    stats = service.stats()
    return ok(
        {
            "total_wallets": stats.total_wallets,
            "by_status": stats.by_status,
            "balance_by_currency": {k: float(v) for k, v in stats.balance_by_currency.items()},
        }
    )


@admin_router.get("/transactions")
def list_transactions(
    params: ListParams = Depends(transaction_params),
    wallet_id: UUID | None = None,
    user_id: UUID | None = None,
    transaction_type: TransactionType | None = None,
    tx_status: TransactionStatus | None = Query(default=None, alias="status"),
    _: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    transactions, total = service.list_transactions(
        params,
        wallet_id=wallet_id,
        user_id=user_id,
        transaction_type=transaction_type,
        status=tx_status,
    )
    return page(transactions, total, params)


@admin_router.get("/user/{user_id}")
def get_wallet_by_user(
    user_id: UUID,
    _: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    wallet = service.get_by_user(user_id)
    if wallet is None:
        raise not_found("Wallet not found")
    return ok(dump(wallet))


@admin_router.get("/{wallet_id}")
def get_wallet(
    wallet_id: UUID,
    _: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
) -> dict[str, Any]:
    wallet = service.get(wallet_id)
    if wallet is None:
        raise not_found("Wallet not found")
    return ok(dump(wallet))


@admin_router.post("/{wallet_id}/adjust")
def adjust_balance(
    request: Request,
    wallet_id: UUID,
    body: AdjustBalanceRequest,
    user: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    result, errors = service.adjust(
        wallet_id,
        body.transaction_type,
        body.amount,
        body.description,
        initiated_by="ADMIN",
        initiated_by_user_id=user.id,
        reference_type=body.reference_type,
        reference_id=body.reference_id,
    )
    if result is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.ADJUST,
        EntityType.WALLET,
        wallet_id,
        actor_context(request, user),
        metadata={
            "transaction_type": body.transaction_type,
            "amount": str(body.amount),
            "balance_after": str(result.wallet.balance),
        },
    )
    return ok(
        {"wallet": dump(result.wallet), "transaction": dump(result.transaction)},
        message="Wallet balance adjusted",
    )


@admin_router.patch("/{wallet_id}/status")
def update_wallet_status(
    request: Request,
    wallet_id: UUID,
    body: WalletStatusRequest,
    user: User = Depends(manage),
    service: WalletService = Depends(get_wallet_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    wallet, errors = service.set_status(wallet_id, body.status)
    if wallet is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.STATUS_CHANGE,
        EntityType.WALLET,
        wallet_id,
        actor_context(request, user),
        metadata={"status": body.status},
    )
    return ok(dump(wallet), message="Wallet status updated")
