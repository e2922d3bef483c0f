import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.adapters.auth.crypto import JWTAuthAdapter
from storefront.adapters.clock import SystemClock
from storefront.adapters.sqlite.migrator import SQLiteMigrator
from storefront.adapters.sqlite.repos import SQLiteUserRepo
from storefront.api.deps import get_settings
from storefront.api.errors import install_exception_handlers
from storefront.app_shell.config import configure_logging, validate_ops_rules
from storefront.components.bootstrap import BootstrapInput, run_bootstrap
from storefront.rules.loader import load_rules
from storefront.shell.http.health import (
    DatabaseCheck,
    StartupTracker,
    create_health_router,
    get_health_registry,
    sqlite_ping,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    configure_logging()
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = load_rules(settings.rules_path)
        validate_ops_rules(rules)
        logger.info("Rules loaded from %s", settings.rules_path)
    except Exception as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()

    result = run_bootstrap(
        BootstrapInput(
            bootstrap_email=os.environ.get("STORE_BOOTSTRAP_EMAIL"),
            bootstrap_password=os.environ.get("STORE_BOOTSTRAP_PASSWORD"),
        ),
        SQLiteUserRepo(settings.db_path),
        JWTAuthAdapter(),
        rules.ops.bootstrap_admin,
        SystemClock(),
    )
    if result.created and result.user is not None:
        logger.info("Bootstrap admin created: %s", result.user.email)
    elif not result.success:
        logger.warning("Bootstrap admin failed: %s", "; ".join(e.message for e in result.errors))
    else:
        logger.info("Bootstrap admin skipped: %s", result.skipped_reason)

    registry = get_health_registry()
    registry.clear()
    registry.register(DatabaseCheck(sqlite_ping(settings.db_path)))
    StartupTracker.mark_started()

    yield
    # Shutdown cleanup if needed


app = FastAPI(
    title="Storefront API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

install_exception_handlers(app)

# --- Routers ---
from storefront.api.routes import (  # noqa: E402
    auth,
    brands,
    cart,
    coupons,
    inventory,
    options,
    payment_methods,
    products,
    reviews,
    support,
    variants,
    wallets,
)

API = "/api/v1"

app.include_router(create_health_router())
app.include_router(auth.router, prefix=f"{API}/auth", tags=["Auth"])

# Catalogue
app.include_router(brands.router, prefix=f"{API}/brands", tags=["Brands"])
app.include_router(options.router, prefix=f"{API}/options", tags=["Options"])
app.include_router(products.router, prefix=f"{API}/products", tags=["Products"])
app.include_router(variants.router, prefix=f"{API}/product-variants", tags=["Product Variants"])
app.include_router(inventory.router, prefix=f"{API}/inventory", tags=["Inventory"])

# Admin
app.include_router(
    coupons.campaign_router, prefix=f"{API}/coupon-campaigns", tags=["Coupon Campaigns"]
)
app.include_router(coupons.admin_router, prefix=f"{API}/user-coupons", tags=["User Coupons"])
app.include_router(cart.admin_router, prefix=f"{API}/carts", tags=["Carts"])
app.include_router(reviews.admin_router, prefix=f"{API}/reviews", tags=["Reviews"])
app.include_router(wallets.admin_router, prefix=f"{API}/wallets", tags=["Wallets"])
app.include_router(
    payment_methods.admin_router, prefix=f"{API}/payment-methods", tags=["Payment Methods"]
)
app.include_router(support.admin_router, prefix=f"{API}/support-tickets", tags=["Support"])

# Signed-in user
app.include_router(coupons.user_router, prefix=f"{API}/user/coupons", tags=["My Coupons"])
app.include_router(cart.user_router, prefix=f"{API}/user/cart", tags=["My Cart"])
app.include_router(reviews.user_router, prefix=f"{API}/user/reviews", tags=["My Reviews"])
app.include_router(wallets.user_router, prefix=f"{API}/user/wallet", tags=["My Wallet"])
app.include_router(
    payment_methods.user_router,
    prefix=f"{API}/user/payment-methods",
    tags=["My Payment Methods"],
)
app.include_router(
    support.user_router, prefix=f"{API}/user/support-tickets", tags=["My Support Tickets"]
)


# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
