import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pixhub.config import settings
from pixhub.engine.charge_builder import ChargeService
from pixhub.engine.contact_service import ContactService
from pixhub.engine.execution_runner import ExecutionRunner
from pixhub.engine.owner_service import OwnerService
from pixhub.engine.transaction_engine import TransactionEngine
from pixhub.errors import PixHubError
from pixhub.gateway.banco_do_brasil import BancoDoBrasilGateway
from pixhub.gateway.memory import InMemoryGateway
from pixhub.middleware.rate_limiter import RateLimiter
from pixhub.processors.mock_processor import MockTransferProcessor
from pixhub.routers import charges, contacts, owners, transactions
from pixhub.stores.memory import (
    InMemoryContactStore,
    InMemoryOwnerDirectory,
    InMemoryTransactionStore,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    logger.info("PixHub starting up...")

    owner_directory = InMemoryOwnerDirectory()
    contact_store = InMemoryContactStore()
    transaction_store = InMemoryTransactionStore()

    if settings.USE_BANK_GATEWAY:
        gateway = BancoDoBrasilGateway(settings)
    else:
        gateway = InMemoryGateway()

    transaction_engine = TransactionEngine(owner_directory, transaction_store)
    processor = MockTransferProcessor()

    app.state.owner_service = OwnerService(owner_directory)
    app.state.contact_service = ContactService(contact_store, owner_directory)
    app.state.transaction_engine = transaction_engine
    app.state.execution_runner = ExecutionRunner(transaction_engine, processor, settings)
    app.state.charge_service = ChargeService(gateway, settings)
    app.state.gateway = gateway
    app.state.rate_limiter = (
        RateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)
        if settings.RATE_LIMIT_ENABLED
        else None
    )

    logger.info(
        f"Gateway: {gateway.name} | transfer processor: {processor.name} | "
        f"charge expiry default={settings.CHARGE_DEFAULT_EXPIRATION_MINUTES}min "
        f"max={settings.CHARGE_MAX_EXPIRATION_MINUTES}min"
    )

    yield

    # --- Shutdown ---
    await gateway.aclose()
    logger.info("PixHub shutting down.")


app = FastAPI(
    title="PixHub",
    description=(
        "PIX payment-initiation backend: owners, saved payees with PIX keys, "
        "immediate/scheduled/automatic transfers and PIX charges."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# Registered first, so it runs inside log_requests and its 429s are logged.
@app.middleware("http")
async def rate_limit_requests(request: Request, call_next):
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return await call_next(request)

    client = request.client.host if request.client else "unknown"
    allowed, retry_after = limiter.hit(client)
    if not allowed:
        logger.warning(
            f"[HTTP] Rate limit exceeded for {client}: "
            f"{limiter.max_requests} requests per {limiter.window_seconds:.0f}s"
        )
        return JSONResponse(
            status_code=429,
            content={"detail": "too many requests, try again later", "retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    client = request.client.host if request.client else "unknown"
    logger.info(
        f"[HTTP] {request.method} {request.url.path} -> {response.status_code} "
        f"({elapsed_ms:.1f}ms) client={client}"
    )
    return response


app.include_router(owners.router, tags=["Owners"])
app.include_router(contacts.router, tags=["Contacts"])
app.include_router(transactions.router, tags=["Transactions"])
app.include_router(charges.router, tags=["Charges"])


@app.exception_handler(PixHubError)
async def pixhub_error_handler(request: Request, exc: PixHubError) -> JSONResponse:
    logger.info(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal error occurred. Please try again later."},
    )


@app.get("/", tags=["Health"])
async def root():
    return {
        "service": "PixHub",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }
