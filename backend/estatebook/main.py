from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from estatebook.config import settings
from estatebook.middleware.exceptions import register_exception_handlers
from estatebook.routers import (
    collectors, fields, harvests, health, ledger, logs, master_data, reports, transactions,
)
from estatebook.services.scheduler import lifespan


app = FastAPI(
    title="EstateBook",
    description="Estate bookkeeping: harvest income, field expenses and derived profit ledgers",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(fields.router, prefix="/api/fields", tags=["fields"])
app.include_router(harvests.router, prefix="/api/harvests", tags=["harvests"])
app.include_router(transactions.router, prefix="/api/transactions", tags=["transactions"])
app.include_router(collectors.router, prefix="/api/collectors", tags=["collectors"])
app.include_router(master_data.router, prefix="/api/master", tags=["master data"])
app.include_router(ledger.router, prefix="/api/ledger", tags=["ledger"])
app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
app.include_router(logs.router, prefix="/api/logs", tags=["logs"])
