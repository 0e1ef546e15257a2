"""Expense transaction routes."""

from datetime import date

from fastapi import APIRouter, Body, Depends, Query, status

from estatebook.schemas.common import PaginatedResponse
from estatebook.schemas.ledger import PeriodPreset
from estatebook.schemas.transaction import (
    ExpenseType, TransactionRecord, TransactionUpdate, parse_expense,
)
from estatebook.services import logbook
from estatebook.services.ledger import date_range, resolve_period
from estatebook.store.base import RecordStore
from estatebook.store.sql import get_store

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[TransactionRecord])
async def list_transactions(
    start: date | None = None,
    end: date | None = None,
    preset: PeriodPreset = "month",
    field_id: int | None = None,
    type: ExpenseType | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_store),
):
    flt = date_range(resolve_period(start, end, preset))
    flt.order_by, flt.descending = "date", True
    if field_id is not None:
        flt.equals["field_id"] = field_id
    if type is not None:
        flt.equals["type"] = type

    rows = await store.list("transactions", flt)
    return PaginatedResponse(
        items=rows[offset:offset + limit],
        total=len(rows),
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=TransactionRecord, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: dict = Body(..., examples=[{
        "type": "labor_cost", "date": "2024-01-10", "field_id": 1,
        "category_id": 2, "quantity": 3, "hours_worked": 8,
    }]),
    store: RecordStore = Depends(get_store),
):
    """Record an expense.  ``type`` selects which fields apply; a
    missing rate is taken from the activity or inventory master."""
    return await logbook.record_expense(store, parse_expense(body))


@router.patch("/{transaction_id}", response_model=TransactionRecord)
async def update_transaction(
    transaction_id: int,
    body: TransactionUpdate,
    store: RecordStore = Depends(get_store),
):
    return await logbook.update_expense(store, transaction_id, body)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(transaction_id: int, store: RecordStore = Depends(get_store)):
    await logbook.delete_expense(store, transaction_id)
