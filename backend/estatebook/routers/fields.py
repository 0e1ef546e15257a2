"""Estate field routes."""

from fastapi import APIRouter, Depends, status

from estatebook.schemas.field import FieldCreate, FieldOut, FieldUpdate
from estatebook.services import logbook
from estatebook.store.base import RecordFilter, RecordStore
from estatebook.store.sql import get_store

router = APIRouter()


@router.get("/", response_model=list[FieldOut])
async def list_fields(store: RecordStore = Depends(get_store)):
    return await store.list("fields", RecordFilter(order_by="name"))


@router.post("/", response_model=FieldOut, status_code=status.HTTP_201_CREATED)
async def create_field(body: FieldCreate, store: RecordStore = Depends(get_store)):
    return await logbook.add_field(store, body)


@router.patch("/{field_id}", response_model=FieldOut)
async def update_field(
    field_id: int,
    body: FieldUpdate,
    store: RecordStore = Depends(get_store),
):
    return await logbook.update_field(store, field_id, body)


@router.delete("/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_field(field_id: int, store: RecordStore = Depends(get_store)):
    """Refused with 422 while harvests or transactions reference the field."""
    await logbook.delete_field(store, field_id)
