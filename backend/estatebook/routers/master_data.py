"""Lookup tables that pre-fill expense rates."""

from fastapi import APIRouter, Depends

from estatebook.schemas.master_data import ActivityOut, ActivityUpdate, InventoryItemOut
from estatebook.services import logbook
from estatebook.store.base import RecordFilter, RecordStore
from estatebook.store.sql import get_store

router = APIRouter()


@router.get("/activities", response_model=list[ActivityOut])
async def list_activities(store: RecordStore = Depends(get_store)):
    return await store.list("activity_master", RecordFilter(order_by="name"))


@router.patch("/activities/{activity_id}", response_model=ActivityOut)
async def update_activity(
    activity_id: int,
    body: ActivityUpdate,
    store: RecordStore = Depends(get_store),
):
    return await logbook.update_activity(store, activity_id, body)


@router.get("/inventory", response_model=list[InventoryItemOut])
async def list_inventory(store: RecordStore = Depends(get_store)):
    return await store.list("inventory_master", RecordFilter(order_by="name"))
