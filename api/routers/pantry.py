"""
@file        pantry.py
@brief       Pantry router: food items and expiry tracking
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
import logging

from models.pantry import (
    FoodItemCreateRequest, FoodItemResponse, FoodItemListResponse, DeleteExpiredResponse
)
from dependencies.auth import UserContext, get_current_user
from services.pantry import EXPIRING_SOON_DAYS, FoodItem, PantryStore, get_pantry_store

logger = logging.getLogger(__name__)
router = APIRouter()


def to_item_response(item: FoodItem) -> FoodItemResponse:
    return FoodItemResponse(
        id=item.id,
        name=item.name,
        category=item.category,
        quantity=item.quantity,
        unit=item.unit,
        batch=item.batch,
        purchase_date=item.purchase_date,
        expiry_date=item.expiry_date,
        created_at=item.created_at,
        days_until_expiry=item.days_until_expiry(),
        status=item.status().value,
    )


def to_list_response(items) -> FoodItemListResponse:
    return FoodItemListResponse(items=[to_item_response(item) for item in items], total=len(items))


@router.get("/items", response_model=FoodItemListResponse)
async def list_items(
    category: Optional[str] = None,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    """List pantry items, soonest expiry first"""
    return to_list_response(store.list_items(user.user_id, category))


@router.post("/items", response_model=FoodItemResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    request: FoodItemCreateRequest,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    """Add an item to the pantry"""
    item = store.add_item(
        user.user_id,
        name=request.name,
        category=request.category,
        quantity=request.quantity,
        unit=request.unit,
        batch=request.batch,
        purchase_date=request.purchase_date,
        expiry_date=request.expiry_date,
    )
    return to_item_response(item)


@router.get("/items/expiring", response_model=FoodItemListResponse)
async def expiring_items(
    days: int = Query(EXPIRING_SOON_DAYS, ge=0, le=365),
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    """Items expiring within the next `days` days"""
    return to_list_response(store.expiring_items(user.user_id, days))


@router.get("/items/expired", response_model=FoodItemListResponse)
async def expired_items(
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    return to_list_response(store.expired_items(user.user_id))


@router.delete("/items/expired", response_model=DeleteExpiredResponse)
async def delete_expired_items(
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    """Remove every expired item"""
    return DeleteExpiredResponse(deleted=store.delete_expired(user.user_id))


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: str,
    user: UserContext = Depends(get_current_user),
    store: PantryStore = Depends(get_pantry_store),
):
    store.delete_item(user.user_id, item_id)
    return None
