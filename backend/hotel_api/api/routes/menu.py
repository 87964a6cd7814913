"""Room-service menu routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select

from hotel_api.core.exceptions import NotFoundError
from hotel_api.core.responses import message_response
from hotel_api.db.session import DbSession
from hotel_api.models.menu import MenuItem
from hotel_api.schemas.menu import MenuItemCreate, MenuItemResponse, MenuItemUpdate
from hotel_api.services.broadcaster import Broadcaster, get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


def _menu_query(category: Optional[str], include_inactive: bool):
    stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
    if not include_inactive:
        stmt = stmt.where(MenuItem.is_active.is_(True))
    if category:
        stmt = stmt.where(MenuItem.category == category)
    return stmt


def _get_item(db, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


@router.get("", response_model=List[MenuItemResponse])
def list_menu(db: DbSession, category: Optional[str] = Query(None)):
    """Active menu items, optionally filtered by category."""
    return list(db.scalars(_menu_query(category, include_inactive=False)))


@router.get("/admin", response_model=List[MenuItemResponse])
def list_menu_admin(db: DbSession, category: Optional[str] = Query(None)):
    """Every menu item, including ones taken off the menu."""
    return list(db.scalars(_menu_query(category, include_inactive=True)))


@router.post("", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    payload: MenuItemCreate,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    item = MenuItem(**payload.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Menu item {item.id} created: {item.name}")
    broadcaster.emit("menu-updated", {"action": "created", "item": MenuItemResponse.model_validate(item)})
    return item


@router.put("/{item_id}", response_model=MenuItemResponse)
def update_menu_item(
    item_id: int,
    payload: MenuItemUpdate,
    db: DbSession,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Partial update. Existing orders keep the price they were placed at."""
    item = _get_item(db, item_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    broadcaster.emit("menu-updated", {"action": "updated", "item": MenuItemResponse.model_validate(item)})
    return item


@router.delete("/{item_id}")
def delete_menu_item(item_id: int, db: DbSession, broadcaster: Broadcaster = Depends(get_broadcaster)):
    item = _get_item(db, item_id)
    db.delete(item)
    db.commit()
    logger.info(f"Menu item {item_id} deleted")
    broadcaster.emit("menu-updated", {"action": "deleted", "id": item_id})
    return message_response("Menu item removed", id=item_id)
