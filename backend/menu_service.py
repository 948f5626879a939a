import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from database import atomic
from errors import ConflictError, NotFoundError, ValidationError
from schemas import CategoryResponse, MenuItemResponse

logger = logging.getLogger(__name__)


def list_categories(db: Session) -> List[CategoryResponse]:
    rows = (
        db.query(models.Category, func.count(models.MenuItem.id).label("item_count"))
        .outerjoin(models.MenuItem, models.MenuItem.category_id == models.Category.id)
        .group_by(models.Category.id)
        .order_by(models.Category.name)
        .all()
    )
    return [
        CategoryResponse(
            id=category.id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
            item_count=item_count,
        )
        for category, item_count in rows
    ]


def create_category(db: Session, name: str, description: Optional[str] = None) -> CategoryResponse:
    if not name:
        raise ValidationError("Category name is required")

    db_category = models.Category(name=name, description=description or None)
    with atomic(db):
        db.add(db_category)
    db.refresh(db_category)
    return CategoryResponse(
        id=db_category.id,
        name=db_category.name,
        description=db_category.description,
        created_at=db_category.created_at,
    )


def _menu_item_response(item, category_name=None) -> MenuItemResponse:
    return MenuItemResponse(
        id=item.id,
        category_id=item.category_id,
        category_name=category_name,
        name=item.name,
        description=item.description,
        price=float(item.price),
        is_available=item.is_available,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _menu_query(db: Session):
    return (
        db.query(models.MenuItem, models.Category.name)
        .join(models.Category, models.MenuItem.category_id == models.Category.id)
    )


def list_menu_items(db: Session, category_id: Optional[int] = None,
                    available: Optional[bool] = None) -> List[MenuItemResponse]:
    query = _menu_query(db)
    if category_id:
        query = query.filter(models.MenuItem.category_id == category_id)
    if available is not None:
        query = query.filter(models.MenuItem.is_available == available)

    rows = query.order_by(models.Category.id, models.MenuItem.name).all()
    return [_menu_item_response(item, category_name) for item, category_name in rows]


def get_menu_item(db: Session, menu_item_id: int) -> MenuItemResponse:
    row = _menu_query(db).filter(models.MenuItem.id == menu_item_id).first()
    if not row:
        raise NotFoundError("Menu item not found")
    return _menu_item_response(*row)


def _check_price(price) -> Decimal:
    if isinstance(price, bool) or not isinstance(price, (int, float, Decimal)) or price <= 0:
        raise ValidationError("Price must be a positive number")
    return Decimal(str(price))


def _check_category(db: Session, category_id: int):
    exists = db.query(models.Category.id).filter(models.Category.id == category_id).first()
    if not exists:
        raise NotFoundError(f"Category {category_id} not found")


def create_menu_item(db: Session, category_id: int, name: str, price,
                     description: Optional[str] = None, is_available: bool = True) -> MenuItemResponse:
    if not category_id or not name or price is None:
        raise ValidationError("Missing required fields: category_id, name, price")
    price = _check_price(price)

    with atomic(db):
        _check_category(db, category_id)
        db_item = models.MenuItem(
            category_id=category_id,
            name=name,
            description=description or None,
            price=price,
            is_available=is_available,
        )
        db.add(db_item)
        db.flush()
        menu_item_id = db_item.id

    logger.info(f"Menu item {menu_item_id} created")
    return get_menu_item(db, menu_item_id)


def update_menu_item(db: Session, menu_item_id: int, **changes) -> MenuItemResponse:
    changes = {key: value for key, value in changes.items() if value is not None}
    if "price" in changes:
        changes["price"] = _check_price(changes["price"])

    with atomic(db):
        db_item = db.query(models.MenuItem).filter(models.MenuItem.id == menu_item_id).first()
        if not db_item:
            raise NotFoundError("Menu item not found")
        if "category_id" in changes:
            _check_category(db, changes["category_id"])

        for key, value in changes.items():
            setattr(db_item, key, value)

    return get_menu_item(db, menu_item_id)


def toggle_availability(db: Session, menu_item_id: int) -> MenuItemResponse:
    with atomic(db):
        db_item = db.query(models.MenuItem).filter(models.MenuItem.id == menu_item_id).first()
        if not db_item:
            raise NotFoundError("Menu item not found")
        db_item.is_available = not db_item.is_available

    return get_menu_item(db, menu_item_id)


def delete_menu_item(db: Session, menu_item_id: int) -> None:
    conflict = ConflictError("Cannot delete menu item referenced by existing orders")
    with atomic(db, integrity_error=conflict):
        deleted = db.query(models.MenuItem).filter(models.MenuItem.id == menu_item_id).delete(
            synchronize_session=False
        )
        if deleted == 0:
            raise NotFoundError("Menu item not found")

    logger.info(f"Menu item {menu_item_id} deleted")
