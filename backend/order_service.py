"""
Жизненный цикл заказа: создание (цены + позиции одной транзакцией),
смена статуса, удаление вместе с позициями.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from database import atomic
from errors import NotFoundError, ValidationError
from schemas import ORDER_TYPE_ERROR, STATUS_ERROR, OrderItemCreate, OrderItemResponse, OrderResponse

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def create_order(db: Session, customer_id: int, order_type: str, items: List[OrderItemCreate],
                 notes: Optional[str] = None) -> OrderResponse:
    items = list(items or [])
    if not customer_id or not order_type or not items:
        raise ValidationError("Missing required fields: customer_id, order_type, items")
    if order_type not in models.ORDER_TYPES:
        raise ValidationError(ORDER_TYPE_ERROR)

    lines = []
    for item in items:
        menu_item_id, quantity = item.menu_item_id, item.quantity
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"Invalid quantity for menu item {menu_item_id}")
        lines.append((menu_item_id, quantity))

    # позиция меню, удалённая между чтением цены и вставкой, тоже 404
    with atomic(db, integrity_error=NotFoundError("Menu item not found")):
        customer = (
            db.query(models.Customer)
            .filter(models.Customer.id == customer_id)
            .with_for_update(read=True)
            .first()
        )
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")

        requested_ids = {menu_item_id for menu_item_id, _ in lines}
        prices = dict(
            db.query(models.MenuItem.id, models.MenuItem.price)
            .filter(models.MenuItem.id.in_(requested_ids))
            .with_for_update(read=True)
            .all()
        )
        for menu_item_id, _ in lines:
            if menu_item_id not in prices:
                raise NotFoundError(f"Menu item {menu_item_id} not found")

        priced = []
        for menu_item_id, quantity in lines:
            unit_price = money(prices[menu_item_id])
            priced.append((menu_item_id, quantity, unit_price, money(unit_price * quantity)))
        total = money(sum(subtotal for *_, subtotal in priced))

        db_order = models.Order(
            customer_id=customer_id,
            total_amount=total,
            status="pending",
            order_type=order_type,
            notes=notes or None,
        )
        db.add(db_order)
        db.flush()

        for menu_item_id, quantity, unit_price, subtotal in priced:
            db.add(models.OrderItem(
                order_id=db_order.id,
                menu_item_id=menu_item_id,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=subtotal,
            ))
        db.flush()
        order_id = db_order.id

    logger.info(f"Order {order_id} created for customer {customer_id}: {len(priced)} items, total {total}")
    return get_order(db, order_id)


def update_order_status(db: Session, order_id: int, status: str,
                        notes: Optional[str] = None) -> OrderResponse:
    if status not in models.ORDER_STATUSES:
        raise ValidationError(STATUS_ERROR)

    with atomic(db):
        db_order = db.query(models.Order).filter(models.Order.id == order_id).first()
        if not db_order:
            raise NotFoundError("Order not found")

        db_order.status = status
        if notes:
            db_order.notes = notes

    logger.info(f"Order {order_id} status set to {status}")
    return get_order(db, order_id, with_items=False)


def delete_order(db: Session, order_id: int) -> None:
    with atomic(db):
        # позиции первыми: внешний ключ без каскада
        db.query(models.OrderItem).filter(models.OrderItem.order_id == order_id).delete(
            synchronize_session=False
        )
        deleted = db.query(models.Order).filter(models.Order.id == order_id).delete(
            synchronize_session=False
        )
        if deleted == 0:
            raise NotFoundError("Order not found")

    logger.info(f"Order {order_id} deleted")


def get_order(db: Session, order_id: int, with_items: bool = True) -> OrderResponse:
    row = (
        db.query(models.Order, models.Customer)
        .join(models.Customer, models.Order.customer_id == models.Customer.id)
        .filter(models.Order.id == order_id)
        .first()
    )
    if not row:
        raise NotFoundError("Order not found")
    order, customer = row

    items = None
    if with_items:
        items = get_order_items(db, order_id)

    return _order_response(order, customer, items=items)


def get_order_items(db: Session, order_id: int) -> List[OrderItemResponse]:
    rows = (
        db.query(models.OrderItem, models.MenuItem, models.Category)
        .join(models.MenuItem, models.OrderItem.menu_item_id == models.MenuItem.id)
        .join(models.Category, models.MenuItem.category_id == models.Category.id)
        .filter(models.OrderItem.order_id == order_id)
        .order_by(models.OrderItem.id)
        .all()
    )
    return [
        OrderItemResponse(
            id=item.id,
            order_id=item.order_id,
            menu_item_id=item.menu_item_id,
            quantity=item.quantity,
            unit_price=float(item.unit_price),
            subtotal=float(item.subtotal),
            item_name=menu_item.name,
            item_description=menu_item.description,
            category_name=category.name,
        )
        for item, menu_item, category in rows
    ]


def list_orders(db: Session, status: Optional[str] = None,
                customer_id: Optional[int] = None) -> List[OrderResponse]:
    item_count = func.count(models.OrderItem.id).label("item_count")
    query = (
        db.query(models.Order, models.Customer, item_count)
        .join(models.Customer, models.Order.customer_id == models.Customer.id)
        .outerjoin(models.OrderItem, models.OrderItem.order_id == models.Order.id)
    )
    if status:
        query = query.filter(models.Order.status == status)
    if customer_id:
        query = query.filter(models.Order.customer_id == customer_id)

    rows = (
        query.group_by(models.Order.id, models.Customer.id)
        .order_by(models.Order.order_date.desc(), models.Order.id.desc())
        .all()
    )
    return [_order_response(order, customer, item_count=count) for order, customer, count in rows]


def _order_response(order, customer, items=None, item_count=None) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        customer_id=order.customer_id,
        order_date=order.order_date,
        total_amount=float(order.total_amount),
        status=order.status,
        order_type=order.order_type,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        customer_name=customer.name,
        customer_phone=customer.phone,
        customer_email=customer.email,
        item_count=item_count if item_count is not None else (len(items) if items is not None else None),
        items=items,
    )
