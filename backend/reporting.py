"""
Агрегаты для дашборда. Только чтение, транзакция не нужна.

Возвращает:
- summary:         totalOrders, totalRevenue (только delivered), totalCustomers, totalMenuItems
- ordersByStatus:  status, count (только статусы, по которым есть заказы)
- topSellingItems: name, category, total_sold, revenue (топ-5 по количеству)
- recentOrders:    последние 10 заказов
- revenueByType:   order_type, count, revenue (только delivered)
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

import models

TOP_ITEMS_LIMIT = 5
RECENT_ORDERS_LIMIT = 10


def summary(db: Session) -> dict:
    total_orders = db.query(func.count(models.Order.id)).scalar() or 0
    revenue = (
        db.query(func.coalesce(func.sum(models.Order.total_amount), 0))
        .filter(models.Order.status == "delivered")
        .scalar()
    )
    total_customers = db.query(func.count(models.Customer.id)).scalar() or 0
    total_menu_items = (
        db.query(func.count(models.MenuItem.id))
        .filter(models.MenuItem.is_available.is_(True))
        .scalar()
        or 0
    )
    return {
        "totalOrders": total_orders,
        "totalRevenue": f"{float(revenue or 0):.2f}",
        "totalCustomers": total_customers,
        "totalMenuItems": total_menu_items,
    }


def orders_by_status(db: Session) -> list:
    rows = (
        db.query(models.Order.status, func.count(models.Order.id))
        .group_by(models.Order.status)
        .order_by(models.Order.status)
        .all()
    )
    return [{"status": status, "count": count} for status, count in rows]


def top_selling_items(db: Session, limit: int = TOP_ITEMS_LIMIT) -> list:
    total_sold = func.sum(models.OrderItem.quantity).label("total_sold")
    rows = (
        db.query(
            models.MenuItem.name,
            models.Category.name,
            total_sold,
            func.sum(models.OrderItem.subtotal),
        )
        .join(models.MenuItem, models.OrderItem.menu_item_id == models.MenuItem.id)
        .join(models.Category, models.MenuItem.category_id == models.Category.id)
        .group_by(models.MenuItem.id, models.MenuItem.name, models.Category.name)
        .order_by(total_sold.desc())
        .limit(limit)
        .all()
    )
    return [
        {"name": name, "category": category, "total_sold": int(sold), "revenue": float(revenue)}
        for name, category, sold, revenue in rows
    ]


def recent_orders(db: Session, limit: int = RECENT_ORDERS_LIMIT) -> list:
    rows = (
        db.query(
            models.Order.id,
            models.Order.order_date,
            models.Order.total_amount,
            models.Order.status,
            models.Customer.name,
        )
        .join(models.Customer, models.Order.customer_id == models.Customer.id)
        .order_by(models.Order.order_date.desc(), models.Order.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": order_id,
            "order_date": order_date,
            "total_amount": float(total_amount),
            "status": status,
            "customer_name": customer_name,
        }
        for order_id, order_date, total_amount, status, customer_name in rows
    ]


def revenue_by_type(db: Session) -> list:
    rows = (
        db.query(
            models.Order.order_type,
            func.count(models.Order.id),
            func.sum(models.Order.total_amount),
        )
        .filter(models.Order.status == "delivered")
        .group_by(models.Order.order_type)
        .all()
    )
    return [
        {"order_type": order_type, "count": count, "revenue": float(revenue or 0)}
        for order_type, count, revenue in rows
    ]


def dashboard_stats(db: Session) -> dict:
    return {
        "summary": summary(db),
        "ordersByStatus": orders_by_status(db),
        "topSellingItems": top_selling_items(db),
        "recentOrders": recent_orders(db),
        "revenueByType": revenue_by_type(db),
    }
