import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

import models
from database import atomic
from errors import ConflictError, NotFoundError, ValidationError
from schemas import PHONE_ERROR, CustomerResponse, is_valid_phone

logger = logging.getLogger(__name__)


def _customer_stats_query(db: Session):
    return (
        db.query(
            models.Customer,
            func.count(models.Order.id).label("order_count"),
            func.coalesce(func.sum(models.Order.total_amount), 0).label("total_spent"),
            func.max(models.Order.order_date).label("last_order_date"),
        )
        .outerjoin(models.Order, models.Order.customer_id == models.Customer.id)
        .group_by(models.Customer.id)
    )


def _customer_response(customer, order_count=0, total_spent=0, last_order_date=None) -> CustomerResponse:
    return CustomerResponse(
        id=customer.id,
        name=customer.name,
        phone=customer.phone,
        email=customer.email,
        created_at=customer.created_at,
        order_count=order_count or 0,
        total_spent=float(total_spent or 0),
        last_order_date=last_order_date,
    )


def list_customers(db: Session, search: Optional[str] = None) -> List[CustomerResponse]:
    query = _customer_stats_query(db)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            models.Customer.name.ilike(pattern),
            models.Customer.phone.like(pattern),
            models.Customer.email.ilike(pattern),
        ))
    rows = query.order_by(models.Customer.name).all()
    return [_customer_response(*row) for row in rows]


def get_customer(db: Session, customer_id: int) -> CustomerResponse:
    row = _customer_stats_query(db).filter(models.Customer.id == customer_id).first()
    if not row:
        raise NotFoundError("Customer not found")
    return _customer_response(*row)


def create_customer(db: Session, name: str, phone: str, email: Optional[str] = None) -> CustomerResponse:
    if not name or not phone:
        raise ValidationError("Name and phone are required")
    if not is_valid_phone(phone):
        raise ValidationError(PHONE_ERROR)

    db_customer = models.Customer(name=name, phone=phone, email=email or None)
    with atomic(db, integrity_error=ConflictError("Phone number already registered")):
        db.add(db_customer)
        db.flush()

    db.refresh(db_customer)
    logger.info(f"Customer {db_customer.id} registered")
    return _customer_response(db_customer)


def update_customer(db: Session, customer_id: int, name: Optional[str] = None,
                    phone: Optional[str] = None, email: Optional[str] = None) -> CustomerResponse:
    if phone is not None and not is_valid_phone(phone):
        raise ValidationError(PHONE_ERROR)

    conflict = ConflictError("Phone number already registered to another customer")
    with atomic(db, integrity_error=conflict):
        db_customer = db.query(models.Customer).filter(models.Customer.id == customer_id).first()
        if not db_customer:
            raise NotFoundError("Customer not found")

        if name:
            db_customer.name = name
        if phone:
            db_customer.phone = phone
        if email is not None:
            db_customer.email = email
        db.flush()

    return get_customer(db, customer_id)


def delete_customer(db: Session, customer_id: int) -> None:
    with atomic(db, integrity_error=ConflictError("Cannot delete customer with existing orders")):
        order_count = db.query(models.Order).filter(models.Order.customer_id == customer_id).count()
        if order_count > 0:
            raise ConflictError("Cannot delete customer with existing orders")

        deleted = db.query(models.Customer).filter(models.Customer.id == customer_id).delete(
            synchronize_session=False
        )
        if deleted == 0:
            raise NotFoundError("Customer not found")

    logger.info(f"Customer {customer_id} deleted")
