from fastapi import APIRouter, FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging
import os
import uvicorn

import customer_service
import menu_service
import order_service
import reporting
from database import Database, get_db
from errors import ApiError
from schemas import (
    CategoryCreate,
    MenuItemCreate,
    MenuItemUpdate,
    CustomerCreate,
    CustomerUpdate,
    OrderCreate,
    OrderStatusUpdate,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("RestaurantAPI")


DEFAULT_ORIGINS = [
    "http://localhost",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]


def get_origins():
    raw = os.getenv("CORS_ORIGINS")
    if not raw:
        return DEFAULT_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def envelope(data=None, message=None, count=None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    return body


def error_response(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def _describe_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("path", "query"):
            # order_id -> "order ID"
            name = loc[-1].replace("_id", " ID").replace("_", " ")
            messages.append(f"Invalid {name}")
            continue

        field = ".".join(loc[1:] if loc and loc[0] == "body" else loc) or "request body"
        if err.get("type") == "missing":
            messages.append(f"Missing required field: {field}")
        elif err.get("type") == "value_error":
            msg = str(err.get("msg", "Invalid value"))
            messages.append(msg.replace("Value error, ", "", 1))
        else:
            messages.append(f"{field}: {err.get('msg', 'Invalid value')}")
    return "; ".join(messages) or "Invalid request"


router = APIRouter()


@router.get("/")
def read_root():
    return {"message": "Restaurant API is working!"}


@router.get("/health")
def health_check(request: Request):
    if request.app.state.database.ping():
        return {"status": "ok", "message": "API is running"}
    return JSONResponse(status_code=503, content={"status": "fail", "message": "Database unavailable"})


@router.get("/categories")
def get_categories(db: Session = Depends(get_db)):
    categories = menu_service.list_categories(db)
    return envelope(categories, count=len(categories))


@router.post("/categories", status_code=201)
def create_category(category: CategoryCreate, db: Session = Depends(get_db)):
    created = menu_service.create_category(db, category.name, category.description)
    return envelope(created, message="Category created successfully")


@router.get("/menu")
def get_menu(category_id: Optional[int] = None, available: Optional[bool] = None,
             db: Session = Depends(get_db)):
    items = menu_service.list_menu_items(db, category_id=category_id, available=available)
    return envelope(items, count=len(items))


@router.post("/menu", status_code=201)
def create_menu_item(item: MenuItemCreate, db: Session = Depends(get_db)):
    created = menu_service.create_menu_item(db, **item.dict())
    return envelope(created, message="Menu item created successfully")


@router.get("/menu/{menu_item_id}")
def get_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    return envelope(menu_service.get_menu_item(db, menu_item_id))


@router.put("/menu/{menu_item_id}")
def update_menu_item(menu_item_id: int, item: MenuItemUpdate, db: Session = Depends(get_db)):
    updated = menu_service.update_menu_item(db, menu_item_id, **item.dict())
    return envelope(updated, message="Menu item updated successfully")


@router.patch("/menu/{menu_item_id}/availability")
def toggle_menu_item_availability(menu_item_id: int, db: Session = Depends(get_db)):
    updated = menu_service.toggle_availability(db, menu_item_id)
    state = "available" if updated.is_available else "unavailable"
    return envelope(updated, message=f"Menu item marked {state}")


@router.delete("/menu/{menu_item_id}")
def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)):
    menu_service.delete_menu_item(db, menu_item_id)
    return envelope(message="Menu item deleted successfully")


@router.get("/customers")
def get_customers(search: Optional[str] = None, db: Session = Depends(get_db)):
    customers = customer_service.list_customers(db, search=search)
    return envelope(customers, count=len(customers))


@router.post("/customers", status_code=201)
def create_customer(customer: CustomerCreate, db: Session = Depends(get_db)):
    created = customer_service.create_customer(db, customer.name, customer.phone, customer.email)
    return envelope(created, message="Customer created successfully")


@router.get("/customers/{customer_id}")
def get_customer(customer_id: int, db: Session = Depends(get_db)):
    return envelope(customer_service.get_customer(db, customer_id))


@router.put("/customers/{customer_id}")
def update_customer(customer_id: int, customer: CustomerUpdate, db: Session = Depends(get_db)):
    updated = customer_service.update_customer(db, customer_id, **customer.dict())
    return envelope(updated, message="Customer updated successfully")


@router.delete("/customers/{customer_id}")
def delete_customer(customer_id: int, db: Session = Depends(get_db)):
    customer_service.delete_customer(db, customer_id)
    return envelope(message="Customer deleted successfully")


@router.get("/orders")
def get_orders(status: Optional[str] = None, customer_id: Optional[int] = None,
               db: Session = Depends(get_db)):
    orders = order_service.list_orders(db, status=status, customer_id=customer_id)
    return envelope(orders, count=len(orders))


@router.post("/orders", status_code=201)
def create_order(order: OrderCreate, db: Session = Depends(get_db)):
    created = order_service.create_order(
        db,
        customer_id=order.customer_id,
        order_type=order.order_type,
        items=order.items,
        notes=order.notes,
    )
    return envelope(created, message="Order created successfully")


@router.get("/orders/{order_id}")
def get_order(order_id: int, db: Session = Depends(get_db)):
    return envelope(order_service.get_order(db, order_id))


@router.patch("/orders/{order_id}")
def update_order(order_id: int, order_update: OrderStatusUpdate, db: Session = Depends(get_db)):
    updated = order_service.update_order_status(db, order_id, order_update.status, order_update.notes)
    return envelope(updated, message="Order updated successfully")


@router.delete("/orders/{order_id}")
def delete_order(order_id: int, db: Session = Depends(get_db)):
    order_service.delete_order(db, order_id)
    return envelope(message="Order deleted successfully")


@router.get("/stats")
def get_stats(db: Session = Depends(get_db)):
    return envelope(reporting.dashboard_stats(db))


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="Restaurant API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def startup_event():
        db = database or Database()
        app.state.database = db
        # Сначала дожидаемся готовности базы данных
        if db.wait_for_db():
            logger.info("Creating database tables...")
            db.create_all()
            logger.info("Database initialized")
        else:
            logger.error("Database did not become ready during startup")

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.database.dispose()

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.error} ({exc.message})")
        return error_response(exc.status_code, exc.error, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(400, _describe_validation_error(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error on {request.method} {request.url.path}")
        return error_response(500, "Internal server error", str(exc))

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("API_HOST", "0.0.0.0"), port=int(os.getenv("API_PORT", "8000")))
