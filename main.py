import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from pymongo import MongoClient
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts import Accounts
from catalog import Products, Stores
from dashboard import Dashboard
from database import DATABASE_NAME, connect, ensure_indexes, get_database
from errors import AppError, InternalError, ValidationError, failure, success
from ledger import OrderLedger
from schemas import (
    LoginRequest,
    NoteIn,
    OrderIn,
    ProductIn,
    ProductUpdate,
    RegisterRequest,
    StatusUpdate,
    StoreIn,
)
from security import SECRET_KEY, AccessGate

APP_ENV = os.getenv("APP_ENV", "development")

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)
router = APIRouter()


# Dependencies
def get_db(request: Request) -> Database:
    return request.app.state.db


def get_gate(request: Request, db: Database = Depends(get_db)) -> AccessGate:
    return AccessGate(db, request.app.state.secret)


def get_current_vendor(token: Optional[str] = Depends(oauth2_scheme), gate: AccessGate = Depends(get_gate)) -> dict:
    return gate.resolve(token)


def get_current_store(vendor: dict = Depends(get_current_vendor), gate: AccessGate = Depends(get_gate)) -> dict:
    return gate.store_for(vendor)


def get_products(db: Database = Depends(get_db), store: dict = Depends(get_current_store)) -> Products:
    return Products(db, store)


def get_ledger(db: Database = Depends(get_db), store: dict = Depends(get_current_store)) -> OrderLedger:
    return OrderLedger(db, store)


def get_dashboard(db: Database = Depends(get_db), store: dict = Depends(get_current_store)) -> Dashboard:
    return Dashboard(db, store)


# Routes
@router.get("/")
def root():
    return success({
        "name": "Vendor Backend API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "auth": "/auth",
            "stores": "/stores",
            "products": "/products",
            "orders": "/orders",
            "dashboard": "/dashboard",
        },
    }, "API is running")


@router.get("/health")
def health(request: Request, db: Database = Depends(get_db)):
    info = {"status": "OK", "environment": request.app.state.app_env, "database": "Disconnected"}
    try:
        db.list_collection_names()
        info["database"] = "Connected"
    except Exception as e:
        logger.warning("Health check could not reach the database: %s", e)
    return success(info, "Server is healthy")


# Auth
@router.post("/auth/register", status_code=201)
def register(payload: RegisterRequest, request: Request, db: Database = Depends(get_db)):
    data = Accounts(db, request.app.state.secret).register(payload)
    return success(data, "Vendor registered successfully")


@router.post("/auth/login")
def login(payload: LoginRequest, request: Request, db: Database = Depends(get_db)):
    data = Accounts(db, request.app.state.secret).login(payload)
    return success(data, "Login successful")


@router.get("/auth/me")
def me(vendor: dict = Depends(get_current_vendor)):
    return success({"vendor": Accounts.profile(vendor)})


# Stores
@router.post("/stores", status_code=201)
def create_store(payload: StoreIn, vendor: dict = Depends(get_current_vendor), db: Database = Depends(get_db)):
    return success({"store": Stores(db).create(vendor, payload)}, "Store created successfully")


@router.get("/stores")
def my_store(vendor: dict = Depends(get_current_vendor), db: Database = Depends(get_db)):
    return success({"store": Stores(db).mine(vendor)})


@router.get("/stores/{store_id}")
def get_store(store_id: str, vendor: dict = Depends(get_current_vendor), db: Database = Depends(get_db)):
    return success({"store": Stores(db).get(vendor, store_id)})


@router.put("/stores/{store_id}")
def update_store(store_id: str, payload: StoreIn, vendor: dict = Depends(get_current_vendor), db: Database = Depends(get_db)):
    return success({"store": Stores(db).update(vendor, store_id, payload)}, "Store updated successfully")


# Products
@router.post("/products", status_code=201)
def create_product(payload: ProductIn, products: Products = Depends(get_products)):
    return success({"product": products.create(payload)}, "Product added successfully")


@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    status: Optional[str] = None,
    products: Products = Depends(get_products),
):
    return success(products.list(page, limit, category=category, status=status))


@router.get("/products/{product_id}")
def get_product(product_id: str, products: Products = Depends(get_products)):
    return success({"product": products.get(product_id)})


@router.put("/products/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, products: Products = Depends(get_products)):
    return success({"product": products.update(product_id, payload)}, "Product updated successfully")


@router.delete("/products/{product_id}")
def delete_product(product_id: str, products: Products = Depends(get_products)):
    products.delete(product_id)
    return success(None, "Product deleted successfully")


# Orders
@router.post("/orders", status_code=201)
def create_order(payload: OrderIn, ledger: OrderLedger = Depends(get_ledger)):
    return success({"order": ledger.create(payload)}, "Order created successfully")


@router.get("/orders")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    ledger: OrderLedger = Depends(get_ledger),
):
    return success(ledger.list(page, limit, status=status))


@router.get("/orders/{order_id}")
def get_order(order_id: str, ledger: OrderLedger = Depends(get_ledger)):
    return success({"order": ledger.get(order_id)})


@router.put("/orders/{order_id}/status")
def update_order_status(order_id: str, payload: StatusUpdate, ledger: OrderLedger = Depends(get_ledger)):
    return success({"order": ledger.update_status(order_id, payload.status)}, "Order status updated successfully")


@router.post("/orders/{order_id}/notes", status_code=201)
def add_order_note(order_id: str, payload: NoteIn, ledger: OrderLedger = Depends(get_ledger)):
    return success({"note": ledger.add_note(order_id, payload)}, "Note added successfully")


@router.get("/orders/{order_id}/notes")
def list_order_notes(order_id: str, ledger: OrderLedger = Depends(get_ledger)):
    return success({"notes": ledger.list_notes(order_id)})


# Dashboard
@router.get("/dashboard/stats")
def dashboard_stats(period: str = "month", dashboard: Dashboard = Depends(get_dashboard)):
    return success(dashboard.stats(period))


@router.get("/dashboard/products")
def dashboard_top_products(limit: int = Query(10, ge=1, le=100), dashboard: Dashboard = Depends(get_dashboard)):
    return success({"top_products": dashboard.top_products(limit)})


@router.get("/dashboard/orders")
def dashboard_recent_orders(limit: int = Query(10, ge=1, le=100), dashboard: Dashboard = Depends(get_dashboard)):
    return success({"recent_orders": dashboard.recent_orders(limit)})


@router.get("/dashboard/sales-chart")
def dashboard_sales_chart(period: str = "month", dashboard: Dashboard = Depends(get_dashboard)):
    return success(dashboard.sales_chart(period))


# Error handlers
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=failure(exc.message, exc.errors))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    message = f"{errors[0]['field']}: {errors[0]['message']}" if errors else ValidationError.message
    return JSONResponse(status_code=ValidationError.status_code, content=failure(message, errors))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=failure(message), headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    errors = None if request.app.state.app_env == "production" else [{"type": type(exc).__name__, "detail": str(exc)}]
    return JSONResponse(status_code=InternalError.status_code, content=failure(InternalError.message, errors))


def create_app(
    client: Optional[MongoClient] = None,
    secret: str = SECRET_KEY,
    database_name: str = DATABASE_NAME,
    app_env: str = APP_ENV,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mongo = client if client is not None else connect()
        app.state.db = get_database(mongo, database_name)
        ensure_indexes(app.state.db)
        logger.info("Connected to MongoDB database %s", database_name)
        yield
        if client is None:
            mongo.close()
            logger.info("MongoDB connection closed")

    app = FastAPI(title="Vendor Backend API", lifespan=lifespan)
    app.state.secret = secret
    app.state.app_env = app_env
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
