"""
SWIFTBITES ORDERING API
Storefront catalog, checkout, pickup-token orders and the staff queue
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

import uvicorn
from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, config
from .auth import authenticate_admin, create_jwt_token, get_current_admin
from .cart import from_payload, to_payload
from .catalog import CatalogService
from .checkout import CheckoutOrchestrator
from .database import Database, InventoryStore, MenuStore, OrderStore
from .errors import PersistenceError, SwiftBitesError
from .images import ImageStore
from .insights import order_insights
from .inventory import InventoryService
from .notifications import SmsSender
from .order_queue import OrderQueue
from .orders import OrderService
from .payments import StripeGateway
from .schemas import AdminLogin, CheckoutRequest, InventoryCreate, InventoryUpdate, PlaceOrderRequest

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Database.initialize()
    yield
    Database.close()


app = FastAPI(
    title="SwiftBites API",
    description="Pickup ordering with priority tiers and a staff order queue",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SwiftBitesError)
async def swiftbites_error_handler(request: Request, exc: SwiftBitesError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())})


# ============================================
# COLLABORATORS
# ============================================
def get_order_store():
    return OrderStore()


def get_menu_store():
    return MenuStore()


def get_inventory_store():
    return InventoryStore()


@lru_cache(maxsize=1)
def get_image_store():
    return ImageStore()


def get_payment_gateway():
    return StripeGateway()


def get_sms_sender():
    return SmsSender()


def get_order_service(
    store=Depends(get_order_store),
    menu_store=Depends(get_menu_store),
    gateway=Depends(get_payment_gateway),
    sms=Depends(get_sms_sender),
):
    return OrderService(store, menu_store=menu_store, gateway=gateway, sms=sms)


def get_checkout(
    gateway=Depends(get_payment_gateway),
    order_service=Depends(get_order_service),
):
    return CheckoutOrchestrator(gateway, order_service)


def get_order_queue(store=Depends(get_order_store)):
    return OrderQueue(store)


def get_catalog(store=Depends(get_menu_store), images=Depends(get_image_store)):
    return CatalogService(store, images)


def get_inventory(store=Depends(get_inventory_store)):
    return InventoryService(store)


# ============================================
# PUBLIC ENDPOINTS
# ============================================
@app.get("/")
def root():
    return {
        "app": "SwiftBites Ordering API",
        "version": __version__,
        "endpoints": [
            "/menu - GET - List menu items",
            "/api/checkout - POST - Pay and place an order",
            "/place-order - POST - Record a paid order",
            "/login - POST - Admin login",
            "/api/orders - GET - Staff order queue",
        ]
    }


@app.post("/login")
def login(credentials: AdminLogin):
    if not authenticate_admin(credentials.username, credentials.password):
        raise HTTPException(status_code=401, detail="Invalid admin credentials.")
    token = create_jwt_token({"sub": credentials.username, "role": "admin"})
    return {"token": token}


@app.get("/check-auth")
def check_auth(admin: dict = Depends(get_current_admin)):
    return {"authenticated": True, "user": admin["email"]}


@app.get("/get-payment-key")
def get_payment_key():
    return {"key": config.STRIPE_PUBLIC_KEY}


@app.get("/api/s3-config")
def s3_config():
    return {"bucketName": config.S3_BUCKET_NAME, "region": config.AWS_REGION}


@app.get("/menu")
def list_menu(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_items()


@app.post("/api/checkout")
def checkout(
    payload: CheckoutRequest,
    background_tasks: BackgroundTasks,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout),
):
    """Charge the cart total and place the order; the cart comes back empty on success."""
    cart = from_payload([line.model_dump() for line in payload.items], payload.priority_fee)
    try:
        result = orchestrator.submit(
            cart, payload.phone, payload.payment_token, schedule=background_tasks.add_task
        )
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Error placing order.")

    return {
        "success": True,
        "token": result.token,
        "orderId": result.order_id,
        "paymentId": result.payment_id,
        "message": result.message,
        "cart": to_payload(result.cart),
    }


@app.post("/place-order")
def place_order(
    payload: PlaceOrderRequest,
    background_tasks: BackgroundTasks,
    service: OrderService = Depends(get_order_service),
):
    cart = [line.model_dump() for line in payload.cart] if payload.cart else None
    return service.place_order(
        cart,
        payload.phone,
        payload.payment_id,
        priority_level=payload.priority_level,
        schedule=background_tasks.add_task,
    )


# ============================================
# ADMIN: ORDER QUEUE
# ============================================
@app.get("/api/orders")
def list_orders(
    queue: OrderQueue = Depends(get_order_queue),
    admin: dict = Depends(get_current_admin),
):
    return queue.list_orders()


@app.get("/api/orders/token/{token}")
def order_by_token(
    token: str,
    queue: OrderQueue = Depends(get_order_queue),
    admin: dict = Depends(get_current_admin),
):
    return queue.get_by_token(token)


@app.post("/mark-prepared/{order_id}")
def mark_prepared(
    order_id: int,
    queue: OrderQueue = Depends(get_order_queue),
    admin: dict = Depends(get_current_admin),
):
    order = queue.mark_prepared(order_id)
    return {"message": "Order marked as prepared.", "order": order}


@app.post("/mark-pickedup/{order_id}")
def mark_picked_up(
    order_id: int,
    queue: OrderQueue = Depends(get_order_queue),
    admin: dict = Depends(get_current_admin),
):
    order = queue.mark_picked_up(order_id)
    return {"message": "Order marked as picked up.", "order": order}


@app.get("/api/order-insights")
def insights(
    store=Depends(get_order_store),
    admin: dict = Depends(get_current_admin),
):
    orders = sorted(store.list_orders(), key=lambda order: order["id"], reverse=True)
    return {"insights": order_insights(orders)}


# ============================================
# ADMIN: MENU
# ============================================
def _upload(image_file: Optional[UploadFile]):
    if image_file is None or not image_file.filename:
        return None
    return image_file.file, image_file.filename, image_file.content_type


@app.post("/menu", status_code=201)
def create_menu_item(
    name: str = Form(...),
    price: str = Form(...),
    imageFile: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog),
    admin: dict = Depends(get_current_admin),
):
    return catalog.create_item(name, price, _upload(imageFile))


@app.put("/menu/{item_id}")
def update_menu_item(
    item_id: int,
    name: str = Form(...),
    price: str = Form(...),
    clearImage: str = Form("false"),
    imageFile: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog),
    admin: dict = Depends(get_current_admin),
):
    return catalog.update_item(
        item_id, name, price,
        upload=_upload(imageFile),
        clear_image=clearImage.lower() == "true",
    )


@app.delete("/menu/{item_id}", status_code=204)
def delete_menu_item(
    item_id: int,
    catalog: CatalogService = Depends(get_catalog),
    admin: dict = Depends(get_current_admin),
):
    catalog.delete_item(item_id)
    return Response(status_code=204)


# ============================================
# ADMIN: INVENTORY
# ============================================
@app.get("/api/inventory")
def list_inventory(
    inventory: InventoryService = Depends(get_inventory),
    admin: dict = Depends(get_current_admin),
):
    return inventory.list_items()


@app.post("/api/inventory", status_code=201)
def add_inventory_item(
    payload: InventoryCreate,
    inventory: InventoryService = Depends(get_inventory),
    admin: dict = Depends(get_current_admin),
):
    return inventory.add_item(payload.name, payload.price, payload.quantity)


@app.put("/api/inventory/{item_id}")
def update_inventory_item(
    item_id: int,
    payload: InventoryUpdate,
    inventory: InventoryService = Depends(get_inventory),
    admin: dict = Depends(get_current_admin),
):
    return inventory.update_item(item_id, payload.name, payload.price, payload.quantity)


@app.delete("/api/inventory/{item_id}")
def delete_inventory_item(
    item_id: int,
    inventory: InventoryService = Depends(get_inventory),
    admin: dict = Depends(get_current_admin),
):
    return inventory.delete_item(item_id)


def run():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting SwiftBites server on http://localhost:%s", config.PORT)
    uvicorn.run("swiftbites.main:app", host="0.0.0.0", port=config.PORT)


if __name__ == "__main__":
    run()
