from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from fastapi import FastAPI, Request, Form, Depends, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from sqlmodel import select

from . import order_service, product_service, reports, reservation_service
from .config import APP_NAME, LOG_LEVEL, ADMIN_BOOTSTRAP_USERNAME, ADMIN_BOOTSTRAP_PASSWORD
from .db import init_db, get_session
from .errors import RestaurantError, ValidationError, InvalidTransition, ProductUnavailable, NotFound
from .models import User, Order, OrderStatus, ReservationStatus
from .auth import hash_password, authenticate, set_login_cookie, clear_login_cookie, get_user_id_from_request
from .schemas import (
    Availability, AvailabilityUpdate, ItemIn, OrderCreate, OrderRead, OrderStatusUpdate, ProductCreate,
    ProductRead, ProductUpdate, QuantityUpdate, ReservationCreate, ReservationRead, ReservationStatusUpdate,
    TableAssignment,
)
from .utils import fmt_dt, soles, status_label, now_utc

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME)
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals.update(app_name=APP_NAME, fmt_dt=fmt_dt, soles=soles, status_label=status_label)

ERROR_STATUS = {
    ValidationError: 400,
    ProductUnavailable: 409,
    InvalidTransition: 409,
    NotFound: 404,
}

@app.exception_handler(RestaurantError)
def restaurant_error_handler(request: Request, exc: RestaurantError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    return JSONResponse({"error": exc.kind, "detail": exc.message}, status_code=status_code)

def flash(request: Request) -> dict | None:
    # simple flash via query params ?ok=... or ?err=...
    if request.query_params.get("ok"):
        return {"kind": "ok", "message": request.query_params["ok"]}
    if request.query_params.get("err"):
        return {"kind": "error", "message": request.query_params["err"]}
    return None

def ensure_bootstrap_admin() -> None:
    with get_session() as session:
        existing = session.exec(select(User).where(User.username == ADMIN_BOOTSTRAP_USERNAME)).first()
        if not existing:
            admin = User(
                username=ADMIN_BOOTSTRAP_USERNAME,
                full_name="Restaurant manager (bootstrap)",
                password_hash=hash_password(ADMIN_BOOTSTRAP_PASSWORD),
                is_admin=True,
            )
            session.add(admin)
            session.commit()
            logger.info("Bootstrap admin '%s' created", ADMIN_BOOTSTRAP_USERNAME)

@app.on_event("startup")
def on_startup() -> None:
    init_db()
    ensure_bootstrap_admin()

def get_current_user(request: Request) -> User | None:
    uid = get_user_id_from_request(request)
    if not uid:
        return None
    with get_session() as session:
        return session.get(User, uid)

def require_admin(request: Request) -> User:
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user

def order_out(order: Order) -> OrderRead:
    # must run while the session is open, items load lazily
    return OrderRead.model_validate(order)

# ---- Login ----

@app.get("/")
def index(request: Request):
    if get_current_user(request):
        return RedirectResponse("/admin", status_code=302)
    return RedirectResponse("/login", status_code=302)

@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"current_user": None, "flash": flash(request)})

@app.post("/login")
def login(request: Request, username: str = Form(...), password: str = Form(...)):
    with get_session() as session:
        user = authenticate(session, username, password)
    if not user:
        logger.warning("Failed login for '%s'", username)
        return RedirectResponse("/login?err=Invalid+credentials", status_code=302)

    response = RedirectResponse("/admin", status_code=302)
    set_login_cookie(response, user)
    return response

@app.get("/logout")
def logout():
    response = RedirectResponse("/login?ok=Logged+out", status_code=302)
    clear_login_cookie(response)
    return response

# ---- Public API ----

@app.get("/api/products", response_model=list[ProductRead])
def public_products(
    category: Optional[str] = None,
    q: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
):
    with get_session() as session:
        if category:
            products = product_service.products_by_category(session, category)
        elif q:
            products = product_service.search_products(session, q)
        elif min_price is not None or max_price is not None:
            products = product_service.products_in_price_range(
                session, min_price or Decimal("0"), max_price if max_price is not None else Decimal("99999999.99")
            )
        else:
            products = product_service.list_products(session, only_available=True)
        return [ProductRead.model_validate(p) for p in products]

@app.get("/api/products/categories")
def public_categories():
    with get_session() as session:
        categories = product_service.list_categories(session)
        return {c: product_service.count_by_category(session, c) for c in categories}

def _item_requests(items: list[ItemIn]) -> list[order_service.ItemRequest]:
    return [order_service.ItemRequest(i.product_id, i.quantity, i.notes) for i in items]

@app.post("/api/orders", response_model=OrderRead, status_code=201)
def place_order(data: OrderCreate):
    with get_session() as session:
        order = order_service.create_order(
            session,
            customer_name=data.customer_name,
            items=_item_requests(data.items),
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            table_number=data.table_number,
            notes=data.notes,
        )
        return order_out(order)

@app.get("/api/orders/by-number/{number}", response_model=OrderRead)
def order_by_number(number: str):
    with get_session() as session:
        return order_out(order_service.get_order_by_number(session, number))

@app.post("/api/reservations", response_model=ReservationRead, status_code=201)
def request_reservation(data: ReservationCreate):
    with get_session() as session:
        reservation = reservation_service.create_reservation(
            session,
            customer_name=data.customer_name,
            on_date=data.reserved_date,
            at_time=data.reserved_time,
            party_size=data.party_size,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            table_number=data.table_number,
            notes=data.notes,
        )
        return ReservationRead.model_validate(reservation)

@app.get("/api/availability", response_model=Availability)
def availability(reserved_date: date, reserved_time: time, table_number: Optional[int] = None):
    with get_session() as session:
        conflicts = reservation_service.count_conflicts(session, table_number, reserved_date, reserved_time)
    return Availability(
        table_number=table_number,
        reserved_date=reserved_date,
        reserved_time=reserved_time,
        conflicts=conflicts,
        available=conflicts == 0,
    )

# ---- Admin API: products ----

@app.get("/api/admin/products", response_model=list[ProductRead])
def admin_products(recent: bool = False, admin: User = Depends(require_admin)):
    with get_session() as session:
        products = product_service.recent_products(session) if recent else product_service.list_products(session)
        return [ProductRead.model_validate(p) for p in products]

@app.post("/api/admin/products", response_model=ProductRead, status_code=201)
def admin_create_product(data: ProductCreate, admin: User = Depends(require_admin)):
    with get_session() as session:
        product = product_service.create_product(session, **data.model_dump())
        return ProductRead.model_validate(product)

@app.patch("/api/admin/products/{product_id}", response_model=ProductRead)
def admin_update_product(product_id: int, data: ProductUpdate, admin: User = Depends(require_admin)):
    with get_session() as session:
        product = product_service.update_product(session, product_id, **data.model_dump(exclude_unset=True))
        return ProductRead.model_validate(product)

@app.post("/api/admin/products/{product_id}/availability", response_model=ProductRead)
def admin_product_availability(product_id: int, data: AvailabilityUpdate, admin: User = Depends(require_admin)):
    with get_session() as session:
        product = product_service.set_product_availability(session, product_id, data.available)
        return ProductRead.model_validate(product)

# ---- Admin API: orders ----

@app.get("/api/admin/orders", response_model=list[OrderRead])
def admin_orders(
    status: Optional[OrderStatus] = None,
    active: bool = False,
    today: bool = False,
    email: Optional[str] = None,
    q: Optional[str] = None,
    table_number: Optional[int] = None,
    min_total: Optional[Decimal] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    admin: User = Depends(require_admin),
):
    with get_session() as session:
        if status is not None:
            orders = order_service.orders_by_status(session, status)
        elif active:
            orders = order_service.active_orders(session)
        elif today:
            orders = order_service.orders_for_day(session)
        elif email:
            orders = order_service.orders_for_email(session, email)
        elif q:
            orders = order_service.search_orders(session, q)
        elif table_number is not None:
            orders = order_service.orders_for_table(session, table_number)
        elif min_total is not None:
            orders = order_service.orders_over(session, min_total)
        elif start is not None or end is not None:
            orders = order_service.orders_in_range(session, start, end)
        else:
            orders = session.exec(select(Order).order_by(Order.ordered_at.desc()).limit(100)).all()
        return [order_out(o) for o in orders]

@app.get("/api/admin/orders/stats")
def admin_order_stats(admin: User = Depends(require_admin)):
    with get_session() as session:
        return reports.order_stats(session)

@app.get("/api/admin/orders/daily-stats")
def admin_order_daily_stats(since: Optional[date] = None, admin: User = Depends(require_admin)):
    since = since or (now_utc().date() - timedelta(days=30))
    with get_session() as session:
        return reports.order_daily_stats(session, since)

@app.get("/api/admin/orders/{order_id}", response_model=OrderRead)
def admin_order(order_id: int, admin: User = Depends(require_admin)):
    with get_session() as session:
        return order_out(order_service.get_order(session, order_id))

@app.post("/api/admin/orders/{order_id}/status", response_model=OrderRead)
def admin_order_status(order_id: int, data: OrderStatusUpdate, admin: User = Depends(require_admin)):
    with get_session() as session:
        return order_out(order_service.change_order_status(session, order_id, data.status))

@app.post("/api/admin/orders/{order_id}/items", response_model=OrderRead)
def admin_add_item(order_id: int, data: ItemIn, admin: User = Depends(require_admin)):
    with get_session() as session:
        order = order_service.add_item_to_order(session, order_id, _item_requests([data])[0])
        return order_out(order)

@app.patch("/api/admin/orders/{order_id}/items/{item_id}", response_model=OrderRead)
def admin_item_quantity(order_id: int, item_id: int, data: QuantityUpdate, admin: User = Depends(require_admin)):
    with get_session() as session:
        return order_out(order_service.update_item_quantity(session, order_id, item_id, data.quantity))

# ---- Admin API: reservations ----

@app.get("/api/admin/reservations", response_model=list[ReservationRead])
def admin_reservations(
    on_date: Optional[date] = None,
    status: Optional[ReservationStatus] = None,
    active: bool = False,
    today: bool = False,
    email: Optional[str] = None,
    q: Optional[str] = None,
    table_number: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    admin: User = Depends(require_admin),
):
    with get_session() as session:
        if table_number is not None and on_date is not None:
            reservations = reservation_service.reservations_for_table(session, table_number, on_date)
        elif on_date is not None:
            reservations = reservation_service.reservations_for_date(session, on_date)
        elif status is not None:
            reservations = reservation_service.reservations_by_status(session, status)
        elif active:
            reservations = reservation_service.active_reservations(session)
        elif today:
            reservations = reservation_service.reservations_for_today(session)
        elif email:
            reservations = reservation_service.reservations_for_email(session, email)
        elif q:
            reservations = reservation_service.search_reservations(session, q)
        elif start is not None and end is not None:
            reservations = reservation_service.reservations_in_range(session, start, end)
        else:
            raise ValidationError("Give a date, status, email, search text or date range")
        return [ReservationRead.model_validate(r) for r in reservations]

@app.get("/api/admin/reservations/stats")
def admin_reservation_stats(admin: User = Depends(require_admin)):
    with get_session() as session:
        return reports.reservation_stats(session)

@app.get("/api/admin/reservations/daily-stats")
def admin_reservation_daily_stats(since: Optional[date] = None, admin: User = Depends(require_admin)):
    since = since or now_utc().date()
    with get_session() as session:
        return reports.reservation_daily_stats(session, since)

@app.get("/api/admin/reservations/{reservation_id}", response_model=ReservationRead)
def admin_reservation(reservation_id: int, admin: User = Depends(require_admin)):
    with get_session() as session:
        return ReservationRead.model_validate(reservation_service.get_reservation(session, reservation_id))

@app.post("/api/admin/reservations/{reservation_id}/status", response_model=ReservationRead)
def admin_reservation_status(reservation_id: int, data: ReservationStatusUpdate,
                             admin: User = Depends(require_admin)):
    with get_session() as session:
        reservation = reservation_service.change_reservation_status(session, reservation_id, data.status)
        return ReservationRead.model_validate(reservation)

@app.post("/api/admin/reservations/{reservation_id}/table", response_model=ReservationRead)
def admin_reservation_table(reservation_id: int, data: TableAssignment, admin: User = Depends(require_admin)):
    with get_session() as session:
        reservation = reservation_service.assign_reservation_table(session, reservation_id, data.table_number)
        return ReservationRead.model_validate(reservation)

@app.get("/api/admin/tables/occupied")
def admin_occupied_tables(reserved_date: date, reserved_time: time, admin: User = Depends(require_admin)):
    with get_session() as session:
        return {"tables": reservation_service.occupied_tables(session, reserved_date, reserved_time)}

# ---- Admin pages ----

@app.get("/admin", response_class=HTMLResponse)
def dashboard(request: Request):
    user = get_current_user(request)
    if not user or not user.is_admin:
        return RedirectResponse("/login?err=Please+log+in", status_code=302)

    with get_session() as session:
        orders = order_service.active_orders(session)
        recent = session.exec(select(Order).order_by(Order.ordered_at.desc()).limit(20)).all()
        reservations = reservation_service.active_reservations(session)
        pending = reservation_service.reservations_by_status(session, ReservationStatus.PENDING)
        order_stats = reports.order_stats(session)
        reservation_stats = reports.reservation_stats(session)

        return templates.TemplateResponse(request, "dashboard.html", {
            "current_user": user,
            "active_orders": orders,
            "recent_orders": recent,
            "reservations": pending + reservations,
            "order_stats": order_stats,
            "reservation_stats": reservation_stats,
            "order_statuses": list(OrderStatus),
            "reservation_statuses": list(ReservationStatus),
            "flash": flash(request),
        })

def _back(kind: str, message: str) -> RedirectResponse:
    return RedirectResponse(f"/admin?{kind}={quote_plus(message)}", status_code=302)

@app.post("/admin/orders/{order_id}/status")
def dashboard_order_status(request: Request, order_id: int, status: str = Form(...)):
    user = get_current_user(request)
    if not user or not user.is_admin:
        return RedirectResponse("/login?err=Please+log+in", status_code=302)
    try:
        with get_session() as session:
            order = order_service.change_order_status(session, order_id, OrderStatus(status))
            number = order.number
    except (RestaurantError, ValueError) as e:
        return _back("err", str(e))
    return _back("ok", f"Order {number} updated")

@app.post("/admin/reservations/{reservation_id}/status")
def dashboard_reservation_status(request: Request, reservation_id: int, status: str = Form(...)):
    user = get_current_user(request)
    if not user or not user.is_admin:
        return RedirectResponse("/login?err=Please+log+in", status_code=302)
    try:
        with get_session() as session:
            reservation_service.change_reservation_status(session, reservation_id, ReservationStatus(status))
    except (RestaurantError, ValueError) as e:
        return _back("err", str(e))
    return _back("ok", f"Reservation {reservation_id} updated")

@app.post("/admin/reservations/{reservation_id}/table")
def dashboard_reservation_table(request: Request, reservation_id: int, table_number: int = Form(...)):
    user = get_current_user(request)
    if not user or not user.is_admin:
        return RedirectResponse("/login?err=Please+log+in", status_code=302)
    try:
        with get_session() as session:
            reservation_service.assign_reservation_table(session, reservation_id, table_number)
    except RestaurantError as e:
        return _back("err", str(e))
    return _back("ok", f"Reservation {reservation_id} seated at table {table_number}")

@app.get("/admin/orders/export.csv")
def export_csv(request: Request, status: Optional[OrderStatus] = None):
    user = get_current_user(request)
    if not user or not user.is_admin:
        return RedirectResponse("/login?err=Please+log+in", status_code=302)

    with get_session() as session:
        if status is not None:
            orders = order_service.orders_by_status(session, status)
        else:
            orders = session.exec(select(Order).order_by(Order.ordered_at.desc())).all()
        text = reports.orders_csv(orders)

    return Response(content=text.encode("utf-8"), media_type="text/csv", headers={
        "Content-Disposition": f'attachment; filename="orders_{now_utc():%Y%m%d}.csv"'
    })
