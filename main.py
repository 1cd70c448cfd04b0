import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

import crud
from auth import Principal, authenticate, create_token, get_current_user, get_settings, hash_password
from database import check_connection, create_db_engine, create_session_factory, get_db, init_db
from errors import NotFound, StorefrontError, Unauthorized
from logging_config import configure_logging, get_logger
from schemas import (
    AddressIn,
    AddressOut,
    CartItemIn,
    CartItemOut,
    CartItemUpdate,
    LoginIn,
    MessageOut,
    OrderIn,
    OrderOut,
    ProductIn,
    ProductOut,
    ProfileIn,
    ProfileOut,
    SignupIn,
    TokenOut,
    UserOut,
)
from seed import seed_products
from settings import Settings

logger = get_logger("api")

router = APIRouter()


# ----------------------- Error handlers -----------------------
def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code == 404:
        logger.info("%s %s -> 404 %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


def _first_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    err = errors[0]
    if err.get("type") == "value_error" and err.get("ctx", {}).get("error"):
        return str(err["ctx"]["error"])
    field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    return f"{field}: {err['msg']}" if field else err["msg"]


async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = _first_error_message(exc)
    logger.info("%s %s -> 400 %s", request.method, request.url.path, message)
    return _error(400, message)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    settings: Settings = request.app.state.settings
    if settings.is_production:
        return _error(500, "Internal server error")
    return _error(500, "Internal server error", details=str(exc))


# ----------------------- Health -----------------------
@router.get("/")
def root():
    return {"message": "Storefront API running"}


@router.get("/api/health")
def health(request: Request):
    connected = check_connection(request.app.state.engine)
    return {"status": "ok", "database": "connected" if connected else "unavailable"}


# ----------------------- Auth -----------------------
def _issue_session(response: Response, principal: Principal, settings: Settings) -> TokenOut:
    token = create_token(principal, settings)
    response.set_cookie(
        settings.session_cookie,
        token,
        max_age=settings.jwt_expire_days * 24 * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return TokenOut(token=token, user=UserOut.model_validate(principal))


@router.post("/api/auth/signup", response_model=TokenOut, status_code=201)
def signup(
    body: SignupIn,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = crud.create_user(
        db,
        email=body.email,
        password_hash=hash_password(body.password, settings.bcrypt_rounds),
        name=body.name,
    )
    return _issue_session(response, Principal.from_user(user), settings)


@router.post("/api/auth/login", response_model=TokenOut)
def login(
    body: LoginIn,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = authenticate(db, body.email, body.password)
    if user is None:
        logger.info("Failed login for %s", body.email)
        raise Unauthorized("Invalid credentials")
    return _issue_session(response, Principal.from_user(user), settings)


@router.post("/api/auth/logout", response_model=MessageOut)
def logout(response: Response, settings: Settings = Depends(get_settings)):
    response.delete_cookie(settings.session_cookie)
    return {"message": "Signed out"}


@router.get("/api/auth/session", response_model=UserOut)
def session(user: Principal = Depends(get_current_user)):
    return user


# ----------------------- Products -----------------------
@router.get("/api/products", response_model=List[ProductOut])
def list_products(
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    return crud.list_products(db, category=category, search=search)


@router.post("/api/products", response_model=ProductOut, status_code=201)
def create_product(body: ProductIn, db: Session = Depends(get_db)):
    return crud.create_product(db, body.model_dump())


@router.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return crud.get_product(db, product_id)


# ----------------------- Cart -----------------------
@router.get("/api/cart", response_model=List[CartItemOut])
def list_cart(user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.list_cart_items(db, user.id)


@router.post("/api/cart", response_model=CartItemOut, status_code=201)
def add_to_cart(body: CartItemIn, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.add_to_cart(db, user.id, body.product_id, body.quantity)


@router.patch("/api/cart/{item_id}", response_model=CartItemOut)
def update_cart_item(
    item_id: str,
    body: CartItemUpdate,
    user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.update_cart_item(db, user.id, item_id, body.quantity)


@router.delete("/api/cart/{item_id}", response_model=MessageOut)
def remove_cart_item(item_id: str, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    crud.delete_cart_item(db, user.id, item_id)
    return {"message": "Cart item removed"}


# ----------------------- Addresses -----------------------
@router.get("/api/addresses", response_model=List[AddressOut])
def list_addresses(user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.list_addresses(db, user.id)


@router.post("/api/addresses", response_model=AddressOut, status_code=201)
def create_address(body: AddressIn, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.create_address(db, user.id, body.model_dump())


@router.get("/api/addresses/{address_id}", response_model=AddressOut)
def get_address(address_id: str, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_address(db, user.id, address_id)


@router.put("/api/addresses/{address_id}", response_model=AddressOut)
def update_address(
    address_id: str,
    body: AddressIn,
    user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.update_address(db, user.id, address_id, body.model_dump())


@router.delete("/api/addresses/{address_id}", response_model=MessageOut)
def delete_address(address_id: str, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    crud.delete_address(db, user.id, address_id)
    return {"message": "Address deleted successfully"}


# ----------------------- Orders -----------------------
@router.get("/api/orders", response_model=List[OrderOut])
def list_orders(user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.list_orders(db, user.id)


@router.post("/api/orders", response_model=OrderOut, status_code=201)
def create_order(body: OrderIn, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.create_order_from_cart(db, user.id, body.shipping_address_id)


@router.get("/api/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.get_order(db, user.id, order_id)


# ----------------------- Profile -----------------------
@router.get("/api/profile", response_model=ProfileOut)
def get_profile(user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = crud.get_user(db, user.id)
    if profile is None:
        raise NotFound("User not found")
    return profile


@router.put("/api/profile", response_model=ProfileOut)
def update_profile(body: ProfileIn, user: Principal = Depends(get_current_user), db: Session = Depends(get_db)):
    return crud.update_profile(db, user.id, name=body.name, email=body.email)


# ----------------------- App factory -----------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    if app.state.settings.seed_products:
        with app.state.session_factory() as db:
            seed_products(db)
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Storefront API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = create_db_engine(settings.database_url)
    app.state.session_factory = create_session_factory(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
