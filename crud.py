"""
Data access layer: queries and mutations over the storefront tables.

Every function takes the request's Session first. Functions that mutate
commit their own transaction; the multi-statement ones (default address
switching, checkout) do all their writes in a single commit and roll back
on any failure.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from errors import Conflict, NotFound, ValidationFailed
from logging_config import get_logger
from models import Address, CartItem, Order, OrderItem, OrderStatus, Product, Role, User

logger = get_logger("crud")

DEFAULT_ADDRESS_CONFLICT = "Another default address was set at the same time, please retry"


def _commit(db: Session, conflict: Optional[str] = None) -> None:
    """Commit or roll back. With `conflict`, a constraint violation becomes Conflict(conflict)."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if conflict is None:
            raise
        logger.warning("Commit rejected by a constraint: %s", e.orig)
        raise Conflict(conflict) from e
    except Exception:
        db.rollback()
        raise


def upsert(db: Session, model, values: Dict[str, Any]):
    """Insert or update one row keyed by primary key. Does not commit."""
    return db.merge(model(**values))


# ----------------------- Users -----------------------
def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def _email_taken(db: Session, email: str, exclude_id: str) -> bool:
    return db.query(User.id).filter(User.email == email, User.id != exclude_id).first() is not None


def create_user(
    db: Session,
    email: str,
    password_hash: Optional[str],
    name: Optional[str] = None,
    role: Role = Role.USER,
) -> User:
    if get_user_by_email(db, email) is not None:
        raise Conflict("Email already registered")
    user = User(email=email, name=name, password=password_hash, role=role)
    db.add(user)
    # The unique index still catches a signup racing past the check above
    _commit(db, conflict="Email already registered")
    db.refresh(user)
    logger.info("Created user %s", user.id)
    return user


def update_profile(db: Session, user_id: str, name: str, email: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    if _email_taken(db, email, exclude_id=user_id):
        raise Conflict("Email already in use")
    user.name = name
    user.email = email
    _commit(db, conflict="Email already in use")
    db.refresh(user)
    return user


# ----------------------- Products -----------------------
def list_products(db: Session, category: Optional[str] = None, search: Optional[str] = None) -> List[Product]:
    query = db.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    return query.order_by(Product.created_at.desc()).all()


def get_product(db: Session, product_id: str) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def create_product(db: Session, data: Dict[str, Any]) -> Product:
    product = Product(**data)
    db.add(product)
    _commit(db)
    db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


# ----------------------- Addresses -----------------------
def list_addresses(db: Session, user_id: str) -> List[Address]:
    return (
        db.query(Address)
        .filter(Address.user_id == user_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
        .all()
    )


def get_address(db: Session, user_id: str, address_id: str) -> Address:
    """Load an address owned by user_id; anybody else's address is NotFound."""
    address = db.query(Address).filter(Address.id == address_id, Address.user_id == user_id).first()
    if address is None:
        raise NotFound("Address not found")
    return address


def _lock_user(db: Session, user_id: str) -> None:
    # Serializes default switching per user; a no-op on SQLite, which locks the whole file
    db.query(User.id).filter(User.id == user_id).with_for_update().first()


def _clear_default(db: Session, user_id: str, keep_id: Optional[str] = None) -> None:
    stmt = update(Address).where(Address.user_id == user_id, Address.is_default.is_(True))
    if keep_id is not None:
        stmt = stmt.where(Address.id != keep_id)
    db.execute(stmt.values(is_default=False))


def create_address(db: Session, user_id: str, data: Dict[str, Any]) -> Address:
    try:
        if data.get("is_default"):
            _lock_user(db, user_id)
            _clear_default(db, user_id)
        address = Address(user_id=user_id, **data)
        db.add(address)
    except Exception:
        db.rollback()
        raise
    _commit(db, conflict=DEFAULT_ADDRESS_CONFLICT)
    db.refresh(address)
    logger.info("Created address %s for user %s (default=%s)", address.id, user_id, address.is_default)
    return address


def update_address(db: Session, user_id: str, address_id: str, data: Dict[str, Any]) -> Address:
    try:
        if data.get("is_default"):
            # Clear before the ownership read; the write lock must come first
            _lock_user(db, user_id)
            _clear_default(db, user_id, keep_id=address_id)
        address = get_address(db, user_id, address_id)
        for key, value in data.items():
            setattr(address, key, value)
    except Exception:
        db.rollback()
        raise
    _commit(db, conflict=DEFAULT_ADDRESS_CONFLICT)
    db.refresh(address)
    return address


def delete_address(db: Session, user_id: str, address_id: str) -> None:
    address = get_address(db, user_id, address_id)
    db.delete(address)
    _commit(db)
    logger.info("Deleted address %s for user %s", address_id, user_id)


# ----------------------- Cart -----------------------
def list_cart_items(db: Session, user_id: str) -> List[CartItem]:
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.created_at.asc())
        .all()
    )


def get_cart_item(db: Session, user_id: str, item_id: str) -> CartItem:
    item = (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.id == item_id)
        .first()
    )
    if item is None:
        raise NotFound("Cart item not found")
    if item.user_id != user_id:
        logger.warning("User %s tried to access cart item %s owned by another user", user_id, item_id)
        raise NotFound("Cart item not found")
    return item


def _find_cart_line(db: Session, user_id: str, product_id: str) -> Optional[CartItem]:
    return (
        db.query(CartItem)
        .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
        .first()
    )


def add_to_cart(db: Session, user_id: str, product_id: str, quantity: int = 1) -> CartItem:
    """Upsert on (user, product): an existing line has its quantity increased."""
    get_product(db, product_id)
    item = _find_cart_line(db, user_id, product_id)
    if item is None:
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(item)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent add inserted the line first; add to that one
            db.rollback()
            item = _find_cart_line(db, user_id, product_id)
            if item is None:
                raise
            logger.info("Cart line %s was created concurrently, incrementing it", item.id)
            item.quantity = CartItem.quantity + quantity
            _commit(db)
    else:
        # Evaluated in the UPDATE so concurrent adds both count
        item.quantity = CartItem.quantity + quantity
        _commit(db)
    return get_cart_item(db, user_id, item.id)


def update_cart_item(db: Session, user_id: str, item_id: str, quantity: int) -> CartItem:
    # No stock check, stock is informational
    item = get_cart_item(db, user_id, item_id)
    item.quantity = quantity
    _commit(db)
    return get_cart_item(db, user_id, item_id)


def delete_cart_item(db: Session, user_id: str, item_id: str) -> None:
    item = get_cart_item(db, user_id, item_id)
    db.delete(item)
    _commit(db)


# ----------------------- Orders -----------------------
def _orders_query(db: Session):
    return db.query(Order).options(selectinload(Order.order_items).joinedload(OrderItem.product))


def list_orders(db: Session, user_id: str) -> List[Order]:
    return _orders_query(db).filter(Order.user_id == user_id).order_by(Order.created_at.desc()).all()


def get_order(db: Session, user_id: str, order_id: str) -> Order:
    order = _orders_query(db).filter(Order.id == order_id, Order.user_id == user_id).first()
    if order is None:
        raise NotFound("Order not found")
    return order


def create_order_from_cart(db: Session, user_id: str, shipping_address_id: Optional[str]) -> Order:
    """
    Check out the user's cart.

    Creates the order with one line per cart item (unit price captured now)
    and deletes those cart items, all in one transaction. If some of the
    lines are already gone when the delete runs, nothing is written and
    Conflict is raised.
    """
    if not shipping_address_id:
        raise ValidationFailed("Shipping address is required")

    address = (
        db.query(Address)
        .filter(Address.id == shipping_address_id, Address.user_id == user_id)
        .first()
    )
    if address is None:
        raise ValidationFailed("Invalid shipping address")

    cart = list_cart_items(db, user_id)
    if not cart:
        raise ValidationFailed("Cart is empty")

    total = round(sum(item.product.price * item.quantity for item in cart), 2)
    order = Order(
        user_id=user_id,
        total=total,
        shipping_address_id=shipping_address_id,
        order_items=[
            OrderItem(product_id=item.product_id, quantity=item.quantity, price=item.product.price)
            for item in cart
        ],
    )
    try:
        db.add(order)
        # Only the lines that went into this order
        deleted = db.query(CartItem).filter(
            CartItem.user_id == user_id,
            CartItem.id.in_([item.id for item in cart]),
        ).delete(synchronize_session=False)
        if deleted != len(cart):
            # Another checkout (or a removal) took these lines after we read them
            logger.warning("Checkout for user %s lost %s of %s cart lines", user_id, len(cart) - deleted, len(cart))
            raise Conflict("Cart changed during checkout, please retry")
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Created order %s for user %s: %s items, total %.2f", order.id, user_id, len(cart), total)
    return get_order(db, user_id, order.id)


def set_order_status(db: Session, order_id: str, status: OrderStatus) -> Order:
    """Storage-only status change; no transition rules are enforced."""
    order = db.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    order.status = status
    _commit(db)
    db.refresh(order)
    return order
