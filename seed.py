"""Sample catalogue loaded into an empty products table."""
from sqlalchemy.orm import Session

import crud
from logging_config import get_logger
from models import Product

logger = get_logger("seed")

SAMPLE_PRODUCTS = [
    {
        "name": "Wireless Bluetooth Headphones",
        "description": "High-quality wireless headphones with noise cancellation and 30-hour battery life.",
        "price": 99.99,
        "image": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=400&h=400&fit=crop",
        "category": "Electronics",
        "stock": 50,
    },
    {
        "name": "Smart Fitness Watch",
        "description": "Fitness tracker with heart rate monitoring, GPS and water resistance.",
        "price": 199.99,
        "image": "https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=400&h=400&fit=crop",
        "category": "Electronics",
        "stock": 30,
    },
    {
        "name": "Organic Cotton T-Shirt",
        "description": "Comfortable t-shirt made from 100% organic cotton.",
        "price": 29.99,
        "image": "https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=400&h=400&fit=crop",
        "category": "Clothing",
        "stock": 100,
    },
    {
        "name": "Leather Crossbody Bag",
        "description": "Everyday leather bag with multiple compartments and an adjustable strap.",
        "price": 79.99,
        "image": "https://images.unsplash.com/photo-1548036328-c9fa89d128fa?w=400&h=400&fit=crop",
        "category": "Fashion",
        "stock": 25,
    },
    {
        "name": "Stainless Steel Water Bottle",
        "description": "Keeps drinks cold for 24 hours or hot for 12 hours.",
        "price": 24.99,
        "image": "https://images.unsplash.com/photo-1602143407151-7111542de6e8?w=400&h=400&fit=crop",
        "category": "Home & Garden",
        "stock": 75,
    },
    {
        "name": "Wireless Charging Pad",
        "description": "Fast charging pad for Qi-enabled devices with LED indicator.",
        "price": 39.99,
        "image": "https://images.unsplash.com/photo-1609592806596-b43bada6f5e3?w=400&h=400&fit=crop",
        "category": "Electronics",
        "stock": 40,
    },
    {
        "name": "Yoga Mat",
        "description": "Non-slip yoga mat made from eco-friendly materials.",
        "price": 49.99,
        "image": "https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?w=400&h=400&fit=crop",
        "category": "Sports",
        "stock": 60,
    },
    {
        "name": "Ceramic Coffee Mug Set",
        "description": "Set of 4 handcrafted ceramic mugs with matching saucers.",
        "price": 34.99,
        "image": "https://images.unsplash.com/photo-1513558161293-cdaf765ed2fd?w=400&h=400&fit=crop",
        "category": "Home & Garden",
        "stock": 45,
    },
]


def seed_products(db: Session) -> int:
    """Insert the sample products if there are none. Returns how many were added."""
    if db.query(Product).count() > 0:
        return 0
    for p in SAMPLE_PRODUCTS:
        crud.create_product(db, p)
    logger.info("Seeded %s sample products", len(SAMPLE_PRODUCTS))
    return len(SAMPLE_PRODUCTS)
