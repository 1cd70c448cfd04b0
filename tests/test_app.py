"""
Tests for the app factory: lifespan hooks and logging setup.
"""

import logging
import warnings

from fastapi.testclient import TestClient

from logging_config import configure_logging, get_logger
from main import create_app
from seed import SAMPLE_PRODUCTS


def test_lifespan_creates_schema_and_seeds(settings):
    settings.seed_products = True
    with warnings.catch_warnings():
        warnings.filterwarnings("error", message=".*on_event.*", category=DeprecationWarning)
        app = create_app(settings)
        with TestClient(app) as c:
            assert c.get("/api/health").json()["database"] == "connected"
            assert len(c.get("/api/products").json()) == len(SAMPLE_PRODUCTS)


def test_log_level_comes_from_settings(settings, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    settings.log_level = "debug"

    create_app(settings)

    assert logging.getLogger("storefront").level == logging.DEBUG
    assert get_logger("crud").getEffectiveLevel() == logging.DEBUG


def test_configure_logging_installs_one_handler():
    configure_logging("INFO")
    configure_logging("WARNING")

    root = get_logger()
    assert root.name == "storefront"
    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
    assert root.propagate is False
