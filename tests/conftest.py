from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from modules.customers.models import Customer
from modules.products.models import Product


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def customer():
    return Customer.objects.create(name="Ana Souza", email="ana@example.com")


@pytest.fixture()
def make_product():
    """Factory for persisted products with sensible defaults."""

    def _make(name="Widget", price="100.00", stock=10, is_active=True, **extra):
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
            is_active=is_active,
            **extra,
        )

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()
