"""Integration tests for order mutations.

Covers:
- PUT/PATCH /api/v1/orders/{id}/ (notes, customer, status).
- PATCH /api/v1/orders/{id}/status/ following the transition table.
- POST /api/v1/orders/{id}/items/ and DELETE /api/v1/orders/{id}/items/{item_id}/.
- DELETE /api/v1/orders/{id}/ restoring stock; delivered orders are kept.
- Finalized orders reject edits (409).
"""

from __future__ import annotations

import uuid

import pytest

from modules.customers.models import Customer
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def order(api_client, customer, product):
    response = api_client.post(
        URL,
        {
            "customer_id": str(customer.id),
            "items": [{"product_id": str(product.id), "quantity": 3}],
        },
        format="json",
    )
    assert response.status_code == 201
    return response.data


def _detail(order) -> str:
    return f"{URL}{order['id']}/"


def _stock(product) -> int:
    return Product.objects.get(pk=product.pk).stock_quantity


def _set_status(api_client, order, *statuses):
    for status in statuses:
        response = api_client.patch(f"{_detail(order)}status/", {"status": status}, format="json")
        assert response.status_code == 200, response.data


class TestUpdateOrder:
    def test_patch_notes(self, api_client, order):
        response = api_client.patch(_detail(order), {"notes": "call first"}, format="json")
        assert response.status_code == 200
        assert response.data["notes"] == "call first"
        assert response.data["total_amount"] == "300.00"

    def test_put_customer(self, api_client, order):
        other = Customer.objects.create(name="Bruno Lima", email="bruno@example.com")
        response = api_client.put(
            _detail(order), {"customer_id": str(other.id)}, format="json"
        )
        assert response.status_code == 200
        assert response.data["customer_name"] == "Bruno Lima"

    def test_unknown_customer(self, api_client, order):
        response = api_client.patch(
            _detail(order), {"customer_id": str(uuid.uuid4())}, format="json"
        )
        assert response.status_code == 404

    def test_status_via_update(self, api_client, order):
        response = api_client.patch(_detail(order), {"status": "APPROVED"}, format="json")
        assert response.status_code == 200
        assert response.data["status"] == "APPROVED"

    def test_invalid_transition_via_update(self, api_client, order):
        response = api_client.patch(_detail(order), {"status": "DELIVERED"}, format="json")
        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "invalid_order_status"

    def test_finalized_order_rejects_update(self, api_client, order):
        _set_status(api_client, order, "CANCELLED")
        response = api_client.patch(_detail(order), {"notes": "too late"}, format="json")
        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "order_finalized"

    def test_missing_order(self, api_client):
        response = api_client.patch(f"{URL}{uuid.uuid4()}/", {"notes": "x"}, format="json")
        assert response.status_code == 404


class TestChangeStatus:
    def test_full_lifecycle(self, api_client, order, product):
        _set_status(api_client, order, "APPROVED", "DELIVERED")
        assert api_client.get(_detail(order)).data["status"] == "DELIVERED"
        assert _stock(product) == 7

    def test_lowercase_status_rejected(self, api_client, order):
        response = api_client.patch(f"{_detail(order)}status/", {"status": "approved"}, format="json")
        assert response.status_code == 400

    def test_invalid_transition(self, api_client, order):
        response = api_client.patch(f"{_detail(order)}status/", {"status": "DELIVERED"}, format="json")
        assert response.status_code == 409
        assert response.data["errors"][0]["meta"] == {
            "current": "PENDING",
            "requested": "DELIVERED",
        }

    def test_terminal_state_is_final(self, api_client, order):
        _set_status(api_client, order, "CANCELLED")
        response = api_client.patch(f"{_detail(order)}status/", {"status": "PENDING"}, format="json")
        assert response.status_code == 409

    def test_cancel_keeps_stock_reserved(self, api_client, order, product):
        _set_status(api_client, order, "CANCELLED")
        assert _stock(product) == 7


class TestItems:
    def test_add_item(self, api_client, order, make_product):
        gadget = make_product(name="Gadget", price="15.00", stock=5)
        response = api_client.post(
            f"{_detail(order)}items/",
            {"product_id": str(gadget.id), "quantity": 2},
            format="json",
        )
        assert response.status_code == 201
        assert response.data["subtotal"] == "30.00"
        assert response.data["product_name"] == "Gadget"
        assert _stock(gadget) == 3
        assert api_client.get(_detail(order)).data["total_amount"] == "330.00"

    def test_add_item_insufficient_stock(self, api_client, order, product):
        response = api_client.post(
            f"{_detail(order)}items/",
            {"product_id": str(product.id), "quantity": 8},
            format="json",
        )
        assert response.status_code == 409
        assert response.data["errors"][0]["meta"]["available"] == 7
        assert _stock(product) == 7

    def test_add_item_invalid_payload(self, api_client, order):
        response = api_client.post(f"{_detail(order)}items/", {"quantity": 1}, format="json")
        assert response.status_code == 400

    def test_remove_item(self, api_client, order, product):
        item_id = order["items"][0]["id"]
        response = api_client.delete(f"{_detail(order)}items/{item_id}/")

        assert response.status_code == 204
        assert _stock(product) == 10
        detail = api_client.get(_detail(order)).data
        assert detail["items"] == []
        assert detail["total_amount"] == "0.00"

    def test_remove_unknown_item(self, api_client, order):
        response = api_client.delete(f"{_detail(order)}items/{uuid.uuid4()}/")
        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "order_item_not_found"

    def test_finalized_order_rejects_item_changes(self, api_client, order, product):
        _set_status(api_client, order, "APPROVED", "DELIVERED")
        add = api_client.post(
            f"{_detail(order)}items/",
            {"product_id": str(product.id), "quantity": 1},
            format="json",
        )
        remove = api_client.delete(f"{_detail(order)}items/{order['items'][0]['id']}/")
        assert add.status_code == 409
        assert remove.status_code == 409
        assert _stock(product) == 7


class TestDeleteOrder:
    def test_delete_restores_stock(self, api_client, order, product):
        response = api_client.delete(_detail(order))
        assert response.status_code == 204
        assert not Order.objects.filter(pk=order["id"]).exists()
        assert _stock(product) == 10

    def test_delete_cancelled_order_restores_stock(self, api_client, order, product):
        _set_status(api_client, order, "CANCELLED")
        assert api_client.delete(_detail(order)).status_code == 204
        assert _stock(product) == 10

    def test_delete_delivered_order_rejected(self, api_client, order, product):
        _set_status(api_client, order, "APPROVED", "DELIVERED")
        response = api_client.delete(_detail(order))
        assert response.status_code == 409
        assert Order.objects.filter(pk=order["id"]).exists()
        assert _stock(product) == 7

    def test_delete_missing(self, api_client):
        assert api_client.delete(f"{URL}{uuid.uuid4()}/").status_code == 404
