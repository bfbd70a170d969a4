import pytest

from conftest import FakeStoreClient, product
from storefront_gateway.domain.models import OrderStatus
from storefront_gateway.errors import NotFound, UpstreamFailure, ValidationFailure
from storefront_gateway.gateway.orders import PLACEHOLDER_CUSTOMER, OrderFacade


@pytest.fixture
def store(registry, fake_clients):
    client = FakeStoreClient([product(1, "20", title="Headphones"), {"id": 2, "title": "No variants"}])
    fake_clients["shop.example"] = client
    store_id = registry.connect("Shop", "shop.example", "t")
    return store_id, client


def test_create_order_records_pending_order(registry, store):
    store_id, client = store
    facade = OrderFacade(registry)

    record = facade.create_order(store_id, "1", quantity=2, customer_info={"email": "dana@example.com"})

    assert record.status is OrderStatus.PENDING_PAYMENT
    assert record.upstream_order_id == 9001
    assert record.upstream_order_number == 1001
    assert record.currency == "ILS"
    assert record.product_title == "Headphones"
    line_items, customer, address = client.created_orders[0]
    assert line_items == [{"variant_id": 100, "quantity": 2}]
    assert customer["email"] == "dana@example.com"
    assert customer["first_name"] == PLACEHOLDER_CUSTOMER["first_name"]
    assert address["country"] == "IL"
    assert facade.get(record.tracking_id) is record


def test_camel_case_customer_fields_are_accepted(registry, store):
    store_id, client = store
    OrderFacade(registry).create_order(store_id, 1, customer_info={"firstName": "Dana", "lastName": "Levi"})
    _, customer, _ = client.created_orders[0]
    assert (customer["first_name"], customer["last_name"]) == ("Dana", "Levi")


def test_unknown_store_fails_before_any_record(registry):
    facade = OrderFacade(registry)
    with pytest.raises(NotFound):
        facade.create_order("missing", "1")
    assert len(facade.tracker) == 0


def test_unknown_product_is_not_found(registry, store):
    store_id, client = store
    facade = OrderFacade(registry)
    with pytest.raises(NotFound):
        facade.create_order(store_id, "404")
    assert client.created_orders == []


def test_product_without_variants_is_rejected(registry, store):
    store_id, _ = store
    with pytest.raises(ValidationFailure):
        OrderFacade(registry).create_order(store_id, "2")


@pytest.mark.parametrize("qty", [0, -1, "many"])
def test_invalid_quantity(registry, store, qty):
    store_id, _ = store
    with pytest.raises(ValidationFailure):
        OrderFacade(registry).create_order(store_id, "1", quantity=qty)


def test_upstream_failure_records_nothing(registry, fake_clients):
    fake_clients["down.example"] = FakeStoreClient(fail=True)
    store_id = registry.connect("Down", "down.example", "t")
    facade = OrderFacade(registry)
    with pytest.raises(UpstreamFailure):
        facade.create_order(store_id, "1")
    assert len(facade.tracker) == 0


def test_mark_paid_is_idempotent(registry, store):
    store_id, _ = store
    facade = OrderFacade(registry)
    record = facade.create_order(store_id, "1")

    paid = facade.mark_paid(record.tracking_id)
    first_paid_at = paid.paid_at
    again = facade.mark_paid(record.tracking_id, "card")

    assert again.status is OrderStatus.PAID
    assert again.payment_method == "card"
    assert again.paid_at >= first_paid_at
    assert paid.to_dict()["status"] == "paid"


def test_mark_paid_unknown_tracking_id(registry):
    with pytest.raises(NotFound):
        OrderFacade(registry).mark_paid("nope")


def test_list_store_orders_trims_fields(registry, store):
    store_id, _ = store
    orders = OrderFacade(registry).list_store_orders(store_id)
    assert orders == [
        {
            "id": 1,
            "order_number": 1001,
            "total_price": None,
            "currency": None,
            "financial_status": None,
            "fulfillment_status": None,
            "created_at": None,
            "customer_email": "a@b.c",
            "line_items_count": 2,
        }
    ]
