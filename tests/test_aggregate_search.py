import asyncio

import pytest

from conftest import FakeStoreClient, product
from storefront_gateway.errors import NotFound, UpstreamFailure
from storefront_gateway.gateway.search import AggregateSearchEngine, sort_by_price


def _connect(registry, fake_clients, url, client, name=None):
    fake_clients[url] = client
    return registry.connect(name or url, url, "token")


def test_results_are_price_sorted_and_partial_failure_is_tolerated(registry, fake_clients):
    good = FakeStoreClient([product(1, "50"), product(2, "10")])
    _connect(registry, fake_clients, "store1.example", good, "Store1")
    _connect(registry, fake_clients, "store2.example", FakeStoreClient(fail=True), "Store2")

    engine = AggregateSearchEngine(registry)
    results = asyncio.run(engine.search("phone"))

    assert [p.id for p in results] == ["2", "1"]
    assert {p.store_id for p in results} == {registry.handles()[0].id}


def test_duplicates_within_one_store_are_dropped_across_terms(registry, fake_clients):
    client = FakeStoreClient([product(1, "300", title="Laptop"), product(2, "100", title="Mouse")])
    _connect(registry, fake_clients, "tech.example", client)

    engine = AggregateSearchEngine(registry)
    results = asyncio.run(engine.search("מחשב"))

    # verbatim query plus one expansion
    assert sorted(client.search_calls[1:]) == sorted(["מחשב", "computer laptop"])
    assert [p.id for p in results] == ["2", "1"]


def test_same_product_id_in_two_stores_is_kept_twice(registry, fake_clients):
    s1 = _connect(registry, fake_clients, "a.example", FakeStoreClient([product(7, "20")]))
    s2 = _connect(registry, fake_clients, "b.example", FakeStoreClient([product(7, "15")]))

    results = asyncio.run(AggregateSearchEngine(registry).search("anything"))

    assert [(p.id, p.store_id) for p in results] == [("7", s2), ("7", s1)]


def test_equal_prices_keep_store_order(registry, fake_clients):
    s1 = _connect(registry, fake_clients, "a.example", FakeStoreClient([product(1, "10")]))
    s2 = _connect(registry, fake_clients, "b.example", FakeStoreClient([product(2, "10")]))

    results = asyncio.run(AggregateSearchEngine(registry).search("x"))

    assert [p.store_id for p in results] == [s1, s2]


def test_single_store_mode_uses_raw_query(registry, fake_clients):
    one = FakeStoreClient([product(1, "5")])
    other = FakeStoreClient([product(2, "1")])
    target = _connect(registry, fake_clients, "one.example", one)
    _connect(registry, fake_clients, "other.example", other)

    results = asyncio.run(AggregateSearchEngine(registry).search("מחשב", store_id=target))

    assert [p.id for p in results] == ["1"]
    assert one.search_calls[1:] == ["מחשב"]
    assert other.search_calls[1:] == []


def test_single_store_mode_unknown_id_raises(registry):
    with pytest.raises(NotFound):
        asyncio.run(AggregateSearchEngine(registry).search("x", store_id="missing"))


def test_empty_registry_returns_empty_list(registry):
    assert asyncio.run(AggregateSearchEngine(registry).search("laptop")) == []


def test_slow_store_times_out_without_blocking_others(registry, fake_clients):
    _connect(registry, fake_clients, "fast.example", FakeStoreClient([product(1, "10")]))
    _connect(registry, fake_clients, "slow.example", FakeStoreClient([product(2, "1")], delay=0.5))

    engine = AggregateSearchEngine(registry, sub_request_timeout=0.05)
    results = asyncio.run(engine.search("x"))

    assert [p.id for p in results] == ["1"]


def test_store_removed_mid_search_contributes_nothing(registry, fake_clients):
    holder = {}
    doomed = FakeStoreClient([product(1, "1")], on_search=lambda: registry.remove(holder["id"]))
    holder["id"] = _connect(registry, fake_clients, "doomed.example", doomed)
    _connect(registry, fake_clients, "stays.example", FakeStoreClient([product(2, "2")]))

    results = asyncio.run(AggregateSearchEngine(registry).search("x"))

    assert [p.id for p in results] == ["2"]


def test_compare_reports_failing_store_as_error(registry, fake_clients):
    _connect(registry, fake_clients, "ok.example", FakeStoreClient([product(1, "10")]), "Good")
    _connect(registry, fake_clients, "down.example", FakeStoreClient(fail=True), "Broken")

    comparison = asyncio.run(AggregateSearchEngine(registry).compare("laptop"))

    assert comparison["Good"]["categories"] == {"Laptops": {"count": 1}}
    assert comparison["Broken"]["error"] == "store is down"


def test_best_deals_scores_across_stores(registry, fake_clients):
    _connect(registry, fake_clients, "a.example", FakeStoreClient([product(1, "100"), product(2, "50")]))
    _connect(registry, fake_clients, "b.example", FakeStoreClient([product(3, "75")]))

    deals = asyncio.run(AggregateSearchEngine(registry).best_deals(2))

    assert [(d.id, d.deal_score) for d in deals] == [("2", 1.0), ("3", 0.5)]


def test_vendor_search_filters_by_vendor(registry, fake_clients):
    _connect(
        registry,
        fake_clients,
        "a.example",
        FakeStoreClient([product(1, "9", vendor="Sony"), product(2, "3", vendor="Other")]),
    )

    products = asyncio.run(AggregateSearchEngine(registry).search_by_vendor("sony"))

    assert [p.id for p in products] == ["1"]


def test_sort_by_price_treats_missing_price_as_zero(registry, fake_clients):
    client = FakeStoreClient([product(1, "5"), {"id": 2, "title": "No variants"}])
    _connect(registry, fake_clients, "a.example", client)

    results = asyncio.run(AggregateSearchEngine(registry).search("x"))

    assert [p.id for p in sort_by_price(results)] == ["2", "1"]


def test_products_without_id_are_skipped(registry, fake_clients):
    client = FakeStoreClient([{"title": "Ghost A"}, {"id": None, "title": "Ghost B"}, product(3, "4")])
    _connect(registry, fake_clients, "a.example", client)

    results = asyncio.run(AggregateSearchEngine(registry).search("x"))

    assert [p.id for p in results] == ["3"]


def test_product_details_timeout_is_upstream_failure(registry, fake_clients):
    store_id = _connect(registry, fake_clients, "slow.example", FakeStoreClient([product(1, "1")]))
    fake_clients["slow.example"].delay = 0.5
    engine = AggregateSearchEngine(registry, sub_request_timeout=0.05)

    with pytest.raises(UpstreamFailure):
        asyncio.run(engine.product_details(store_id, "1"))
