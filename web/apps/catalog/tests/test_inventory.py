import pytest
from django.db import IntegrityError, transaction

from apps.catalog import inventory
from apps.catalog.models import Product


@pytest.mark.django_db
def test_decrement_within_stock(make_product):
    p = make_product(stock=5)
    assert inventory.decrement_stock(p.id, 2) is True
    assert inventory.stock_of(p.id) == 3


@pytest.mark.django_db
def test_decrement_beyond_stock_changes_nothing(make_product):
    p = make_product(stock=1)
    assert inventory.decrement_stock(p.id, 2) is False
    assert inventory.stock_of(p.id) == 1


@pytest.mark.django_db
def test_last_unit_sells_once(make_product):
    p = make_product(stock=1)
    assert inventory.decrement_stock(p.id, 1) is True
    assert inventory.decrement_stock(p.id, 1) is False
    assert inventory.stock_of(p.id) == 0


@pytest.mark.django_db
def test_increment_and_set(make_product):
    p = make_product(stock=0)
    assert inventory.increment_stock(p.id, 4) is True
    assert inventory.set_stock(p.id, 9) is True
    assert inventory.stock_of(p.id) == 9


@pytest.mark.django_db
def test_unknown_product():
    assert inventory.decrement_stock(987654, 1) is False
    assert inventory.increment_stock(987654, 1) is False
    assert inventory.stock_of(987654) == 0


@pytest.mark.parametrize("fn", [inventory.decrement_stock, inventory.increment_stock])
def test_non_positive_quantity_is_rejected(fn):
    with pytest.raises(ValueError):
        fn(1, 0)


@pytest.mark.django_db
def test_database_refuses_negative_stock(make_product):
    p = make_product(stock=1)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Product.objects.filter(pk=p.id).update(count_in_stock=-1)
