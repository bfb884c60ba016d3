import pytest

from apps.cart.models import CartItem

URL = "/api/v1/cart/"
ITEM_URL = "/api/v1/cart/{iid}/"


def _add(client, product_id, quantity=1):
    return client.post(URL, data={"product_id": product_id, "quantity": quantity}, content_type="application/json")


@pytest.mark.django_db
def test_add_then_merge(customer_client, customer, make_product):
    p = make_product(price_cents=1200, stock=5)
    r = _add(customer_client, p.id, 2)
    assert r.status_code == 201
    assert r.json()["cart_item"]["line_total_cents"] == 2400

    r = _add(customer_client, p.id, 1)
    assert r.status_code == 200
    assert r.json()["cart_item"]["quantity"] == 3
    assert CartItem.objects.filter(user=customer).count() == 1


@pytest.mark.django_db
def test_add_more_than_stock(customer_client, make_product):
    p = make_product("Chair", stock=2)
    _add(customer_client, p.id, 2)
    r = _add(customer_client, p.id, 1)
    assert r.status_code == 422
    assert r.json() == {"detail": "INSUFFICIENT_STOCK", "message": "Insufficient stock for product: Chair"}


@pytest.mark.django_db
def test_add_unknown_product(customer_client):
    r = _add(customer_client, 999999)
    assert r.status_code == 404
    assert r.json()["detail"] == "PRODUCT_NOT_FOUND"


@pytest.mark.django_db
def test_add_invalid_quantity(customer_client, make_product):
    r = _add(customer_client, make_product().id, 0)
    assert r.status_code == 400


@pytest.mark.django_db
def test_view_cart_totals(customer_client, customer, make_product, fill_cart):
    fill_cart(customer, (make_product("A lamp", price_cents=100), 2), (make_product("A desk", price_cents=900), 1))
    body = customer_client.get(URL).json()
    assert len(body["cart_items"]) == 2
    assert body["total_cents"] == 1100
    assert body["currency"] == "INR"


@pytest.mark.django_db
def test_update_item_quantity(customer_client, customer, make_product, fill_cart):
    p = make_product(stock=4)
    (item,) = fill_cart(customer, (p, 1))
    r = customer_client.put(ITEM_URL.format(iid=item.id), data={"quantity": 4}, content_type="application/json")
    assert r.status_code == 200
    assert CartItem.objects.get(pk=item.id).quantity == 4

    r = customer_client.put(ITEM_URL.format(iid=item.id), data={"quantity": 5}, content_type="application/json")
    assert r.status_code == 422


@pytest.mark.django_db
def test_cannot_touch_another_users_item(other_client, customer, make_product, fill_cart):
    (item,) = fill_cart(customer, (make_product(), 1))
    assert other_client.delete(ITEM_URL.format(iid=item.id)).status_code == 404
    r = other_client.put(ITEM_URL.format(iid=item.id), data={"quantity": 1}, content_type="application/json")
    assert r.status_code == 404
    assert CartItem.objects.filter(pk=item.id).exists()


@pytest.mark.django_db
def test_remove_item_and_clear(customer_client, customer, make_product, fill_cart):
    first, _ = fill_cart(customer, (make_product("Lamp"), 1), (make_product("Desk"), 1))
    assert customer_client.delete(ITEM_URL.format(iid=first.id)).status_code == 200
    assert CartItem.objects.filter(user=customer).count() == 1
    assert customer_client.delete(URL).status_code == 200
    assert not CartItem.objects.filter(user=customer).exists()
