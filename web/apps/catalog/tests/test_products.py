import pytest
from django.db.models.deletion import ProtectedError

from apps.cart.models import CartItem
from apps.catalog.models import Category, Product, Review
from apps.orders.models import OrderLineModel, OrderModel

URL = "/api/v1/product/"
DETAIL_URL = "/api/v1/product/{pid}/"
STOCK_URL = "/api/v1/product/stock/{pid}/"
CATEGORIES_URL = "/api/v1/categories/"

NEW_PRODUCT = {
    "name": "Brass Kettle",
    "description": "Hand-hammered brass kettle, 1.5 litres",
    "brand": "Moradabad Works",
    "price_cents": 349900,
    "count_in_stock": 12,
}


@pytest.mark.django_db
def test_products_are_public_and_paginated(client, make_product):
    for n in range(3):
        make_product(f"Lamp {n}")
    r = client.get(URL, {"page": 2, "limit": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["current_page"] == 2
    assert body["total_pages"] == 2
    assert body["total_products"] == 3
    assert len(body["products"]) == 1


@pytest.mark.django_db
def test_filter_by_category(client, make_product):
    kitchen = Category.objects.create(name="Kitchen", slug="kitchen")
    kettle = make_product("Kettle")
    kettle.categories.add(kitchen)
    make_product("Desk")
    body = client.get(URL, {"category": "kitchen"}).json()
    assert [p["name"] for p in body["products"]] == ["Kettle"]
    assert body["products"][0]["categories"] == [{"id": kitchen.id, "name": "Kitchen", "slug": "kitchen"}]


@pytest.mark.django_db
def test_admin_creates_product(store_admin_client):
    Category.objects.create(name="Kitchen", slug="kitchen")
    r = store_admin_client.post(URL, data={**NEW_PRODUCT, "categories": ["kitchen"]}, content_type="application/json")
    assert r.status_code == 201
    product = r.json()["product"]
    assert product["count_in_stock"] == 12
    assert product["currency"] == "INR"
    assert [c["slug"] for c in product["categories"]] == ["kitchen"]


@pytest.mark.django_db
def test_create_product_with_unknown_category(store_admin_client):
    r = store_admin_client.post(URL, data={**NEW_PRODUCT, "categories": ["garden"]}, content_type="application/json")
    assert r.status_code == 400
    assert not Product.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize("field,value", [("name", "ab"), ("price_cents", -1), ("count_in_stock", -5)])
def test_create_product_validation(store_admin_client, field, value):
    r = store_admin_client.post(URL, data={**NEW_PRODUCT, field: value}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_INPUT"


@pytest.mark.django_db
def test_customers_cannot_write_products(customer_client, make_product):
    assert customer_client.post(URL, data=NEW_PRODUCT, content_type="application/json").status_code == 403
    p = make_product()
    assert customer_client.delete(DETAIL_URL.format(pid=p.id)).status_code == 403


@pytest.mark.django_db
def test_get_unknown_product(client):
    r = client.get(DETAIL_URL.format(pid=424242))
    assert r.status_code == 404
    assert r.json()["detail"] == "PRODUCT_NOT_FOUND"


@pytest.mark.django_db
def test_update_product(store_admin_client, make_product):
    p = make_product()
    r = store_admin_client.put(
        DETAIL_URL.format(pid=p.id), data={**NEW_PRODUCT, "price_cents": 100}, content_type="application/json"
    )
    assert r.status_code == 200
    assert Product.objects.get(pk=p.id).price_cents == 100


@pytest.mark.django_db
def test_stock_correction(store_admin_client, customer_client, make_product):
    p = make_product(stock=3)
    r = store_admin_client.put(STOCK_URL.format(pid=p.id), data={"count_in_stock": 40}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["product"]["count_in_stock"] == 40

    r = store_admin_client.put(STOCK_URL.format(pid=p.id), data={"count_in_stock": -1}, content_type="application/json")
    assert r.status_code == 400
    r = customer_client.put(STOCK_URL.format(pid=p.id), data={"count_in_stock": 0}, content_type="application/json")
    assert r.status_code == 403
    assert Product.objects.get(pk=p.id).count_in_stock == 40


@pytest.mark.django_db
def test_delete_product_removes_its_reviews_and_cart_lines(store_admin_client, customer, make_product, fill_cart):
    p = make_product()
    kept = make_product("Chair")
    fill_cart(customer, (p, 2), (kept, 1))
    Review.objects.create(product=p, user=customer, rating=4, comment="Solid")
    Review.objects.create(product=kept, user=customer, rating=5, comment="Comfy")

    r = store_admin_client.delete(DETAIL_URL.format(pid=p.id))
    assert r.status_code == 200
    assert not Product.objects.filter(pk=p.id).exists()
    assert list(CartItem.objects.filter(user=customer).values_list("product_id", flat=True)) == [kept.id]
    assert list(Review.objects.values_list("product_id", flat=True)) == [kept.id]


@pytest.mark.django_db
def test_cart_lines_and_reviews_protect_the_product_row(customer, make_product, fill_cart):
    p = make_product()
    fill_cart(customer, (p, 1))
    with pytest.raises(ProtectedError):
        p.delete()
    CartItem.objects.filter(product=p).delete()
    Review.objects.create(product=p, user=customer, rating=3, comment="Fine")
    with pytest.raises(ProtectedError):
        p.delete()


@pytest.mark.django_db
def test_product_on_an_order_is_kept(store_admin_client, customer, address, make_product, fill_cart):
    p = make_product()
    order = OrderModel.objects.create(
        order_id="ORD-PRODUCT0001",
        user=customer,
        payment_id="pi_product_in_use",
        payment_status="Completed",
        delivery_address=address,
        total_cents=p.price_cents,
        status="Processing",
    )
    OrderLineModel.objects.create(order=order, product=p, quantity=1, price_cents=p.price_cents)
    fill_cart(customer, (p, 1))
    Review.objects.create(product=p, user=customer, rating=4, comment="Solid")

    r = store_admin_client.delete(DETAIL_URL.format(pid=p.id))
    assert r.status_code == 409
    assert r.json()["detail"] == "PRODUCT_IN_USE"
    assert Product.objects.filter(pk=p.id).exists()
    assert CartItem.objects.filter(user=customer).count() == 1
    assert Review.objects.filter(product=p).count() == 1


@pytest.mark.django_db
def test_categories_lifecycle(store_admin_client, customer_client):
    r = store_admin_client.post(CATEGORIES_URL, data={"name": "Home Decor"}, content_type="application/json")
    assert r.status_code == 201
    assert r.json()["category"]["slug"] == "home-decor"

    r = store_admin_client.post(CATEGORIES_URL, data={"name": "home decor"}, content_type="application/json")
    assert r.status_code == 409
    assert r.json()["detail"] == "CATEGORY_EXISTS"

    assert customer_client.post(CATEGORIES_URL, data={"name": "Toys"}, content_type="application/json").status_code == 403
    assert [c["slug"] for c in customer_client.get(CATEGORIES_URL).json()["categories"]] == ["home-decor"]

    r = store_admin_client.put(f"{CATEGORIES_URL}home-decor/", data={"name": "Decor"}, content_type="application/json")
    assert r.json()["category"]["slug"] == "decor"

    assert store_admin_client.delete(f"{CATEGORIES_URL}decor/").status_code == 200
    assert store_admin_client.delete(f"{CATEGORIES_URL}decor/").status_code == 404


@pytest.mark.django_db
def test_categories_are_public(client):
    Category.objects.create(name="Kitchen", slug="kitchen")
    r = client.get(CATEGORIES_URL)
    assert r.status_code == 200
    assert r.json()["categories"][0]["slug"] == "kitchen"
