import pytest
from django.core.cache import cache
from django.test import Client


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False


@pytest.fixture(autouse=True)
def reset_throttles_and_circuit():
    # throttle counters live in the cache; the breaker is module state
    from apps.orders.http_adapters import _gateway_cb

    cache.clear()
    _gateway_cb.on_success()
    yield
    _gateway_cb.on_success()


@pytest.fixture
def customer(db):
    from apps.accounts.models import User

    return User.objects.create_user(username="asha", email="asha@example.com", password="pw-asha-123")


@pytest.fixture
def other_customer(db):
    from apps.accounts.models import User

    return User.objects.create_user(username="ravi", email="ravi@example.com", password="pw-ravi-123")


@pytest.fixture
def store_admin(db):
    from apps.accounts.models import User

    return User.objects.create_user(
        username="meera", email="meera@example.com", password="pw-meera-123", role=User.Role.ADMIN
    )


def _logged_in(user) -> Client:
    c = Client()
    c.force_login(user)
    return c


@pytest.fixture
def customer_client(customer):
    return _logged_in(customer)


@pytest.fixture
def other_client(other_customer):
    return _logged_in(other_customer)


@pytest.fixture
def store_admin_client(store_admin):
    return _logged_in(store_admin)


@pytest.fixture
def make_product(db):
    from apps.catalog.models import Product

    def _make(name="Trail Shoe", price_cents=250000, stock=10, **extra):
        return Product.objects.create(
            name=name,
            description=extra.pop("description", f"{name} for everyday use"),
            price_cents=price_cents,
            count_in_stock=stock,
            **extra,
        )

    return _make


@pytest.fixture
def address(customer):
    from apps.accounts.models import Address

    return Address.objects.create(
        user=customer,
        address_line1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        pin_code="560001",
        mobile="+919876543210",
    )


@pytest.fixture
def fill_cart():
    from apps.cart.models import CartItem

    def _fill(user, *lines):
        """``lines`` are ``(product, quantity)`` pairs."""
        return [CartItem.objects.create(user=user, product=p, quantity=q) for p, q in lines]

    return _fill
