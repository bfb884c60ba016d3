import pytest

from apps.accounts.models import Address
from apps.orders.models import OrderModel

URL = "/api/v1/address/"
DETAIL_URL = "/api/v1/address/{aid}/"

VALID = {
    "address_line1": " 221B Residency Road ",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pin_code": "560025",
    "mobile": "+91 98450-12345",
}


@pytest.mark.django_db
def test_create_address_normalises_fields(customer_client, customer):
    r = customer_client.post(URL, data=VALID, content_type="application/json")
    assert r.status_code == 201
    body = r.json()["address"]
    assert body["address_line1"] == "221B Residency Road"
    assert body["mobile"] == "+919845012345"
    assert body["country"] == "India"
    assert body["user_id"] == customer.id


@pytest.mark.django_db
@pytest.mark.parametrize("field,value", [("pin_code", "12ab"), ("mobile", "call me"), ("city", "  ")])
def test_create_address_validation(customer_client, field, value):
    r = customer_client.post(URL, data={**VALID, field: value}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_INPUT"
    assert r.json()["message"].startswith(field)


@pytest.mark.django_db
def test_list_only_own_addresses(customer_client, other_client, address):
    assert len(customer_client.get(URL).json()["addresses"]) == 1
    assert other_client.get(URL).json() == {"addresses": []}


@pytest.mark.django_db
def test_other_users_address_is_not_found(other_client, address):
    for method in ("get", "delete"):
        r = getattr(other_client, method)(DETAIL_URL.format(aid=address.id))
        assert r.status_code == 404
        assert r.json()["detail"] == "ADDRESS_NOT_FOUND"
    assert Address.objects.filter(pk=address.id).exists()


@pytest.mark.django_db
def test_update_address(customer_client, address):
    r = customer_client.put(DETAIL_URL.format(aid=address.id), data={**VALID, "city": "Mysuru"}, content_type="application/json")
    assert r.status_code == 200
    assert Address.objects.get(pk=address.id).city == "Mysuru"


@pytest.mark.django_db
def test_delete_address(customer_client, address):
    r = customer_client.delete(DETAIL_URL.format(aid=address.id))
    assert r.status_code == 200
    assert not Address.objects.filter(pk=address.id).exists()


@pytest.mark.django_db
def test_address_used_by_an_order_cannot_be_deleted(customer_client, customer, address):
    OrderModel.objects.create(
        order_id="ORD-ADDRESS00001",
        user=customer,
        payment_id="pi_address_in_use",
        payment_status="Completed",
        delivery_address=address,
        total_cents=100,
        status="Processing",
    )
    r = customer_client.delete(DETAIL_URL.format(aid=address.id))
    assert r.status_code == 409
    assert r.json()["detail"] == "ADDRESS_IN_USE"
    assert Address.objects.filter(pk=address.id).exists()


@pytest.mark.django_db
def test_requires_authentication(client):
    r = client.get(URL)
    assert r.status_code == 401
