from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        ADMIN = "ADMIN"
        CUSTOMER = "CUSTOMER"

    role = models.CharField(max_length=16, choices=Role.choices, default=Role.CUSTOMER)
    mobile = models.CharField(max_length=20, blank=True, default="")

    # Appended to by order placement, never rewritten.
    order_history = models.ManyToManyField(
        "orders.OrderModel", related_name="+", blank=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN


class Address(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="addresses")
    address_line1 = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pin_code = models.CharField(max_length=10)
    country = models.CharField(max_length=100, default="India")
    mobile = models.CharField(max_length=20)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "addresses"
        ordering = ["-created_at", "-id"]
