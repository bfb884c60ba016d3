"""Domain models, errors, ports and service for orders.

This module contains the dataclasses used as DTOs for orders, the error
taxonomy raised by the order workflow, protocol definitions (ports) for the
payment gateway and the order store, and the domain service that prepares
payments, places orders and moves them through their lifecycle.

The service never talks to Django directly: persistence, the unit of work
and the inventory ledger are reached through ``OrderStorePort`` (implemented
by ``repository.OrderRepository``), the gateway through
``PaymentGatewayPort`` (``adapters.PaymentGatewayStub`` or
``http_adapters.HttpPaymentGatewayClient``).
"""

import logging
import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

logger = logging.getLogger("storefront.orders")


# ---- Enums ----
class OrderStatus(str, Enum):
    """Order lifecycle statuses, in forward order."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


FORWARD_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

INTENT_SUCCEEDED = "succeeded"


# ---- Errors ----
class OrderError(ValueError):
    """Base class for order workflow failures.

    ``str(error)`` is the stable machine-readable code (for example
    ``"EMPTY_CART"``); ``message`` is the human-readable explanation and
    ``http_status`` the status the API answers with.
    """

    code = "ORDER_ERROR"
    http_status = 400
    default_message = "Order request failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(self.code)
        self.message = message or self.default_message


class NotFound(OrderError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Resource not found."


class AddressNotFound(NotFound):
    code = "ADDRESS_NOT_FOUND"
    default_message = "Address not found."


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found."


class ProductNotFound(NotFound):
    code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found."


class InvalidInput(OrderError):
    code = "INVALID_INPUT"
    default_message = "Invalid input."


class PaymentNotSuccessful(OrderError):
    code = "PAYMENT_NOT_SUCCESSFUL"
    http_status = 402
    default_message = "Payment not successful."


class PaymentMismatch(OrderError):
    code = "PAYMENT_MISMATCH"
    http_status = 402
    default_message = "Payment does not match this checkout."


class DuplicatePayment(OrderError):
    code = "DUPLICATE_PAYMENT"
    http_status = 409
    default_message = "This payment has already been processed."


class EmptyCart(OrderError):
    code = "EMPTY_CART"
    default_message = "Cart is empty."


class InsufficientStock(OrderError):
    code = "INSUFFICIENT_STOCK"
    http_status = 422
    default_message = "Insufficient stock."


class InvalidOrFinalStatus(OrderError):
    code = "INVALID_OR_FINAL_STATUS"
    http_status = 409
    default_message = "Invalid or final order status."


class Forbidden(OrderError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Not authorized."


class OrderCommitFailed(OrderError):
    code = "ORDER_COMMIT_FAILED"
    http_status = 500
    default_message = "Order could not be committed."


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class CartLine:
    """One cart entry joined with the live catalog row it points to.

    Attributes:
        product_id: Catalog product primary key.
        name: Product name, used in error messages.
        quantity: Units the user wants (>= 1).
        price_cents: Current catalog unit price.
        stock: Current ``count_in_stock`` as read with the cart.
    """

    product_id: int
    name: str
    quantity: int
    price_cents: int
    stock: int


@dataclass(frozen=True)
class OrderLine:
    """A single line item of a placed order.

    The unit price is the one captured at purchase time; it is never
    re-read from the catalog.
    """

    product_id: int
    quantity: int
    price_cents: int


@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Storage key, or None until persisted.
        order_id: Human-readable identifier shown to customers.
        user_id: Owner of the order.
        lines: Ordered line items.
        payment_id: Gateway payment intent id (unique across orders).
        address_id: Delivery address reference.
        total_cents: Sum of line price x quantity, fixed at creation.
        currency: ISO currency code.
        status: Current ``OrderStatus``.
        payment_status: Current ``PaymentStatus``.
    """

    id: Optional[uuid.UUID]
    order_id: str
    user_id: int
    lines: List[OrderLine]
    payment_id: str
    address_id: int
    total_cents: int
    currency: str = "INR"
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING


@dataclass(frozen=True)
class PaymentIntent:
    """Gateway-side payment intent as seen by the storefront.

    Amount, currency and metadata are None when the gateway did not report
    them; a reported value is always checked against the checkout.
    """

    id: str
    status: str
    client_secret: Optional[str] = None
    amount_cents: Optional[int] = None
    currency: Optional[str] = None
    metadata: Optional[dict] = None

    @property
    def succeeded(self) -> bool:
        return self.status == INTENT_SUCCEEDED


@dataclass(frozen=True)
class PreparedPayment:
    intent_id: str
    client_secret: Optional[str]
    total_cents: int
    currency: str
    status: str


@dataclass
class StatusChange:
    order: Order
    previous: OrderStatus
    restocked: List[OrderLine] = field(default_factory=list)


def cart_total(lines) -> int:
    """Sum of ``price_cents * quantity`` over cart or order lines."""
    return sum(line.price_cents * line.quantity for line in lines)


def generate_order_id() -> str:
    """Human-readable order id derived from a random UUID, e.g. ``ORD-1A2B3C4D5E6F``."""
    return f"ORD-{uuid.uuid4().hex[:12].upper()}"


def next_status(current, target=None) -> OrderStatus:
    """Resolve the status an order moves to from ``current``.

    Without ``target`` the order advances one step along
    ``Pending -> Processing -> Shipped -> Delivered``. ``target`` may name
    that next step explicitly, or ``Cancelled`` as the administrative
    override from any non-terminal status.

    Raises:
        InvalidOrFinalStatus: ``current`` is unknown or terminal, or
            ``target`` is not a legal destination from ``current``.
    """
    try:
        current = OrderStatus(current)
    except ValueError:
        raise InvalidOrFinalStatus(f"Unknown order status: {current}")
    if current in TERMINAL_STATUSES:
        raise InvalidOrFinalStatus(f"Order is already {current.value}.")

    forward = FORWARD_FLOW[FORWARD_FLOW.index(current) + 1]
    if target is None:
        return forward
    try:
        target = OrderStatus(target)
    except ValueError:
        raise InvalidOrFinalStatus(f"Unknown order status: {target}")
    if target in (forward, OrderStatus.CANCELLED):
        return target
    raise InvalidOrFinalStatus(f"Cannot move order from {current.value} to {target.value}.")


# ---- Ports (DIP) ----
class PaymentGatewayPort(Protocol):
    """Port describing the payment gateway operations used by the domain."""

    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        payment_method_id: str,
        metadata: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """Create (and confirm) a payment intent for ``amount_cents``."""
        raise NotImplementedError()

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the current state of a payment intent."""
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Port over persistence: addresses, carts, inventory and orders.

    ``atomic()`` opens the unit of work; everything called inside it
    commits or rolls back together.
    """

    def atomic(self) -> AbstractContextManager: ...

    def address_exists(self, user_id: int, address_id: int) -> bool: ...

    def load_cart(self, user_id: int) -> List[CartLine]: ...

    def payment_exists(self, payment_id: str) -> bool: ...

    def create_order(self, order: Order) -> Order:
        """Persist ``order``; raises ``DuplicatePayment`` on a reused payment id."""
        ...

    def decrement_stock(self, product_id: int, quantity: int) -> bool: ...

    def increment_stock(self, product_id: int, quantity: int) -> bool: ...

    def link_order_to_user(self, user_id: int, order: Order) -> None: ...

    def clear_cart(self, user_id: int) -> int: ...

    def get_order_for_update(self, order_id: str) -> Optional[Order]: ...

    def save_status(self, order: Order) -> None: ...


# ---- Domain service ----
class OrderService:
    """Order workflow orchestrator.

    Coordinates the payment gateway, cart, inventory ledger and order
    ledger. Preconditions are all checked before anything is written; the
    commit itself runs in a single unit of work so a failure part-way
    leaves no order, no stock movement and an untouched cart.
    """

    def __init__(self, gateway: PaymentGatewayPort, store: OrderStorePort, currency: str = "INR"):
        """Initialize the service with its collaborators.

        Args:
            gateway: Payment gateway used to create and verify intents.
            store: Persistence port (unit of work, ledgers, cart, addresses).
            currency: Store currency for intents and orders.
        """
        self.gateway = gateway
        self.store = store
        self.currency = currency

    def _priced_cart(self, user_id: int, address_id: int) -> List[CartLine]:
        if not self.store.address_exists(user_id, address_id):
            raise AddressNotFound()
        cart = self.store.load_cart(user_id)
        if not cart:
            raise EmptyCart()
        for line in cart:
            if line.stock < line.quantity:
                raise InsufficientStock(f"Insufficient stock for product: {line.name}")
        return cart

    def _check_intent_covers(self, intent: PaymentIntent, user_id: int, total: int) -> None:
        reason = None
        if intent.amount_cents is not None and intent.amount_cents != total:
            reason = f"Payment of {intent.amount_cents} does not match the cart total of {total}."
        elif intent.currency is not None and intent.currency.upper() != self.currency.upper():
            reason = f"Payment currency {intent.currency} does not match {self.currency}."
        elif intent.metadata and "user_id" in intent.metadata and str(intent.metadata["user_id"]) != str(user_id):
            reason = "Payment was opened by another user."
        if reason:
            logger.info("order rejected", extra={"reason": PaymentMismatch.code, "intent_id": intent.id})
            raise PaymentMismatch(reason)

    def prepare_payment(
        self,
        user_id: int,
        address_id: int,
        payment_method_id: str,
        idempotency_key: Optional[str] = None,
    ) -> PreparedPayment:
        """Price the user's cart and request a gateway charge for it.

        Nothing is reserved or written: stock is re-validated when the
        order is placed.

        Raises:
            AddressNotFound: The address is missing or not the user's.
            EmptyCart: The user has nothing in the cart.
            InsufficientStock: A line wants more than is in stock.
        """
        cart = self._priced_cart(user_id, address_id)
        total = cart_total(cart)
        intent = self.gateway.create_intent(
            total,
            self.currency,
            payment_method_id,
            metadata={"user_id": str(user_id), "address_id": str(address_id)},
            idempotency_key=idempotency_key,
        )
        logger.info(
            "payment intent prepared",
            extra={"user_id": user_id, "intent_id": intent.id, "total_cents": total, "intent_status": intent.status},
        )
        return PreparedPayment(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            total_cents=total,
            currency=self.currency,
            status=intent.status,
        )

    def place_order(self, user_id: int, payment_intent_id: str, address_id: int) -> Order:
        """Turn a succeeded payment intent and the user's cart into an order.

        Preconditions, checked in this order and before any write:
        payment succeeded, payment not already used, address is the
        user's, cart not empty, every line currently in stock, and the
        intent was opened by this user for the cart's current total.

        The commit then persists the order (``Processing`` / ``Completed``),
        decrements stock per line with a conditional update, links the
        order to the user's history and clears the cart, all in one unit of
        work.

        Raises:
            PaymentNotSuccessful, DuplicatePayment, AddressNotFound,
            EmptyCart, InsufficientStock, PaymentMismatch: Precondition
                failures. ``DuplicatePayment`` and ``InsufficientStock`` can
                also surface from inside the commit (concurrent checkout of
                the same payment id or stock), after a full rollback.
            OrderCommitFailed: Any other failure inside the unit of work,
                chained to the original exception; the cause is logged,
                never returned to the client.
        """
        intent = self.gateway.retrieve_intent(payment_intent_id)
        if not intent.succeeded:
            logger.info("order rejected", extra={"reason": PaymentNotSuccessful.code, "intent_id": payment_intent_id})
            raise PaymentNotSuccessful()

        if self.store.payment_exists(payment_intent_id):
            logger.info("order rejected", extra={"reason": DuplicatePayment.code, "intent_id": payment_intent_id})
            raise DuplicatePayment()

        cart = self._priced_cart(user_id, address_id)
        self._check_intent_covers(intent, user_id, cart_total(cart))

        lines = [OrderLine(product_id=c.product_id, quantity=c.quantity, price_cents=c.price_cents) for c in cart]
        order = Order(
            id=None,
            order_id=generate_order_id(),
            user_id=user_id,
            lines=lines,
            payment_id=payment_intent_id,
            address_id=address_id,
            total_cents=cart_total(lines),
            currency=self.currency,
            status=OrderStatus.PROCESSING,
            payment_status=PaymentStatus.COMPLETED,
        )

        names = {c.product_id: c.name for c in cart}
        try:
            with self.store.atomic():
                saved = self.store.create_order(order)
                for line in lines:
                    if not self.store.decrement_stock(line.product_id, line.quantity):
                        raise InsufficientStock(f"Insufficient stock for product: {names[line.product_id]}")
                self.store.link_order_to_user(user_id, saved)
                self.store.clear_cart(user_id)
        except (DuplicatePayment, InsufficientStock) as exc:
            logger.info("order rolled back", extra={"reason": exc.code, "intent_id": payment_intent_id})
            raise
        except Exception as exc:
            logger.exception("order commit failed", extra={"intent_id": payment_intent_id})
            raise OrderCommitFailed() from exc

        logger.info(
            "order placed",
            extra={"order_id": saved.order_id, "user_id": user_id, "total_cents": saved.total_cents},
        )
        return saved

    def advance_status(self, order_id: str, is_admin: bool, target=None) -> StatusChange:
        """Move an order to its next status (admin only).

        Landing on ``Cancelled`` puts every line's quantity back into
        stock; that happens once because ``Cancelled`` is terminal and the
        order row is locked for the transition.

        Raises:
            Forbidden: The caller is not an administrator.
            OrderNotFound: No order with ``order_id``.
            InvalidOrFinalStatus: See ``next_status``.
        """
        if not is_admin:
            raise Forbidden()

        with self.store.atomic():
            order = self.store.get_order_for_update(order_id)
            if order is None:
                raise OrderNotFound()
            previous = OrderStatus(order.status)
            order.status = next_status(previous, target)
            self.store.save_status(order)

            restocked = []
            if order.status == OrderStatus.CANCELLED:
                for line in order.lines:
                    self.store.increment_stock(line.product_id, line.quantity)
                    restocked.append(line)

        logger.info(
            "order status changed",
            extra={"order_id": order.order_id, "from": previous.value, "to": order.status.value},
        )
        return StatusChange(order=order, previous=previous, restocked=restocked)
