"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via Pydantic),
delegate to the domain service, and map the outcome to an HTTP response.

The views obtain a configured ``OrderService`` from
``providers.get_order_service()``, which returns an ``httpx``-backed gateway
client or the in-process stub depending on runtime settings. Read endpoints
query the ORM directly.

Error mapping: every ``OrderError`` answers ``{"detail": CODE, "message": ...}``
with its own status (402 payment not successful, 409 duplicate payment,
422 insufficient stock, ...). A request the gateway refuses (4xx) answers
400 ``INVALID_INPUT``. Gateway outages answer 503 ``UPSTREAM_UNAVAILABLE``;
nothing is written in either case.
"""

import logging

import httpx
from django.core.paginator import Paginator
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.accounts.permissions import IsAdminRole
from gateway.responses import domain_error_response, error_response, validation_error_response

from . import providers
from .domain import OrderError
from .http_adapters import CircuitOpenError
from .models import OrderModel
from .schemas import CreateOrderDTO, OrderLineReadDTO, OrderReadDTO, PaymentIntentDTO, StatusUpdateDTO

logger = logging.getLogger("storefront.orders")

UPSTREAM_ERRORS = (httpx.HTTPError, CircuitOpenError)


def _orders_qs():
    return OrderModel.objects.prefetch_related("lines__product")


def render_order(o: OrderModel) -> dict:
    dto = OrderReadDTO(
        id=o.id,
        order_id=o.order_id,
        user_id=o.user_id,
        status=o.status,
        payment_status=o.payment_status,
        payment_id=o.payment_id,
        address_id=o.delivery_address_id,
        total_cents=o.total_cents,
        currency=o.currency,
        lines=[
            OrderLineReadDTO(
                product_id=line.product_id,
                product_name=line.product.name,
                quantity=line.quantity,
                price_cents=line.price_cents,
            )
            for line in o.lines.all()
        ],
        created_at=o.created_at,
        updated_at=o.updated_at,
    )
    return dto.model_dump(mode="json")


def _upstream_unavailable(exc: Exception) -> Response:
    logger.warning("payment gateway unavailable", extra={"error": repr(exc)})
    return error_response("UPSTREAM_UNAVAILABLE", "Payment gateway unavailable.", status.HTTP_503_SERVICE_UNAVAILABLE)


class PaymentIntentView(APIView):
    """Price the caller's cart and open a payment intent for it.

    An ``Idempotency-Key`` header is forwarded to the gateway so a retried
    request returns the same intent instead of opening a second charge.
    """

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_intent"

    def post(self, request):
        try:
            dto = PaymentIntentDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        service = providers.get_order_service()
        try:
            prepared = service.prepare_payment(
                user_id=request.user.id,
                address_id=dto.address_id,
                payment_method_id=dto.payment_method_id,
                idempotency_key=request.headers.get("Idempotency-Key"),
            )
        except OrderError as e:
            return domain_error_response(e)
        except UPSTREAM_ERRORS as e:
            return _upstream_unavailable(e)

        return Response(
            {
                "payment_intent_id": prepared.intent_id,
                "client_secret": prepared.client_secret,
                "total_cents": prepared.total_cents,
                "currency": prepared.currency,
                "status": prepared.status,
            },
            status=status.HTTP_200_OK,
        )


class OrdersCollectionView(APIView):
    """List the caller's orders (GET) or place a new order (POST)."""

    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evaluates throttles in initial(), before get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        orders = _orders_qs().filter(user_id=request.user.id).order_by("-created_at")
        return Response({"orders": [render_order(o) for o in orders]}, status=status.HTTP_200_OK)

    def post(self, request):
        """Place an order.

        Returns:
            Response: One of the following responses.
            - 201 with {message, order} when the order is committed.
            - 400 INVALID_INPUT / EMPTY_CART.
            - 402 PAYMENT_NOT_SUCCESSFUL when the intent has not succeeded.
            - 402 PAYMENT_MISMATCH when the intent amount, currency or owner
              does not match this checkout.
            - 404 ADDRESS_NOT_FOUND.
            - 409 DUPLICATE_PAYMENT when the intent already produced an order.
            - 422 INSUFFICIENT_STOCK.
            - 500 ORDER_COMMIT_FAILED after a full rollback.
            - 503 UPSTREAM_UNAVAILABLE when the gateway cannot be reached.
        """
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)

        service = providers.get_order_service()
        try:
            order = service.place_order(
                user_id=request.user.id,
                payment_intent_id=dto.payment_intent_id,
                address_id=dto.address_id,
            )
        except OrderError as e:
            return domain_error_response(e)
        except UPSTREAM_ERRORS as e:
            return _upstream_unavailable(e)

        saved = _orders_qs().get(pk=order.id)
        return Response(
            {"message": "Order placed successfully", "order": render_order(saved)},
            status=status.HTTP_201_CREATED,
        )


class OrderDetailView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, order_id: str):
        qs = _orders_qs().filter(order_id=order_id)
        if not request.user.is_admin:
            qs = qs.filter(user_id=request.user.id)
        o = qs.first()
        if o is None:
            return error_response("ORDER_NOT_FOUND", "Order not found.", status.HTTP_404_NOT_FOUND)
        return Response(render_order(o), status=status.HTTP_200_OK)


class AdminOrdersView(APIView):
    permission_classes = [IsAdminRole]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_list"

    def get(self, request):
        qs = _orders_qs().select_related("user").order_by("-created_at")
        try:
            page = int(request.GET.get("page", 1))
            page_size = min(int(request.GET.get("page_size", 20)), 100)
        except ValueError:
            return error_response("INVALID_INPUT", "page and page_size must be integers.", status.HTTP_400_BAD_REQUEST)
        if page_size < 1:
            return error_response("INVALID_INPUT", "page_size must be positive.", status.HTTP_400_BAD_REQUEST)
        p = Paginator(qs, page_size)
        page_obj = p.get_page(page)

        results = []
        for o in page_obj.object_list:
            body = render_order(o)
            body["user"] = {"id": o.user_id, "username": o.user.username, "email": o.user.email}
            results.append(body)

        return Response(
            {
                "count": p.count,
                "page": page_obj.number,
                "page_size": page_size,
                "results": results,
            },
            status=status.HTTP_200_OK,
        )


class OrderStatusView(APIView):
    """Advance an order's status; body ``{"status": "Cancelled"}`` cancels."""

    permission_classes = [IsAdminRole]

    def put(self, request, order_id: str):
        try:
            dto = StatusUpdateDTO.model_validate(request.data or {})
        except ValidationError as e:
            return validation_error_response(e)

        service = providers.get_order_service()
        try:
            change = service.advance_status(order_id, is_admin=request.user.is_admin, target=dto.status)
        except OrderError as e:
            return domain_error_response(e)

        saved = _orders_qs().get(pk=change.order.id)
        return Response(
            {
                "message": "Order status updated successfully",
                "previous_status": change.previous.value,
                "order": render_order(saved),
            },
            status=status.HTTP_200_OK,
        )
