"""Address book endpoints.

Every query is scoped to the requesting user: another user's address is
indistinguishable from a missing one (404). An address that an order still
points at cannot be deleted.
"""

from django.db.models.deletion import ProtectedError
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from gateway.responses import error_response, validation_error_response

from .models import Address
from .schemas import AddressIn, AddressOut


def render_address(a: Address) -> dict:
    return AddressOut(
        id=a.id,
        address_line1=a.address_line1,
        city=a.city,
        state=a.state,
        pin_code=a.pin_code,
        country=a.country,
        mobile=a.mobile,
        user_id=a.user_id,
    ).model_dump()


def _not_found() -> Response:
    return error_response("ADDRESS_NOT_FOUND", "Address not found.", status.HTTP_404_NOT_FOUND)


class AddressCollectionView(APIView):
    def get(self, request):
        addresses = Address.objects.filter(user=request.user)
        return Response({"addresses": [render_address(a) for a in addresses]})

    def post(self, request):
        try:
            dto = AddressIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        address = Address.objects.create(user=request.user, **dto.model_dump())
        return Response(
            {"message": "Address added successfully", "address": render_address(address)},
            status=status.HTTP_201_CREATED,
        )


class AddressDetailView(APIView):
    def _get(self, request, address_id):
        return Address.objects.filter(pk=address_id, user=request.user).first()

    def get(self, request, address_id: int):
        address = self._get(request, address_id)
        if address is None:
            return _not_found()
        return Response({"address": render_address(address)})

    def put(self, request, address_id: int):
        address = self._get(request, address_id)
        if address is None:
            return _not_found()
        try:
            dto = AddressIn.model_validate(request.data)
        except ValidationError as e:
            return validation_error_response(e)
        for name, value in dto.model_dump().items():
            setattr(address, name, value)
        address.save()
        return Response({"message": "Address updated successfully", "address": render_address(address)})

    def delete(self, request, address_id: int):
        address = self._get(request, address_id)
        if address is None:
            return _not_found()
        try:
            address.delete()
        except ProtectedError:
            return error_response(
                "ADDRESS_IN_USE", "Address is referenced by an order and cannot be deleted.", status.HTTP_409_CONFLICT
            )
        return Response({"message": "Address deleted successfully"})
