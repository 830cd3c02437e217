from fastapi import APIRouter, Depends

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes
from stockroom.core.exceptions import BadRequestError
from stockroom.db.tables import rental
from stockroom.repositories.gateway import SortCriterion
from stockroom.repositories.modifiers import compose
from stockroom.services import endpoint

messages = {
    "conflict": "Rental already exists",
    "missing": "Rental or item does not exist",
}

references = {"barcode": "item", "userID": "user"}


class ActiveFilter:
    """``?active=true`` keeps open rentals, ``?active=false`` returned ones."""

    def apply(self, request, statement):
        raw = request.query_params.get("active")
        if raw is None:
            return statement
        raw = raw.lower()
        if raw in ("1", "true", "yes"):
            return statement.where(rental.c.returnDate.is_(None))
        if raw in ("0", "false", "no"):
            return statement.where(rental.c.returnDate.is_not(None))
        raise BadRequestError("active must be true or false", details={"parameter": "active"})


class ForUser:
    """``?userID=`` restricts to one renter."""

    def apply(self, request, statement):
        raw = request.query_params.get("userID")
        if not raw:
            return statement
        try:
            return statement.where(rental.c.userID == int(raw))
        except ValueError:
            raise BadRequestError("userID must be an integer", details={"parameter": "userID"})


rental_endpoints = endpoint.resource("rental", "rentalID", messages)
rental_endpoints.create = endpoint.create("rental", "rentalID", messages=messages, references=references)
rental_endpoints.update = endpoint.update("rental", "rentalID", messages=messages, references=references)
rental_endpoints.get_all = endpoint.get_all(
    "rental",
    modify=compose(ActiveFilter(), ForUser()),
    messages=messages,
    sort_by=[SortCriterion("startDate", ascending=False), SortCriterion("rentalID", ascending=False)],
    search_columns=["barcode"],
)

router = APIRouter(prefix="/rental", tags=["Rentals"], dependencies=[Depends(verify)])
add_resource_routes(router, rental_endpoints, "rentalID", "rental")
