"""
Item resource.

Items are keyed by barcode. Listings carry model, brand and category
names and can be filtered with ``?modelID=``, ``?brandID=`` and
``?categoryID=``. Each item also exposes its rental history and the
organization's custom fields with the item's values.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import and_
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes, organization_id, query_int
from stockroom.core.exceptions import BadRequestError
from stockroom.db.errors import StoreError, StoreErrorCode
from stockroom.db.session import get_db
from stockroom.db.tables import brand, category, custom_field, item, item_custom_field, model, rental
from stockroom.repositories.gateway import RowGateway, SortCriterion
from stockroom.repositories.modifiers import (
    WherePathParam,
    bind_modify,
    compose,
    same_organization,
)
from stockroom.services import endpoint

messages = {
    "conflict": "Item with this barcode already exists",
    "missing": "Item does not exist",
}

field_messages = {
    "missing": "Item or custom field does not exist",
}

references = {"modelID": "model", "categoryID": "category"}


class WithFieldsAndFilters:
    """Item columns with model, brand and category names, plus query filters."""

    filters = (
        ("modelID", item.c.modelID),
        ("categoryID", item.c.categoryID),
        ("brandID", brand.c.brandID),
    )

    def apply(self, request, statement):
        statement = (
            statement
            .with_only_columns(
                *item.c,
                model.c.name.label("model"),
                brand.c.brandID,
                brand.c.name.label("brand"),
                category.c.name.label("category"),
            )
            .join(model, same_organization(model, item, "modelID"))
            .join(brand, same_organization(brand, model, "brandID"))
            .join(category, same_organization(category, item, "categoryID"))
        )

        for param, column in self.filters:
            value = query_int(request, param)
            if value is not None:
                statement = statement.where(column == value)
        return statement


class WithActiveRental:
    """Adds the open rental (if any) as ``rentalID`` / ``rentedBy`` / ``dueDate``."""

    def apply(self, request, statement):
        return (
            statement
            .add_columns(rental.c.rentalID, rental.c.userID.label("rentedBy"), rental.c.dueDate)
            .outerjoin(
                rental,
                and_(
                    same_organization(rental, item, "barcode"),
                    rental.c.returnDate.is_(None),
                ),
            )
        )


class WithCustomFields:
    """All custom fields of the organization with this item's value, if set."""

    def apply(self, request, statement):
        return (
            statement
            .with_only_columns(
                custom_field.c.customFieldID,
                custom_field.c.name,
                item_custom_field.c.value,
            )
            .outerjoin(
                item_custom_field,
                and_(
                    item_custom_field.c.customFieldID == custom_field.c.customFieldID,
                    item_custom_field.c.barcode == request.path_params["barcode"],
                ),
            )
        )


with_fields_and_filters = WithFieldsAndFilters()
with_details = compose(with_fields_and_filters, WithActiveRental())
for_item = WherePathParam(rental.c.barcode)
for_field = compose(
    WherePathParam(item_custom_field.c.barcode),
    WherePathParam(item_custom_field.c.customFieldID),
)

item_endpoints = endpoint.resource("item", "barcode", messages)
item_endpoints.get_all = endpoint.get_all(
    "item",
    modify=with_fields_and_filters,
    messages=messages,
    sort_by=[SortCriterion("barcode")],
    search_columns=["barcode", "serial", "notes", "model.name", "brand.name", "category.name"],
)
item_endpoints.get = endpoint.get("item", "barcode", modify=with_details, messages=messages)
item_endpoints.create = endpoint.create(
    "item", "barcode", res_modify=with_details, messages=messages, references=references
)
item_endpoints.update = endpoint.update(
    "item", "barcode", res_modify=with_details, messages=messages, references=references
)

item_endpoints.get_rentals = endpoint.get_all(
    "rental",
    modify=for_item,
    messages=messages,
    sort_by=[SortCriterion("startDate", ascending=False)],
)
item_endpoints.get_fields = endpoint.get_all(
    "customField",
    modify=WithCustomFields(),
    messages=field_messages,
    sort_by=[SortCriterion("name")],
)


async def update_field(request: Request, db: AsyncSession = Depends(get_db)):
    """Set the value of one custom field for an item."""
    payload = await endpoint.read_body(request)
    if set(payload) != {"value"}:
        raise BadRequestError(endpoint.choose_message("bad_request"))

    barcode = request.path_params["barcode"]
    custom_field_id = request.path_params["customFieldID"]
    gateway = RowGateway(db)
    org = organization_id(request)
    bound = bind_modify(for_field, request)

    try:
        await gateway.get("item", "barcode", barcode, org)
        await gateway.get("customField", "customFieldID", custom_field_id, org)
        try:
            return await gateway.update(
                "itemCustomField", "barcode", barcode, payload, modify=bound, res_modify=bound
            )
        except StoreError as err:
            # No value stored yet
            if err.code != StoreErrorCode.NOT_FOUND:
                raise
        return await gateway.create(
            "itemCustomField",
            "barcode",
            {**payload, "barcode": barcode, "customFieldID": custom_field_id},
            res_modify=bound,
        )
    except StoreError as err:
        endpoint.handle_error(err, field_messages, request)


item_endpoints.update_field = update_field

router = APIRouter(prefix="/item", tags=["Items"], dependencies=[Depends(verify)])
add_resource_routes(router, item_endpoints, "barcode", "item")
router.add_api_route(
    "/{barcode}/rentals", item_endpoints.get_rentals, methods=["GET"], name="get rentals for item"
)
router.add_api_route(
    "/{barcode}/field", item_endpoints.get_fields, methods=["GET"], name="get custom fields for item"
)
router.add_api_route(
    "/{barcode}/field/{customFieldID}",
    item_endpoints.update_field,
    methods=["PUT"],
    name="update custom field for item",
)
