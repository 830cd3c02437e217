from fastapi import APIRouter, Depends

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes
from stockroom.repositories.gateway import SortCriterion
from stockroom.services import endpoint

messages = {
    "conflict": "Custom field already exists",
    "missing": "Custom field does not exist",
}

custom_field = endpoint.resource("customField", "customFieldID", messages)
custom_field.get_all = endpoint.get_all(
    "customField",
    messages=messages,
    sort_by=[SortCriterion("name")],
    search_columns=["name"],
)

router = APIRouter(prefix="/custom-field", tags=["Custom Fields"], dependencies=[Depends(verify)])
add_resource_routes(router, custom_field, "customFieldID", "custom field")
