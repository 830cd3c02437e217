from fastapi import APIRouter, Depends

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes
from stockroom.repositories.gateway import SortCriterion
from stockroom.services import endpoint

messages = {
    "conflict": "Category already exists",
    "missing": "Category does not exist",
}

category = endpoint.resource("category", "categoryID", messages)
category.get_all = endpoint.get_all(
    "category",
    messages=messages,
    sort_by=[SortCriterion("name")],
    search_columns=["name"],
)

router = APIRouter(prefix="/category", tags=["Categories"], dependencies=[Depends(verify)])
add_resource_routes(router, category, "categoryID", "category")
