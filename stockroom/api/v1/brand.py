from fastapi import APIRouter, Depends

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes
from stockroom.repositories.gateway import SortCriterion
from stockroom.services import endpoint

messages = {
    "conflict": "Brand already exists",
    "missing": "Brand does not exist",
}

brand = endpoint.resource("brand", "brandID", messages)
brand.get_all = endpoint.get_all(
    "brand",
    messages=messages,
    sort_by=[SortCriterion("name")],
    search_columns=["name"],
)

router = APIRouter(prefix="/brand", tags=["Brands"], dependencies=[Depends(verify)])
add_resource_routes(router, brand, "brandID", "brand")
