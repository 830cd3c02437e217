"""
Model resource.

Models belong to a brand; listings carry the brand name and a model can
list the kits it is part of.
"""

from fastapi import APIRouter, Depends

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes, organization_id, path_int
from stockroom.db.tables import brand, kit, kit_model, model
from stockroom.repositories.gateway import SortCriterion
from stockroom.repositories.modifiers import same_organization
from stockroom.services import endpoint

messages = {
    "conflict": "Model already exists",
    "missing": "Model does not exist",
}

references = {"brandID": "brand"}


class WithBrandName:
    """Model columns plus the brand name as ``brand``."""

    def apply(self, request, statement):
        return (
            statement
            .with_only_columns(*model.c, brand.c.name.label("brand"))
            .join(brand, same_organization(brand, model, "brandID"))
        )


class KitsForModel:
    """Kits of the caller's organization that contain the path model."""

    def apply(self, request, statement):
        return (
            statement
            .with_only_columns(kit.c.kitID, kit.c.name, kit_model.c.quantity)
            .join(kit, kit.c.kitID == kit_model.c.kitID)
            .where(
                kit_model.c.modelID == path_int(request, "modelID"),
                kit.c.organizationID == organization_id(request),
            )
        )


with_brand_name = WithBrandName()
kits_for_model = KitsForModel()

model_endpoints = endpoint.resource("model", "modelID", messages)
model_endpoints.get_all = endpoint.get_all(
    "model",
    modify=with_brand_name,
    messages=messages,
    sort_by=[SortCriterion("name")],
    search_columns=["name", "description", "brand.name"],
)
model_endpoints.get = endpoint.get("model", "modelID", modify=with_brand_name, messages=messages)
model_endpoints.create = endpoint.create(
    "model", "modelID", res_modify=with_brand_name, messages=messages, references=references
)
model_endpoints.update = endpoint.update(
    "model", "modelID", res_modify=with_brand_name, messages=messages, references=references
)
model_endpoints.get_kits = endpoint.get_all(
    "kitModel",
    modify=kits_for_model,
    messages=messages,
    has_organization_id=False,
    sort_by=[SortCriterion("kit.name")],
)

router = APIRouter(prefix="/model", tags=["Models"], dependencies=[Depends(verify)])
add_resource_routes(router, model_endpoints, "modelID", "model")
router.add_api_route(
    "/{modelID}/kits", model_endpoints.get_kits, methods=["GET"], name="get kits for model"
)
