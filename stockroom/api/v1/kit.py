"""
Kit resource.

A kit groups models with a quantity each. Kit rows are tenant-scoped;
``kitModel`` rows have no organization of their own and are scoped
through the kit they belong to.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.api.deps import verify
from stockroom.api.v1.common import add_resource_routes, organization_id, path_int
from stockroom.core.exceptions import BadRequestError
from stockroom.db.errors import StoreError
from stockroom.db.session import get_db
from stockroom.db.tables import brand, kit, kit_model, model
from stockroom.repositories.gateway import RowGateway, SortCriterion
from stockroom.repositories.modifiers import bind_modify, compose, same_organization
from stockroom.services import endpoint

messages = {
    "conflict": "Kit already exists",
    "missing": "Kit does not exist",
}

model_messages = {
    "conflict": "Model is already in kit",
    "missing": "Kit or model does not exist",
}


class ForKit:
    """``kitModel`` rows of the path kit, if that kit belongs to the caller."""

    def apply(self, request, statement):
        owned = select(kit.c.kitID).where(kit.c.organizationID == organization_id(request))
        return statement.where(
            kit_model.c.kitID == path_int(request, "kitID"),
            kit_model.c.kitID.in_(owned),
        )


class WithModelDetails:
    """Kit contents with model and brand names."""

    def apply(self, request, statement):
        return (
            statement
            .with_only_columns(
                kit_model.c.kitID,
                kit_model.c.modelID,
                kit_model.c.quantity,
                model.c.name.label("model"),
                brand.c.name.label("brand"),
            )
            .join(
                model,
                and_(
                    model.c.modelID == kit_model.c.modelID,
                    model.c.organizationID == organization_id(request),
                ),
            )
            .join(brand, same_organization(brand, model, "brandID"))
        )


for_kit = ForKit()
with_model_details = compose(for_kit, WithModelDetails())

kit_endpoints = endpoint.resource("kit", "kitID", messages)
kit_endpoints.get_all = endpoint.get_all(
    "kit", messages=messages, sort_by=[SortCriterion("name")], search_columns=["name"]
)

kit_endpoints.get_models = endpoint.get_all(
    "kitModel",
    modify=with_model_details,
    messages=model_messages,
    has_organization_id=False,
    sort_by=[SortCriterion("model.name")],
)
kit_endpoints.delete_model = endpoint.delete(
    "kitModel", "modelID", modify=for_kit, messages=model_messages, has_organization_id=False
)


async def _require_kit_payload(request: Request, db: AsyncSession) -> dict:
    """Body of a kit model write; the kit and model must both be visible to the caller."""
    payload = await endpoint.read_body(request)
    kit_id = path_int(request, "kitID")

    if payload.get("kitID") not in (None, kit_id):
        raise BadRequestError("kitID cannot be changed")
    payload["kitID"] = kit_id

    gateway = RowGateway(db)
    org = organization_id(request)
    try:
        await gateway.get("kit", "kitID", kit_id, org)
        model_id = payload.get("modelID")
        if model_id is not None:
            await gateway.get("model", "modelID", model_id, org)
    except StoreError as err:
        endpoint.handle_error(err, model_messages, request)
    return payload


async def create_model(request: Request, db: AsyncSession = Depends(get_db)):
    """Add a model to a kit."""
    payload = await _require_kit_payload(request, db)
    if payload.get("modelID") is None:
        raise BadRequestError("missing modelID in body")

    try:
        return await RowGateway(db).create(
            "kitModel",
            "modelID",
            payload,
            res_modify=bind_modify(with_model_details, request),
        )
    except StoreError as err:
        endpoint.handle_error(err, model_messages, request)


async def update_model(request: Request, db: AsyncSession = Depends(get_db)):
    """Change the quantity (or the model) of a kit entry."""
    payload = await _require_kit_payload(request, db)

    try:
        return await RowGateway(db).update(
            "kitModel",
            "modelID",
            request.path_params["modelID"],
            payload,
            modify=bind_modify(for_kit, request),
            res_modify=bind_modify(with_model_details, request),
        )
    except StoreError as err:
        endpoint.handle_error(err, model_messages, request)


kit_endpoints.create_model = create_model
kit_endpoints.update_model = update_model

router = APIRouter(prefix="/kit", tags=["Kits"], dependencies=[Depends(verify)])
add_resource_routes(router, kit_endpoints, "kitID", "kit")
router.add_api_route(
    "/{kitID}/model", kit_endpoints.get_models, methods=["GET"], name="get models in kit"
)
router.add_api_route(
    "/{kitID}/model", kit_endpoints.create_model, methods=["PUT"], name="add model to kit"
)
router.add_api_route(
    "/{kitID}/model/{modelID}", kit_endpoints.update_model, methods=["PUT"], name="update model in kit"
)
router.add_api_route(
    "/{kitID}/model/{modelID}", kit_endpoints.delete_model, methods=["DELETE"], name="remove model from kit"
)
