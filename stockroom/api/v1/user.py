"""
User resource.

Users are created through ``POST /auth/register``. Password hashes never
leave the store: every read goes through ``without_password``.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from stockroom.api.deps import check_admin, check_user_matches, get_auth_settings, verify
from stockroom.core.exceptions import BadRequestError, ForbiddenError
from stockroom.core.security import AuthSettings, PasswordHasher
from stockroom.db.errors import StoreError
from stockroom.db.session import get_db
from stockroom.db.tables import role, user
from stockroom.repositories.gateway import RowGateway, SortCriterion
from stockroom.repositories.modifiers import bind_modify
from stockroom.services import endpoint

messages = {
    "conflict": "User with this email already exists",
    "missing": "User does not exist",
}

# Columns only an administrator may change
PRIVILEGED_COLUMNS = ("roleID", "organizationID")


class RemovePasswordAddRole:
    """All user columns except the password hash, plus the role name as ``role``."""

    def apply(self, request, statement):
        columns = [column for column in user.c if column.name != "password"]
        return (
            statement
            .with_only_columns(*columns, role.c.name.label("role"))
            .join(role, role.c.roleID == user.c.roleID)
        )


without_password = RemovePasswordAddRole()

user_endpoints = endpoint.resource("user", "userID", messages)
user_endpoints.get_all = endpoint.get_all(
    "user",
    modify=without_password,
    messages=messages,
    sort_by=[SortCriterion("lastName"), SortCriterion("firstName")],
    search_columns=["firstName", "lastName", "email"],
)
user_endpoints.get = endpoint.get("user", "userID", modify=without_password, messages=messages)


async def update_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth_settings: AuthSettings = Depends(get_auth_settings),
):
    """Update a user; a new password is hashed before it is stored."""
    payload = await endpoint.read_body(request)

    caller = request.state.user
    if not caller.is_admin and any(column in payload for column in PRIVILEGED_COLUMNS):
        raise ForbiddenError("Must be an administrator")

    if "password" in payload:
        password = payload["password"]
        if not isinstance(password, str) or not password:
            raise BadRequestError("Password must be a non-empty string", details={"field": "password"})
        hasher = PasswordHasher(auth_settings.bcrypt_rounds)
        payload["password"] = await run_in_threadpool(hasher.hash, password)

    try:
        return await RowGateway(db).update(
            "user",
            "userID",
            request.path_params["userID"],
            payload,
            caller.organization_id,
            res_modify=bind_modify(without_password, request),
        )
    except StoreError as err:
        endpoint.handle_error(err, messages, request)


user_endpoints.update = update_user

router = APIRouter(prefix="/user", tags=["Users"], dependencies=[Depends(verify)])
router.add_api_route("", user_endpoints.get_all, methods=["GET"], name="get all users")
router.add_api_route("/{userID}", user_endpoints.get, methods=["GET"], name="get user")
router.add_api_route(
    "/{userID}",
    user_endpoints.update,
    methods=["PUT"],
    name="update user",
    dependencies=[Depends(check_user_matches)],
)
router.add_api_route(
    "/{userID}",
    user_endpoints.delete,
    methods=["DELETE"],
    name="delete user",
    dependencies=[Depends(check_admin)],
)
