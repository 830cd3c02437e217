"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the inventory backend
"""
from fastapi import APIRouter

from stockroom.api.v1 import auth, brand, category, custom_field, item, kit, model, rental, user

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        500: {"description": "Internal Server Error"},
    }
)

router.include_router(auth.router)
router.include_router(category.router)
router.include_router(brand.router)
router.include_router(model.router)
router.include_router(kit.router)
router.include_router(item.router)
router.include_router(custom_field.router)
router.include_router(rental.router)
router.include_router(user.router)

__all__ = ["router"]
