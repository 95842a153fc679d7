from fastapi import APIRouter

from app.modules.auth import router as auth_router
from app.modules.user_bulk_actions import router as user_bulk_actions_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(
    user_bulk_actions_router,
    prefix="/admin/users/bulk-actions",
    tags=["Admin - Users"],
)
