from fastapi import APIRouter

from seniorhelp.modules.help_requests import router as help_requests_router
from seniorhelp.modules.help_requests import sessions_router
from seniorhelp.modules.users.admin_router import router as admin_students_router
from seniorhelp.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(help_requests_router, prefix="/requests", tags=["Help Requests"])

api_router.include_router(sessions_router, prefix="/sessions", tags=["Sessions"])

api_router.include_router(users_router, prefix="/users", tags=["Users"])

api_router.include_router(
    admin_students_router,
    prefix="/admin/students",
    tags=["Admin - Student Verification"],
)
