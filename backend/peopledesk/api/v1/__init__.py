from fastapi import APIRouter

from peopledesk.api.v1 import auth, dashboard, departments, employees, leave, live

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(leave.router, prefix="/leave-requests", tags=["leave-requests"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(live.router, prefix="/live", tags=["live"])
