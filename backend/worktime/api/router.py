from fastapi import APIRouter

from worktime.api.balances import employee_overtime_router
from worktime.api.holidays import holidays_router
from worktime.api.reports import reports_router
from worktime.api.rollover import rollover_router

api_router = APIRouter()
api_router.include_router(employee_overtime_router)
api_router.include_router(reports_router)
api_router.include_router(rollover_router)
api_router.include_router(holidays_router)
