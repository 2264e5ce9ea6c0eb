from fastapi import APIRouter

from approvalflow.api.audit import audit_router
from approvalflow.api.balances import adjustment_router, employee_ledger_router
from approvalflow.api.calendar import calendar_router
from approvalflow.api.commands import commands_router
from approvalflow.api.employees import employees_router
from approvalflow.api.escalations import escalations_router
from approvalflow.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(calendar_router)
api_router.include_router(requests_router)
api_router.include_router(escalations_router)
api_router.include_router(employees_router)
api_router.include_router(employee_ledger_router)
api_router.include_router(adjustment_router)
api_router.include_router(audit_router)
api_router.include_router(commands_router)
