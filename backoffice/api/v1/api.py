from fastapi import APIRouter
from backoffice.api.v1.endpoints import payables, receivables, reports, sales

api_router = APIRouter()

api_router.include_router(payables.router, prefix="/payables", tags=["payables"])
api_router.include_router(receivables.router, prefix="/receivables", tags=["receivables"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
