from fastapi import APIRouter
from fintrack.routes import account_settings, categories, transactions

api_router = APIRouter()

api_router.include_router(account_settings.router, prefix="/account-settings", tags=["account"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
