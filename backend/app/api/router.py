"""
Main API router.
"""

from fastapi import APIRouter
from app.api import expenses, currency, users

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(expenses.router)
api_router.include_router(currency.router)
