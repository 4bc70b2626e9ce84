"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from signup_api.api.routes import participants, signup

api_router = APIRouter()
api_router.include_router(signup.router)
api_router.include_router(participants.router)
