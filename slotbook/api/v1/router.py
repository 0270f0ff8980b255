"""
API v1 router setup
Business scoping comes from the path; authentication is handled upstream.
"""
from fastapi import APIRouter

from slotbook.api.v1 import appointments, availability

api_v1_router = APIRouter()

api_v1_router.include_router(availability.router)
api_v1_router.include_router(appointments.router)
