from fastapi import APIRouter
from .endpoints import hl7, system

api_router = APIRouter()

api_router.include_router(hl7.router, tags=["HL7 over HTTP"])
api_router.include_router(system.router, tags=["System Infrastructure"])
