from fastapi import APIRouter

from .access_codes import router as access_codes_router
from .faucet import router as faucet_router
from .users import router as users_router

api_router = APIRouter()
api_router.include_router(access_codes_router, tags=["access_codes"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(faucet_router, prefix="/faucet", tags=["faucet"])
