from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.contracts import router as contracts_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / AUTH
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# IDENTITY REGISTRY
# ------------------------------------------------------------------
v1_router.include_router(users_router, tags=["users"])

# ------------------------------------------------------------------
# CONTRACTS (off-chain copy of ledger contracts)
# ------------------------------------------------------------------
v1_router.include_router(contracts_router, tags=["contracts"])
