"""
User Routes — Per-wallet statistics and certificates.
"""
from fastapi import APIRouter, Depends, HTTPException

from skillchain.dependencies import get_storage
from skillchain.schemas.schemas import UserStats
from skillchain.storage import Storage
from skillchain.utils.validators import validate_wallet_address

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/stats/{wallet_address}", response_model=UserStats)
def get_user_stats(wallet_address: str, storage: Storage = Depends(get_storage)):
    """Get stats for a wallet, creating an empty record on first access."""
    if not validate_wallet_address(wallet_address):
        raise HTTPException(status_code=422, detail="Invalid Solana wallet address")
    return storage.get_user_stats(wallet_address)
