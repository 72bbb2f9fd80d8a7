from skillchain.utils.logger import get_logger
from skillchain.utils.validators import validate_wallet_address, validate_signature, slugify

__all__ = [
    "get_logger",
    "validate_wallet_address", "validate_signature", "slugify",
]
