from .guard import CSRFGuard, CSRFToken
from .token import TokenRecord, compare_tokens, generate_token

__all__ = ["CSRFGuard", "CSRFToken", "TokenRecord", "compare_tokens", "generate_token"]
