from .users import router as users_router
from .accounts import router as accounts_router

__all__ = [
    'users_router',
    'accounts_router',
]
