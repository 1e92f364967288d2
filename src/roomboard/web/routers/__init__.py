from roomboard.web.routers.auth import router as auth_router
from roomboard.web.routers.bootstrap import router as bootstrap_router
from roomboard.web.routers.device import router as device_router
from roomboard.web.routers.profile import router as profile_router
from roomboard.web.routers.rooms import router as rooms_router
from roomboard.web.routers.users import router as users_router

__all__ = [
    "auth_router",
    "bootstrap_router",
    "device_router",
    "profile_router",
    "rooms_router",
    "users_router",
]
