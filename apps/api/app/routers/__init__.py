from .routes_discover import router as discover_router
from .routes_genres import router as genres_router
from .routes_wizard import router as wizard_router

all_routers = [
    discover_router,
    wizard_router,
    genres_router,
]
