from skillchain.routes.categories import router as categories_router
from skillchain.routes.assessments import router as tests_router
from skillchain.routes.user import router as user_router

__all__ = ["categories_router", "tests_router", "user_router"]
