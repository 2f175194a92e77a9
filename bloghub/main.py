import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bloghub.api.auth import router as auth_router
from bloghub.api.blog import router as blog_router
from bloghub.api.users import router as users_router
from bloghub.config import DEV_JWT_SECRET, Settings
from bloghub.database import Database
from bloghub.services.security import PasswordHasher, TokenIssuer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.database.init()
    yield
    app.state.database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if settings.jwt_secret == DEV_JWT_SECRET:
        logger.warning("JWT_SECRET not set, signing tokens with the development secret")

    app = FastAPI(
        title="bloghub",
        lifespan=lifespan,
        docs_url=None if settings.env == "prod" else "/docs",
        redoc_url=None if settings.env == "prod" else "/redoc",
    )

    # Collaborators live on app.state and reach handlers through dependencies
    app.state.settings = settings
    app.state.database = Database(settings.database_url)
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_minutes=settings.access_token_ttl_minutes,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(blog_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()
