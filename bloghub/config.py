import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEV_JWT_SECRET = "bloghub-dev-secret-change-me-before-deploying-anywhere"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    env: str = "dev"
    database_url: str = "sqlite:///./bloghub.db"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 24 * 60
    is_production: bool = False
    bcrypt_rounds: int = 10
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.getenv("ENV", "dev")
        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            if env == "prod":
                raise RuntimeError("JWT_SECRET must be set when ENV=prod")
            jwt_secret = DEV_JWT_SECRET

        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")

        return cls(
            env=env,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./bloghub.db"),
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            access_token_ttl_minutes=int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", 24 * 60)),
            is_production=_env_bool("IS_PRODUCTION"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", 10)),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
