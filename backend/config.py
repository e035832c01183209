import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _split_origins(value):
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///quiz_platform.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSONIFY_PRETTYPRINT_REGULAR = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "supersecret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_EXPIRES_DAYS", "7")))
    CORS_ORIGINS = _split_origins(
        os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
    )
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "5555"))

    # Live game rooms are forgotten this long after they finish
    GAME_ROOM_TTL_SECONDS = 3600


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length"
    LOG_LEVEL = "WARNING"


class ProductionConfig(Config):
    DEBUG = False
    JSONIFY_PRETTYPRINT_REGULAR = False


config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(name=None):
    name = name or os.getenv("APP_ENV", "development")
    if name not in config_by_name:
        raise ValueError(f"Unknown config: {name}")
    return config_by_name[name]
