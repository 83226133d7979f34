import os
import secrets
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_flag(name, default):
    return os.environ.get(name, default).lower() == "true"


def _env_int(name, default):
    return int(os.environ.get(name) or default)


def _secret_key():
    key = os.environ.get("SECRET_KEY")
    if key:
        return key
    warnings.warn(
        "SECRET_KEY not set, sessions will not survive a restart", UserWarning
    )
    return secrets.token_urlsafe(32)


class Config:
    SECRET_KEY = _secret_key()

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """DATABASE_URL, else PostgreSQL from DB_* variables, else a local SQLite file"""
        if os.environ.get("DATABASE_URL"):
            return os.environ["DATABASE_URL"]

        if os.environ.get("DB_TYPE", "sqlite").lower() != "postgresql":
            return "sqlite:///" + os.path.join(basedir, "focus_arena.db")

        return "postgresql+psycopg://{user}:{password}@{host}:{port}/{name}".format(
            user=os.environ.get("DB_USER") or "focus_user",
            password=os.environ.get("DB_PASSWORD") or "focus_password",
            host=os.environ.get("DB_HOST") or "localhost",
            port=os.environ.get("DB_PORT") or "5432",
            name=os.environ.get("DB_NAME") or "focus_arena_db",
        )

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" or "memory"
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql")

    # Calendar day boundary for daily tasks and the today leaderboard
    TIMEZONE = os.environ.get("TIMEZONE", "UTC")
    DAILY_TASK_COUNT = _env_int("DAILY_TASK_COUNT", 3)

    LEADERBOARD_LIMIT = _env_int("LEADERBOARD_LIMIT", 20)
    TOTAL_LEADERBOARD_LIMIT = _env_int("TOTAL_LEADERBOARD_LIMIT", 50)
    HISTORY_LIMIT = _env_int("HISTORY_LIMIT", 10)
    SESSION_TIMEOUT = _env_int("SESSION_TIMEOUT", 86400)

    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = _env_int("CACHE_DEFAULT_TIMEOUT", 300)
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "focus_arena:"

    RATELIMIT_ENABLED = True
    SCORE_SUBMIT_RATE_LIMIT = os.environ.get("SCORE_SUBMIT_RATE_LIMIT", "30 per minute")

    # Daily task generation job
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED", "True")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_flag("LOG_TO_CONSOLE", "True")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "True")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO", "False")

    def __init__(self):
        super().__init__()
        try:
            import redis

            redis.Redis.from_url(self.CACHE_REDIS_URL).ping()
        except redis.exceptions.ConnectionError:
            self.CACHE_TYPE = "SimpleCache"
            warnings.warn("Redis not available, using SimpleCache", UserWarning)


class ProductionConfig(Config):
    DEBUG = False

    def __init__(self):
        super().__init__()
        if not os.environ.get("SECRET_KEY"):
            warnings.warn("PRODUCTION WARNING: SECRET_KEY is not set", UserWarning)
        if self.STORAGE_BACKEND == "memory":
            warnings.warn(
                "PRODUCTION WARNING: STORAGE_BACKEND=memory loses all scores on restart",
                UserWarning,
            )


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    STORAGE_BACKEND = "sql"
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False

    def _build_database_uri(self):
        return "sqlite:///:memory:"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
