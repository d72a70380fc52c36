import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./therapy.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:3000"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

SESSION_DURATION_MINUTES = int(os.getenv("SESSION_DURATION_MINUTES", "45"))
SESSION_BREAK_MINUTES = int(os.getenv("SESSION_BREAK_MINUTES", "15"))

# "start" drops a slot only when a booked session shares its start time,
# "overlap" drops any slot whose interval intersects a booked session.
SLOT_COLLISION_MODE = os.getenv("SLOT_COLLISION_MODE", "start").strip().lower()
SLOT_COLLISION_MODES = {"start", "overlap"}

AUTO_COMPLETE_ENABLED = _get_bool(os.getenv("AUTO_COMPLETE_ENABLED"), default=True)
AUTO_COMPLETE_INTERVAL_MINUTES = int(os.getenv("AUTO_COMPLETE_INTERVAL_MINUTES", "5"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SESSION_DURATION_MINUTES <= 0:
        raise RuntimeError("SESSION_DURATION_MINUTES must be positive.")
    if SESSION_BREAK_MINUTES < 0:
        raise RuntimeError("SESSION_BREAK_MINUTES cannot be negative.")
    if SLOT_COLLISION_MODE not in SLOT_COLLISION_MODES:
        raise RuntimeError(f"SLOT_COLLISION_MODE must be one of {sorted(SLOT_COLLISION_MODES)}.")
    if AUTO_COMPLETE_INTERVAL_MINUTES <= 0:
        raise RuntimeError("AUTO_COMPLETE_INTERVAL_MINUTES must be positive.")
