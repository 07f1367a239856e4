import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _parse_duration(raw, default):
    """Acepta segundos ("3600") o sufijos estilo "24h", "30m", "7d"."""
    if not raw:
        return default
    raw = raw.strip().lower()
    units = {"s": 1, "m": 60, "h": 3600, "d": 86400}
    if raw[-1] in units:
        return timedelta(seconds=int(raw[:-1]) * units[raw[-1]])
    return timedelta(seconds=int(raw))


class Config:
    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development").lower()

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///chatdesk.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT: siempre con expiración
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET") or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = _parse_duration(os.environ.get("JWT_EXPIRES_IN"), timedelta(hours=24))

    # Origen del frontend (CORS + Socket.IO)
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")

    # === Completion provider (API compatible con OpenAI) ===
    COMPLETION_API_KEY = os.environ.get("COMPLETION_API_KEY") or os.environ.get("OPENAI_API_KEY")
    COMPLETION_API_URL = os.environ.get(
        "COMPLETION_API_URL", "https://api.groq.com/openai/v1/chat/completions"
    )
    COMPLETION_MODEL = os.environ.get("COMPLETION_MODEL", "llama-3.1-8b-instant")
    COMPLETION_TIMEOUT = _env_float("COMPLETION_TIMEOUT", 30.0)
    COMPLETION_TEMPERATURE = 0.7
    COMPLETION_MAX_TOKENS = _env_int("COMPLETION_MAX_TOKENS", 1000)
    COMPLETION_FREQUENCY_PENALTY = 0.5
    COMPLETION_PRESENCE_PENALTY = 0.0
    HISTORY_LIMIT = 10

    # Espera de la base de datos al arrancar
    DB_CONNECT_RETRIES = _env_int("DB_CONNECT_RETRIES", 10)
    DB_CONNECT_DELAY = _env_float("DB_CONNECT_DELAY", 5.0)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
