import os
import re
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse '1h', '30m', '7d', '45s' or a bare number of seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


class Config:
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/anyware-challenge")
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "1h")
    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000")
    PORT = int(os.getenv("PORT", 5000))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEMO_USER_EMAIL = "student@anyware.com"

    # fixed-window limits, "<count>/<window>"
    API_RATE_LIMIT = os.getenv("API_RATE_LIMIT", "100/15 minutes")
    AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "5/15 minutes")
    CREATE_RATE_LIMIT = os.getenv("CREATE_RATE_LIMIT", "10/1 minute")

    if ENVIRONMENT == "test":
        API_RATE_LIMIT = "10000/15 minutes"
        AUTH_RATE_LIMIT = "1000/15 minutes"
        CREATE_RATE_LIMIT = "1000/1 minute"

    @classmethod
    def token_lifetime(cls) -> timedelta:
        return parse_duration(cls.JWT_EXPIRES_IN)

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == "production"
