"""
Runtime configuration for Recipe Genius.

Values come from the environment (a local .env file is loaded on import).
Provider credentials are read lazily by the provider registry so that
tests can patch the environment per case.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_env_var(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return a stripped environment variable, or default if unset/blank."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_int_env(name: str, default: int) -> int:
    """Integer environment variable with a fallback for unparseable values."""
    value = get_env_var(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


APP_VERSION = get_env_var("APP_VERSION", "1.0.0")
ENVIRONMENT = get_env_var("ENVIRONMENT", "development")
DEBUG = get_env_var("DEBUG", "false").lower() == "true"

# Outbound call timeouts (seconds)
RECIPE_TIMEOUT_SECONDS = 60
KEY_TEST_TIMEOUT_SECONDS = 15
VISION_TIMEOUT_SECONDS = 30

# Whole-pipeline retry budgets
DEFAULT_MAX_RETRIES = 3
GENERATION_RETRY_DELAY_MS = 2000
NUTRITION_RETRY_DELAY_MS = 1500
RECOGNITION_MAX_RETRIES = 2
RECOGNITION_RETRY_DELAY_MS = 1000
RECOGNITION_TIMEOUT_MS = 30000

# Fixed-window rate limits, per client IP
RATE_LIMIT_WINDOW_SECONDS = get_int_env("RATE_LIMIT_WINDOW_SECONDS", 60)
AI_RATE_LIMIT = get_int_env("AI_RATE_LIMIT", 20)
HEALTH_RATE_LIMIT = get_int_env("HEALTH_RATE_LIMIT", 1000)

# Health check is degraded past this response time
HEALTH_MAX_RESPONSE_MS = 5000

MAX_IMAGE_MB = 10
MAX_INGREDIENT_LENGTH = 50
