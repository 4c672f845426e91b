import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _env_float(env_var: str, default: float, *, minimum: float = 0.0) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid number (got %r); defaulting to %s",
            env_var,
            raw_value,
            default,
        )
        return default

    if value < minimum:
        logger.warning("%s must be >= %s; defaulting to %s", env_var, minimum, default)
        return default

    return value


def _env_int(env_var: str, default: int, *, minimum: int = 0) -> int:
    value = _env_float(env_var, float(default), minimum=float(minimum))
    if value != int(value):
        logger.warning("%s must be a whole number; defaulting to %s", env_var, default)
        return default
    return int(value)


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Rating replay policy
RATING_SEED = _env_float("RATING_SEED", 1200.0)
RATING_K_PROVISIONAL = _env_float("RATING_K_PROVISIONAL", 40.0)
RATING_K_ESTABLISHED = _env_float("RATING_K_ESTABLISHED", 20.0)
RATING_PROVISIONAL_THRESHOLD = _env_int("RATING_PROVISIONAL_THRESHOLD", 10, minimum=1)

STANDINGS_CACHE_TTL = _env_float("STANDINGS_CACHE_TTL", 30.0)
