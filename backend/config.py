import os
from dotenv import load_dotenv

load_dotenv()


def _get_int(name: str, default: int) -> int:
    """Read an integer env var, falling back to default when unset or blank."""
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


def _get_optional_str(name: str):
    value = os.getenv(name, '').strip()
    return value or None


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    DEBUG = os.getenv('FLASK_DEBUG', 'True').lower() == 'true'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Raw transaction source
    # DATA_SOURCE_URL: spreadsheet-backed JSON endpoint (array of row objects,
    # or {"data": [...]})
    # DATA_CSV_PATH: local CSV export of the same sheet; used when no URL is set
    DATA_SOURCE_URL = _get_optional_str('DATA_SOURCE_URL')
    DATA_CSV_PATH = _get_optional_str('DATA_CSV_PATH')
    DATA_SOURCE_TIMEOUT_SECONDS = _get_int('DATA_SOURCE_TIMEOUT_SECONDS', 30)

    # How long a loaded dataset is served before the source is read again
    DATASET_CACHE_TTL_SECONDS = _get_int('DATASET_CACHE_TTL_SECONDS', 900)

    # Computed dashboard responses, keyed by dataset version + params
    DASHBOARD_CACHE_MAX_SIZE = _get_int('DASHBOARD_CACHE_MAX_SIZE', 256)
    DASHBOARD_CACHE_TTL_SECONDS = _get_int('DASHBOARD_CACHE_TTL_SECONDS', 300)

    # Performance summary (Anthropic)
    ANTHROPIC_API_KEY = _get_optional_str('ANTHROPIC_API_KEY')
    AI_MODEL = os.getenv('AI_MODEL', 'claude-sonnet-4-20250514')
    AI_MAX_TOKENS = _get_int('AI_MAX_TOKENS', 1024)
    # Finished summaries, keyed by the hashed context (dataset version included)
    AI_SUMMARY_CACHE_MAX_SIZE = _get_int('AI_SUMMARY_CACHE_MAX_SIZE', 128)
    AI_SUMMARY_CACHE_TTL_SECONDS = _get_int('AI_SUMMARY_CACHE_TTL_SECONDS', 3600)
