import os
import sys
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "True")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",")

# Include Django's manage.py test invocation.
TESTING = (
    "PYTEST_CURRENT_TEST" in os.environ
    or "pytest" in sys.argv
    or "test" in sys.argv
)

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "accounts.apps.AccountsConfig",  # Tenants, users, roles
    "accounting.apps.AccountingConfig",  # Ledger engine
]

# =============================================================================
# Database Configuration
# =============================================================================
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "accounts.User"

# =============================================================================
# Ledger Engine
# =============================================================================
# Reject journal entries dated after "today". Companies may override this
# through Company.reject_future_dated.
LEDGER_REJECT_FUTURE_DATED = os.getenv("LEDGER_REJECT_FUTURE_DATED", "True") == "True"

# Precision used when a company does not configure its own decimal places.
LEDGER_DEFAULT_DECIMAL_PLACES = int(os.getenv("LEDGER_DEFAULT_DECIMAL_PLACES", "2"))

# Rows fetched per round-trip while streaming journal lines for aggregation.
LEDGER_AGGREGATION_CHUNK_SIZE = int(os.getenv("LEDGER_AGGREGATION_CHUNK_SIZE", "2000"))

# =============================================================================
# Structured Logging Configuration
# =============================================================================
from ops.logging_config import get_logging_config
LOGGING = get_logging_config(DEBUG)
