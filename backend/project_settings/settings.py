import secrets
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

from decouple import Csv, config

BASE_DIR = Path(__file__).resolve().parent.parent


def get_csv(name: str, default: str = "") -> list[str]:
    return [item for item in config(name, cast=Csv(), default=default) if item]


DEBUG = config("DJANGO_DEBUG", cast=bool, default=False)
SECRET_KEY = config("DJANGO_SECRET_KEY", default="")
if not SECRET_KEY:
    if DEBUG:
        SECRET_KEY = secrets.token_urlsafe(64)
    else:
        raise ValueError("DJANGO_SECRET_KEY must be configured when DJANGO_DEBUG is False.")
ALLOWED_HOSTS = get_csv("DJANGO_ALLOWED_HOSTS", default="localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "iap",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "project_settings.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "project_settings.wsgi.application"


def get_database_config():
    db_name = config("DB_NAME", default="")
    db_user = config("DB_USER", default="")
    db_password = config("DB_PASSWORD", default="")
    db_host = config("DB_HOST", default="")
    db_port = config("DB_PORT", default="")

    if db_name and db_user and db_password:
        return {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": db_name,
            "USER": db_user,
            "PASSWORD": db_password,
            "HOST": db_host,
            "PORT": db_port,
        }

    database_url = config("DATABASE_URL", default="")
    if not database_url:
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }

    parsed = urlparse(database_url)
    scheme = parsed.scheme.lower()
    if scheme == "sqlite":
        if database_url.startswith("sqlite:////"):
            name = parsed.path
        elif parsed.path and parsed.path != "/":
            name = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
        else:
            name = BASE_DIR / "db.sqlite3"
        return {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": name,
        }

    if scheme in {"postgres", "postgresql"}:
        database = {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": parsed.path.lstrip("/") or "",
            "USER": unquote(parsed.username or ""),
            "PASSWORD": unquote(parsed.password or ""),
            "HOST": parsed.hostname or "",
            "PORT": str(parsed.port or ""),
        }
        options = {key: values[-1] for key, values in parse_qs(parsed.query).items() if values}
        if options:
            database["OPTIONS"] = options
        return database

    raise ValueError(f"Unsupported DATABASE_URL scheme: {parsed.scheme}")


# Purchase verification calls the stores outside any transaction; keep ATOMIC_REQUESTS off.
DATABASES = {"default": get_database_config()}

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CORS_ALLOWED_ORIGINS = get_csv("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = config("CORS_ALLOW_CREDENTIALS", cast=bool, default=True)
if DEBUG and not CORS_ALLOWED_ORIGINS:
    CORS_ALLOW_ALL_ORIGINS = True

CSRF_TRUSTED_ORIGINS = get_csv("CSRF_TRUSTED_ORIGINS")

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "iap.tools.auth.authentication.BearerTokenAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "EXCEPTION_HANDLER": "iap.exceptions.iap_exception_handler",
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "anon": config("DRF_THROTTLE_ANON", default="120/min"),
        "user": config("DRF_THROTTLE_USER", default="1500/hour"),
        "iap_verify": config("DRF_THROTTLE_IAP_VERIFY", default="60/hour"),
        "iap_restore": config("DRF_THROTTLE_IAP_RESTORE", default="120/hour"),
    },
}

# Bearer token identity. The "sub" claim is the user id.
AUTH_JWT_SECRET = config("AUTH_JWT_SECRET", default="")
AUTH_JWKS_URL = config("AUTH_JWKS_URL", default="")
AUTH_JWT_ISSUER = config("AUTH_JWT_ISSUER", default="")
AUTH_JWT_AUDIENCE = config("AUTH_JWT_AUDIENCE", default="")

# Receipt verification.
IAP_VERIFICATION_MODE = config(
    "IAP_VERIFICATION_MODE",
    default="accept_all" if DEBUG else "remote",
).strip().lower()
if IAP_VERIFICATION_MODE == "accept_all" and not DEBUG:
    raise ValueError("IAP_VERIFICATION_MODE=accept_all is only allowed when DJANGO_DEBUG is True.")
IAP_APPLE_VERIFIER_CLASS = config("IAP_APPLE_VERIFIER_CLASS", default="")
IAP_GOOGLE_VERIFIER_CLASS = config("IAP_GOOGLE_VERIFIER_CLASS", default="")
IAP_VERIFICATION_TIMEOUT_SECONDS = config("IAP_VERIFICATION_TIMEOUT_SECONDS", cast=int, default=10)

APPLE_IAP_BUNDLE_ID = config("APPLE_IAP_BUNDLE_ID", default="")
APPLE_IAP_ISSUER_ID = config("APPLE_IAP_ISSUER_ID", default="")
APPLE_IAP_KEY_ID = config("APPLE_IAP_KEY_ID", default="")
APPLE_IAP_PRIVATE_KEY = config("APPLE_IAP_PRIVATE_KEY", default="")
APPLE_IAP_ENVIRONMENT = config("APPLE_IAP_ENVIRONMENT", default="production").strip().lower()

GOOGLE_PLAY_PACKAGE_NAME = config("GOOGLE_PLAY_PACKAGE_NAME", default="")
GOOGLE_PLAY_SERVICE_ACCOUNT_FILE = config("GOOGLE_PLAY_SERVICE_ACCOUNT_FILE", default="")

# Paid resource collaborator (dotted paths). Empty uses the bundled JobPost lookup.
IAP_RESOURCE_LOOKUP = config("IAP_RESOURCE_LOOKUP", default="")
IAP_RESOURCE_DESCRIBER = config("IAP_RESOURCE_DESCRIBER", default="")
IAP_RESOURCE_DEACTIVATOR = config("IAP_RESOURCE_DEACTIVATOR", default="")
IAP_UNASSIGNED_ENTITLEMENT_TTL_HOURS = config("IAP_UNASSIGNED_ENTITLEMENT_TTL_HOURS", cast=int, default=72)

# Production security defaults.
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_HSTS_SECONDS = config(
    "DJANGO_SECURE_HSTS_SECONDS",
    cast=int,
    default=0 if DEBUG else 31536000,
)
SECURE_HSTS_INCLUDE_SUBDOMAINS = config(
    "DJANGO_SECURE_HSTS_INCLUDE_SUBDOMAINS",
    cast=bool,
    default=not DEBUG,
)
SECURE_SSL_REDIRECT = config(
    "DJANGO_SECURE_SSL_REDIRECT",
    cast=bool,
    default=not DEBUG,
)
SESSION_COOKIE_SECURE = config(
    "DJANGO_SESSION_COOKIE_SECURE",
    cast=bool,
    default=not DEBUG,
)
CSRF_COOKIE_SECURE = config(
    "DJANGO_CSRF_COOKIE_SECURE",
    cast=bool,
    default=not DEBUG,
)
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = config("DJANGO_X_FRAME_OPTIONS", default="DENY")

# Purchase proofs and signing keys are never logged.
DJANGO_LOG_LEVEL = config("DJANGO_LOG_LEVEL", default="DEBUG" if DEBUG else "INFO").upper()
IAP_LOG_LEVEL = config("IAP_LOG_LEVEL", default=DJANGO_LOG_LEVEL).upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": DJANGO_LOG_LEVEL,
    },
    "loggers": {
        "iap": {
            "handlers": ["console"],
            "level": IAP_LOG_LEVEL,
            "propagate": False,
        },
    },
}
