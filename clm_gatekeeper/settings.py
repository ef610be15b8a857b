from pathlib import Path
from datetime import timedelta
import os
import sys
from urllib.parse import urlparse, parse_qs, unquote
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from this project reliably (do not depend on CWD).
load_dotenv(dotenv_path=BASE_DIR / '.env', override=False)


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'y', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-dev-key-12345')

DEBUG = _env_flag('DEBUG')

# When enabled, refuse to run in production with placeholder secrets.
SECURITY_STRICT = _env_flag('SECURITY_STRICT')

if DEBUG:
    ALLOWED_HOSTS = ['*']
else:
    _hosts = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').strip()
    ALLOWED_HOSTS = [h.strip() for h in _hosts.split(',') if h.strip()]

if SECURITY_STRICT and (not DEBUG) and SECRET_KEY == 'django-insecure-dev-key-12345':
    raise RuntimeError('DJANGO_SECRET_KEY must be set when SECURITY_STRICT is enabled')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_spectacular',
    'corsheaders',
    'contracts',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'clm_gatekeeper.middleware.RequestIdMiddleware',
    'clm_gatekeeper.middleware.SlowQueryLoggingMiddleware',
    'clm_gatekeeper.middleware.MetricsMiddleware',
    'clm_gatekeeper.middleware.AuditLoggingMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'clm_gatekeeper.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'clm_gatekeeper.wsgi.application'

DATABASE_URL = os.getenv('DATABASE_URL', '').strip()


def _parse_database_url(database_url: str) -> dict:
    """Parse a Postgres DATABASE_URL into Django DATABASES['default'] keys."""
    parsed = urlparse(database_url)
    scheme = (parsed.scheme or '').lower()
    if scheme not in ('postgres', 'postgresql'):
        raise ValueError('DATABASE_URL must start with postgresql://')

    name = (parsed.path or '').lstrip('/')
    if not name:
        name = 'postgres'

    qs = parse_qs(parsed.query or '')
    sslmode = (qs.get('sslmode', [None])[0] or os.getenv('DB_SSLMODE', 'prefer'))

    return {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': name,
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname or '',
        'PORT': str(parsed.port or 5432),
        'CONN_MAX_AGE': int(os.getenv('DB_CONN_MAX_AGE', '60')),
        'CONN_HEALTH_CHECKS': True,
        'OPTIONS': {
            'sslmode': sslmode,
            'connect_timeout': int(os.getenv('DB_CONNECT_TIMEOUT', '20')),
            # Row locks taken by workflow transitions must not be held forever.
            'options': os.getenv(
                'DB_PG_OPTIONS',
                '-c statement_timeout=120000 -c idle_in_transaction_session_timeout=120000',
            ),
        },
        'TEST': {
            'NAME': os.getenv('DB_TEST_NAME', 'test_clm_gatekeeper'),
        },
    }


# Postgres when DATABASE_URL is provided; SQLite for local development and tests.
if DATABASE_URL:
    DATABASES = {'default': _parse_database_url(DATABASE_URL)}
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.getenv('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'authentication.jwt_auth.StatelessJWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_SCHEMA_CLASS': 'clm_gatekeeper.schema.FeatureAutoSchema',
    'DEFAULT_THROTTLE_CLASSES': [
        'clm_gatekeeper.throttling.TenantUserRateThrottle',
        'rest_framework.throttling.AnonRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': os.getenv('THROTTLE_ANON', '60/min'),
        'tenant_user': os.getenv('THROTTLE_TENANT_USER', '600/min'),
        'workflow_write': os.getenv('THROTTLE_WORKFLOW_WRITE', '120/min'),
    },
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=24),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'user_id',
    'USER_ID_CLAIM': 'user_id',
}

# OpenAPI / Swagger (drf-spectacular)
SPECTACULAR_SETTINGS = {
    'TITLE': os.getenv('OPENAPI_TITLE', 'CLM Gatekeeper API'),
    'DESCRIPTION': os.getenv(
        'OPENAPI_DESCRIPTION',
        'Contract approval gates and lifecycle state machine (Django REST Framework).'
    ),
    'VERSION': os.getenv('OPENAPI_VERSION', '1.0.0'),
    'SECURITY': [{'bearerAuth': []}],
    'COMPONENT_SPLIT_REQUEST': True,
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENTS': {
        'securitySchemes': {
            'bearerAuth': {
                'type': 'http',
                'scheme': 'bearer',
                'bearerFormat': 'JWT',
            }
        }
    },
}

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _normalize_cors_origin(origin: str) -> str | None:
    """Normalize an origin to scheme://host[:port] (no path/query/fragment).

    django-cors-headers rejects origins that include paths.
    """

    raw = (origin or '').strip()
    if not raw:
        return None

    parsed = urlparse(raw)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"

    return raw.rstrip('/') or None


_cors_extra = os.getenv('CORS_ALLOWED_ORIGINS_EXTRA', '').strip()
if _cors_extra:
    for _origin in [o.strip() for o in _cors_extra.split(',') if o.strip()]:
        _normalized_origin = _normalize_cors_origin(_origin)
        if _normalized_origin and _normalized_origin not in CORS_ALLOWED_ORIGINS:
            CORS_ALLOWED_ORIGINS.append(_normalized_origin)

CORS_ALLOW_CREDENTIALS = True

# Logs any individual DB query slower than this threshold (milliseconds).
DB_SLOW_QUERY_MS = int(os.getenv('DB_SLOW_QUERY_MS', '0') or '0')

# ---------------------------------------------------------------------------
# Cache (throttling, feature flags, per-tenant analytics). Use Redis in production.
# ---------------------------------------------------------------------------
REDIS_URL = (os.getenv('REDIS_URL', '') or os.getenv('CACHE_REDIS_URL', '')).strip()
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
            'TIMEOUT': int(os.getenv('CACHE_DEFAULT_TIMEOUT', '300')),
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'clm-gatekeeper',
        }
    }

# Email
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
EMAIL_USE_TLS = True
EMAIL_HOST_USER = os.getenv('GMAIL', '')
EMAIL_HOST_PASSWORD = os.getenv('APP_PASSWORD', '')
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', EMAIL_HOST_USER or 'noreply@example.com')

# Frontend URL used for links in notifications and e-mails.
FRONTEND_BASE_URL = (os.getenv('FRONTEND_BASE_URL') or 'http://localhost:3000').rstrip('/')

# Celery Configuration
CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 5 * 60
CELERY_TASK_SOFT_TIME_LIMIT = 4 * 60
CELERY_TASK_ALWAYS_EAGER = _env_flag('CELERY_TASK_ALWAYS_EAGER')
CELERY_BEAT_SCHEDULE = {
    'flag-overdue-approvals': {
        'task': 'contracts.tasks.flag_overdue_approvals',
        'schedule': timedelta(hours=1),
    },
}

# ---------------------------------------------------------------------------
# Approval workflow
# ---------------------------------------------------------------------------

# SLA stamped on every gate at submission time (informational; never auto-expires).
APPROVAL_SLA_HOURS = int(os.getenv('APPROVAL_SLA_HOURS', '48'))

# UserRole.role whose holder receives escalated legal reviews.
LEGAL_HEAD_ROLE = os.getenv('LEGAL_HEAD_ROLE', 'legal_head').strip() or 'legal_head'

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'audit': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'clm_gatekeeper.slowdb': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False,
        },
    },
}

# Test runs (manage.py test / pytest) never talk to Redis or SMTP.
RUNNING_TESTS = any(arg == 'test' for arg in sys.argv) or 'pytest' in sys.modules
if RUNNING_TESTS:
    CELERY_TASK_ALWAYS_EAGER = True
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'clm-gatekeeper-tests',
        }
    }
