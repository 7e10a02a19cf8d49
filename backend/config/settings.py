"""
Django settings for the LekkerSpots backend.

Every deployment value comes from the environment. A `.env` file at the
repository root is loaded first so local development needs no exports.
"""
import os
from pathlib import Path
from urllib.parse import unquote, urlsplit

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
REPO_DIR = BASE_DIR.parent

load_dotenv(REPO_DIR / '.env')


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def database_from_url(url: str) -> dict:
    """
    Translate a DATABASE_URL into a Django DATABASES entry.
    Supports postgres://, postgresql:// and sqlite:/// URLs.
    """
    parts = urlsplit(url)
    if parts.scheme == 'sqlite':
        name = unquote(parts.path[1:]) if parts.path.startswith('/') else unquote(parts.path)
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': name or ':memory:',
        }
    if parts.scheme in ('postgres', 'postgresql'):
        return {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': unquote(parts.path.lstrip('/')),
            'USER': unquote(parts.username or ''),
            'PASSWORD': unquote(parts.password or ''),
            'HOST': parts.hostname or '',
            'PORT': str(parts.port or ''),
            'CONN_MAX_AGE': 60,
        }
    raise ValueError(f"Unsupported DATABASE_URL scheme: {parts.scheme!r}")


DEBUG = env_bool('DJANGO_DEBUG', False)

SECRET_KEY = (
    os.getenv('DJANGO_SECRET_KEY')
    or os.getenv('SESSION_SECRET')
    or 'django-insecure-lekkerspots-development-key'
)

ALLOWED_HOSTS = [
    host.strip()
    for host in os.getenv('DJANGO_ALLOWED_HOSTS', '*' if DEBUG else 'lekkerspots.co.za,localhost,127.0.0.1').split(',')
    if host.strip()
]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django.contrib.sitemaps',
    'rest_framework',
    'user',
    'locations',
    'ticker',
    'trends',
    'seo',
]

MIDDLEWARE = [
    'django.middleware.gzip.GZipMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    # Meta resolution must run before the rewriter sees the response.
    'seo.middleware.LocationMetaMiddleware',
    'seo.middleware.HtmlMetaRewriterMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': database_from_url(
        os.getenv('DATABASE_URL', f"sqlite:///{BASE_DIR / 'db.sqlite3'}")
    ),
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTHENTICATION_BACKENDS = [
    'user.backends.AdminCredentialsBackend',
    'django.contrib.auth.backends.ModelBackend',
]

# Curator account. ADMIN_PASSWORD may be plain text or a Django password hash.
ADMIN_USERNAME = os.getenv('ADMIN_USERNAME')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')

SESSION_ENGINE = 'django.contrib.sessions.backends.db'
SESSION_COOKIE_AGE = 7 * 24 * 60 * 60
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Africa/Johannesburg'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'user.authentication.CuratorSessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticatedOrReadOnly',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'EXCEPTION_HANDLER': 'config.exceptions.api_exception_handler',
}

# Site / SEO
SITE_NAME = 'LekkerSpots'
CANONICAL_BASE_URL = os.getenv('CANONICAL_BASE_URL', 'https://lekkerspots.co.za').rstrip('/')
# Production pins every generated URL to the canonical domain; development
# derives the origin from the incoming request.
SEO_USE_CANONICAL_BASE_URL = env_bool('SEO_USE_CANONICAL_BASE_URL', not DEBUG)
SEO_ADDRESS_REGION = 'Western Cape'
SEO_ADDRESS_COUNTRY = 'ZA'
SEO_FALLBACK_IMAGE = '/og-image.jpg'
SPA_INDEX_PATH = os.getenv('SPA_INDEX_PATH', str(REPO_DIR / 'client' / 'dist' / 'index.html'))

# Third-party providers
APIFY_API_KEY = os.getenv('APIFY_API_KEY')
INDEXNOW_API_KEY = os.getenv('INDEXNOW_API_KEY')
SOCIAL_TRENDS_DELAY_SECONDS = float(os.getenv('SOCIAL_TRENDS_DELAY_SECONDS', '1.0'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '{levelname} {asctime} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}
