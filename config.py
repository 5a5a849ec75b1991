
# =================================================================
#   NPC Smart Report - Application Configuration
#   Loads settings from environment variables (.env file)
# =================================================================

import os
import secrets
from dotenv import load_dotenv

# Load .env file from the same directory as this file
load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env'))

_PLACEHOLDER_KEYS = ('auto_generate_on_first_run', 'CHANGE_ME_TO_A_RANDOM_64_CHAR_HEX_STRING')


def _get_or_generate_secret_key():
    """
    Gets SECRET_KEY from environment, or auto-generates one on first run.
    If auto-generated, writes it back to the .env file so it persists.

    The key signs the session-claims cookie, so regenerating it logs
    every user out of their verified claims.
    """
    key = os.environ.get('SECRET_KEY', '')

    if not key or key in _PLACEHOLDER_KEYS:
        key = secrets.token_hex(32)  # 64-char hex string

        env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env')
        try:
            if os.path.exists(env_path):
                with open(env_path, 'r') as f:
                    content = f.read()

                if 'SECRET_KEY=' in content:
                    for placeholder in _PLACEHOLDER_KEYS + ('',):
                        content = content.replace(f'SECRET_KEY={placeholder}\n', f'SECRET_KEY={key}\n')
                else:
                    content = content.rstrip('\n') + f'\nSECRET_KEY={key}\n'

                with open(env_path, 'w') as f:
                    f.write(content)

                print("[CONFIG] Auto-generated SECRET_KEY and saved to .env")
            else:
                with open(env_path, 'w') as f:
                    f.write(f'SECRET_KEY={key}\n')
                print("[CONFIG] Created .env with auto-generated SECRET_KEY")
        except OSError as e:
            print(f"[CONFIG] Warning: Could not save SECRET_KEY to .env: {e}")
            print("[CONFIG] The key will be regenerated on next restart!")

    return key


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


# =================================================================
#   Configuration Classes
# =================================================================

class BaseConfig:
    """Base configuration shared by all environments."""

    # Security
    SECRET_KEY = _get_or_generate_secret_key()

    # Server
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', 3000))
    LOG_FILE = os.environ.get('LOG_FILE', 'smart_report.log')

    # ===== BACKEND API =====
    BACKEND_URL = os.environ.get('BACKEND_URL', 'http://localhost:5000')
    BACKEND_TIMEOUT_SECONDS = float(os.environ.get('BACKEND_TIMEOUT_SECONDS', '10'))
    # Backend health check interval in seconds (0 = disabled)
    BACKEND_HEALTH_INTERVAL_SECONDS = int(os.environ.get('BACKEND_HEALTH_INTERVAL_SECONDS', '60'))

    # Substitute sample data when a backend call fails
    USE_FALLBACK_DATA = _env_flag('USE_FALLBACK_DATA', 'true')

    # ===== ROUTE GATE =====
    SESSION_COOKIE_NAME = 'loginToken'
    CLAIMS_COOKIE_NAME = 'sessionClaims'
    SIDEBAR_COOKIE_NAME = 'sidebarCollapsed'
    CLAIMS_TTL_HOURS = 8
    AUTH_PREFIX = '/auth'
    LOGIN_PATH = '/auth/login'
    DEFAULT_LANDING_PATH = '/student/dashboard'
    ADMIN_LANDING_PATH = '/admin/dashboard'
    # Off by default: the gate only checks cookie presence
    ENFORCE_ROLE_SECTIONS = _env_flag('ENFORCE_ROLE_SECTIONS', 'false')

    # ===== LISTINGS =====
    PAGE_SIZE = 10
    SEARCH_DEBOUNCE_MS = 500

    # Rate Limiting
    RATE_LIMIT_LOGIN = "5 per minute"    # Max credential posts per IP
    RATE_LIMIT_API = "200 per minute"    # Max requests per IP
    RATELIMIT_ENABLED = True

    # ===== EMAIL (reminders) =====
    SMTP_SERVER = os.environ.get('SMTP_SERVER', 'smtp.gmail.com')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
    SENDER_EMAIL = os.environ.get('SENDER_EMAIL', '')
    SENDER_PASSWORD = os.environ.get('SENDER_PASSWORD', '')
    SENDER_NAME = os.environ.get('SENDER_NAME', 'NPC Smart Report')
    # Log emails instead of sending them
    EMAIL_TEST_MODE = _env_flag('EMAIL_TEST_MODE', 'false')


class DevelopmentConfig(BaseConfig):
    """Development environment configuration."""
    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Production environment configuration."""
    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    """Testing environment configuration."""
    DEBUG = True
    TESTING = True
    RATELIMIT_ENABLED = False
    BACKEND_HEALTH_INTERVAL_SECONDS = 0
    EMAIL_TEST_MODE = True
    LOG_FILE = os.environ.get('LOG_FILE', 'smart_report_test.log')


# --- Select configuration based on FLASK_ENV ---
_env = os.environ.get('FLASK_ENV', 'development').lower()
_config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}

Config = _config_map.get(_env, DevelopmentConfig)
