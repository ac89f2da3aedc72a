import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./ciam.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8080)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    CREATE_TABLES_ON_STARTUP = bool(data.get("CREATE_TABLES_ON_STARTUP", 1))

    # Token signing
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    JWT_ALGORITHM = data.get("JWT_ALGORITHM", "HS256")
    JWT_PRIVATE_KEY = data.get("JWT_PRIVATE_KEY", "")
    JWT_PUBLIC_KEY = data.get("JWT_PUBLIC_KEY", "")
    JWT_KEY_ID = data.get("JWT_KEY_ID", "ciam-key-1")
    JWT_ISSUER = data.get("JWT_ISSUER", "http://localhost:8080")
    ACCESS_TOKEN_AUDIENCE = data.get("ACCESS_TOKEN_AUDIENCE", "ciam-api")
    ID_TOKEN_AUDIENCE = data.get("ID_TOKEN_AUDIENCE", "ciam-client")
    ACCESS_TOKEN_TTL_MINUTES = data.get("ACCESS_TOKEN_TTL_MINUTES", 15)
    REFRESH_TOKEN_TTL_DAYS = data.get("REFRESH_TOKEN_TTL_DAYS", 14)
    REVOKE_SESSION_ON_REFRESH_REUSE = bool(
        data.get("REVOKE_SESSION_ON_REFRESH_REUSE", True)
    )
    # A token rotated this recently is a lost race, not theft
    REFRESH_REUSE_GRACE_SECONDS = data.get("REFRESH_REUSE_GRACE_SECONDS", 10)
    REFRESH_COOKIE_NAME = data.get("REFRESH_COOKIE_NAME", "refresh_token")
    REFRESH_COOKIE_SECURE = bool(data.get("REFRESH_COOKIE_SECURE", False))

    # Login flow
    SESSION_TTL_DAYS = data.get("SESSION_TTL_DAYS", 30)
    AUTH_CONTEXT_TTL_MINUTES = data.get("AUTH_CONTEXT_TTL_MINUTES", 15)
    LOGIN_MAX_FAILED_ATTEMPTS = data.get("LOGIN_MAX_FAILED_ATTEMPTS", 5)
    MFA_TRANSACTION_TTL_SECONDS = data.get("MFA_TRANSACTION_TTL_SECONDS", 120)
    MFA_OTP_DIGITS = data.get("MFA_OTP_DIGITS", 6)
    MFA_MAX_OTP_ATTEMPTS = data.get("MFA_MAX_OTP_ATTEMPTS", 5)
    PUSH_POLL_RETRY_AFTER_SECONDS = data.get("PUSH_POLL_RETRY_AFTER_SECONDS", 1)
    DEVICE_TRUST_DAYS = data.get("DEVICE_TRUST_DAYS", 30)

    # Background expiry sweep
    ENABLE_EXPIRY_SWEEPER = bool(data.get("ENABLE_EXPIRY_SWEEPER", 1))
    SWEEP_INTERVAL_SECONDS = data.get("SWEEP_INTERVAL_SECONDS", 60)

    # Per client IP and path, fixed windows
    RATE_LIMIT_ENABLED = bool(data.get("RATE_LIMIT_ENABLED", 1))
    RATE_LIMIT_LOGIN_MAX = data.get("RATE_LIMIT_LOGIN_MAX", 5)
    RATE_LIMIT_LOGIN_WINDOW_SECONDS = data.get("RATE_LIMIT_LOGIN_WINDOW_SECONDS", 300)
    RATE_LIMIT_MFA_MAX = data.get("RATE_LIMIT_MFA_MAX", 10)
    RATE_LIMIT_MFA_WINDOW_SECONDS = data.get("RATE_LIMIT_MFA_WINDOW_SECONDS", 300)
    RATE_LIMIT_REFRESH_MAX = data.get("RATE_LIMIT_REFRESH_MAX", 30)
    RATE_LIMIT_REFRESH_WINDOW_SECONDS = data.get("RATE_LIMIT_REFRESH_WINDOW_SECONDS", 3600)
    RATE_LIMIT_SESSIONS_MAX = data.get("RATE_LIMIT_SESSIONS_MAX", 20)
    RATE_LIMIT_SESSIONS_WINDOW_SECONDS = data.get("RATE_LIMIT_SESSIONS_WINDOW_SECONDS", 900)

    # Service-to-service keys
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")
    DEVICE_CALLBACK_API_KEY = data.get(
        "DEVICE_CALLBACK_API_KEY", "test-device-callback-key-12345"
    )
