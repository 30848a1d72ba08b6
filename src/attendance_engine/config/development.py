import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_engine"),
}

BIOMETRIC_API = {
    "base_url": os.getenv("BIOMETRIC_API_URL", "http://192.168.100.202/ISAPI/AccessControl/AcsEvent"),
    "username": os.getenv("BIOMETRIC_API_USERNAME", ""),
    "password": os.getenv("BIOMETRIC_API_PASSWORD", ""),
    "timeout": int(os.getenv("BIOMETRIC_API_TIMEOUT", "30")),
    "max_results": int(os.getenv("BIOMETRIC_API_MAX_RESULTS", "1000")),
    "timezone_offset": os.getenv("TIMEZONE_OFFSET", "+05:00"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
