import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_engine_test"),
}

BIOMETRIC_API = {
    "base_url": "http://biometric.test/ISAPI/AccessControl/AcsEvent",
    "username": "",
    "password": "",
    "timeout": 5,
    "max_results": 100,
    "timezone_offset": "+05:00",
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
