"""
Configuration for the Nexus IPAM service
Values come from the environment (or a local .env file)
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


# Database Configuration
DB_CONFIG = {
    'host': os.getenv('MYSQL_HOST', ''),
    'port': _int_env('MYSQL_PORT', 3306),
    'user': os.getenv('MYSQL_USER', ''),
    'password': os.getenv('MYSQL_PASSWORD', ''),
    'database': os.getenv('MYSQL_DATABASE', 'ipam_db')
}

# Advisor (Gemini) Configuration
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY', '')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.5-flash')

SECRET_KEY = os.getenv('SECRET_KEY', 'nexus-ipam-dev')

# Browser origins allowed to call the API with the session cookie
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',')
    if origin.strip()
]

# Smallest prefix length that is expanded into individual address records
IPAM_MIN_PREFIX = _int_env('IPAM_MIN_PREFIX', 24)

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FILE = os.getenv('LOG_FILE') or None

UPLOAD_MAX_BYTES = _int_env('UPLOAD_MAX_BYTES', 16 * 1024 * 1024)  # 16MB


def get_app_config():
    """Flask config mapping built from the environment"""
    return {
        'SECRET_KEY': SECRET_KEY,
        'MAX_CONTENT_LENGTH': UPLOAD_MAX_BYTES,
        'IPAM_MIN_PREFIX': IPAM_MIN_PREFIX,
        'CORS_ORIGINS': CORS_ORIGINS
    }
