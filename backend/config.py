"""Shared configuration for the claims rules backend.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Database configuration
DB_PATH = os.getenv("DB_PATH", "./data/rules.db")

# Rule templates directory (defaults to the bundled templates package)
RULES_TEMPLATES_DIR = os.getenv("RULES_TEMPLATES_DIR", "")

# Rate limit for rule evaluation endpoints (slowapi syntax)
EVALUATE_RATE_LIMIT = os.getenv("EVALUATE_RATE_LIMIT", "120/minute")

# Comma-separated list of allowed CORS origins
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
