"""Configuration module for the tutoring relations service.

This module provides centralized configuration management, including directory
paths, API server settings, authentication, invite, chat, lesson, board
and file storage defaults.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# --- Database Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/tutoring.db"
)

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
# Default includes local development addresses. For production, set via
# CORS_ALLOWED_ORIGINS environment variable.
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,"
    "http://localhost:5173,http://127.0.0.1:5173",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Authentication Configuration ---

# Tokens are issued by the external auth service and share this secret.
JWT_SECRET_KEY: str = os.getenv(
    "JWT_SECRET_KEY", "your-secret-key-change-in-production"
)
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))  # 7 days
)

# --- Invite Configuration ---

DEFAULT_INVITE_EXPIRES_IN_HOURS: int = int(
    os.getenv("DEFAULT_INVITE_EXPIRES_IN_HOURS", "24")
)
# 30 days
MAX_INVITE_EXPIRES_IN_HOURS: int = int(
    os.getenv("MAX_INVITE_EXPIRES_IN_HOURS", "720")
)
INVITE_MESSAGE_MAX_LENGTH: int = 500
INVITE_CODE_MIN_LENGTH: int = 6
INVITE_CODE_MAX_LENGTH: int = 50

# --- Relation Configuration ---

RELATION_NAME_MAX_LENGTH: int = 100
RELATION_NOTES_MAX_LENGTH: int = 2000

# --- Chat Configuration ---

CHAT_PAGE_SIZE: int = int(os.getenv("CHAT_PAGE_SIZE", "50"))
CHAT_MAX_PAGE_SIZE: int = int(os.getenv("CHAT_MAX_PAGE_SIZE", "100"))
CHAT_MESSAGE_MAX_LENGTH: int = 5000
CHAT_MAX_READ_BATCH: int = 100

# --- Lesson Configuration ---

LESSON_TITLE_MAX_LENGTH: int = 200
LESSON_DESCRIPTION_MAX_LENGTH: int = 2000

# --- Board Configuration ---

BOARD_TITLE_MAX_LENGTH: int = 200
DEFAULT_BOARD_TITLE: str = "Untitled"
DEFAULT_BOARD_SETTINGS: dict = {"background": "#ffffff", "gridEnabled": False}
BOARD_MAX_ELEMENT_BATCH: int = 500

# --- File Storage Configuration ---

# Uploaded files are stored as <UPLOAD_DIR>/<user_id>/<file_id>.<ext>
UPLOAD_DIR: Path = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))
# 10MB
MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))
ALLOWED_UPLOAD_MIME_TYPES: List[str] = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "application/zip",
    "application/x-rar-compressed",
]
