"""
Configuration file for the product video generation backend.
Contains all global constants and the static template catalog.
"""

import os

# --- Constants ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./videos.db")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# --- Auth ---
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))

# --- Generation jobs ---
# Progress values a job passes through, in order. The last one means "done".
CHECKPOINTS = (25, 50, 75, 100)
CHECKPOINT_INTERVAL_SECONDS = float(os.getenv("CHECKPOINT_INTERVAL_SECONDS", "2.0"))
JOB_RETENTION_SECONDS = float(os.getenv("JOB_RETENTION_SECONDS", str(24 * 60 * 60)))
EVICTION_SWEEP_SECONDS = float(os.getenv("EVICTION_SWEEP_SECONDS", "300"))

# --- Generated outputs ---
VIDEO_BASE_URL = os.getenv("VIDEO_BASE_URL", "https://example.com/videos")
THUMBNAIL_BASE_URL = os.getenv("THUMBNAIL_BASE_URL", "https://example.com/thumbnails")
DEFAULT_VIDEO_DURATION = 30  # seconds

# --- Template catalog ---
TEMPLATES = [
    {
        "id": "template-1",
        "name": "Standard Product Template",
        "description": "Presents a product with its images and price",
        "thumbnail": "https://example.com/template1.jpg",
        "duration": 30,
        "settings": {
            "backgroundColor": "#ffffff",
            "textColor": "#000000",
            "animationStyle": "fade",
        },
    },
    {
        "id": "template-2",
        "name": "Dynamic E-commerce Template",
        "description": "Advanced animations for e-commerce listings",
        "thumbnail": "https://example.com/template2.jpg",
        "duration": 45,
        "settings": {
            "backgroundColor": "#f0f0f0",
            "textColor": "#333333",
            "animationStyle": "slide",
        },
    },
]
