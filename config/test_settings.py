from __future__ import annotations

import os
import tempfile
from pathlib import Path

os.environ.setdefault("DJANGO_SECRET_KEY", "test-only-not-for-prod")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from .settings import *  # noqa: F401,F403,E402

DEBUG = False

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "land-indices-tests",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"

SENTINELHUB_CLIENT_ID = "test-client"
SENTINELHUB_CLIENT_SECRET = "test-secret"  # noqa: S105

INDICES_RASTER_ROOT = Path(tempfile.mkdtemp(prefix="land-indices-rasters-"))
