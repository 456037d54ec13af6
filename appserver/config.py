"""Configuration settings for the file server."""

import os
from common.constants import (
    DEFAULT_DATA_PATH,
    DEFAULT_SERVER_PORT,
    RANGE_REQUEST_MAX_BYTES,
)


APPSERVER_HOST = os.environ.get("APPSERVER_HOST", "0.0.0.0")

APPSERVER_PORT = int(os.environ.get("APPSERVER_PORT", str(DEFAULT_SERVER_PORT)))

APPSERVER_BASEURI = os.environ.get("APPSERVER_BASEURI", f"http://localhost:{APPSERVER_PORT}").rstrip("/")

DATA_PATH = os.environ.get("APPSERVER_DATA_PATH", DEFAULT_DATA_PATH)

RANGE_MAX_BYTES = int(os.environ.get("APPSERVER_RANGE_MAX_BYTES", str(RANGE_REQUEST_MAX_BYTES)))

# "file" runs `file --mime-type` on finalize, "none" keeps the declared type
CLASSIFIER = os.environ.get("APPSERVER_CLASSIFIER", "file").lower()

CLASSIFIER_TIMEOUT_SECONDS = float(os.environ.get("APPSERVER_CLASSIFIER_TIMEOUT", "10"))
