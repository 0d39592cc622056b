"""
Record field names and serialization markers.

Keys follow the upstream record format (bunyan style); the external names
follow the Cloud Logging structured entry schema.
"""

from __future__ import annotations

# ================================
# Internal record keys
# ================================

KEY_VERSION = "v"
KEY_LEVEL = "level"
KEY_NAME = "name"
KEY_HOSTNAME = "hostname"
KEY_PID = "pid"
KEY_TIME = "time"
KEY_MESSAGE = "msg"
KEY_ERROR = "err"
KEY_REQUEST = "req"

# Removed from the record before the remaining fields are copied through
RESERVED_KEYS = frozenset(
    {
        KEY_MESSAGE,
        KEY_LEVEL,
        KEY_ERROR,
        KEY_REQUEST,
        KEY_VERSION,
        KEY_HOSTNAME,
        KEY_PID,
    }
)

# Upstream record format version written by LogRecordBuilder
LOG_VERSION = 0

# ================================
# External entry keys
# ================================

ENTRY_SEVERITY = "severity"
ENTRY_MESSAGE = "message"
ENTRY_HTTP_REQUEST = "httpRequest"
ENTRY_SERVICE_CONTEXT = "serviceContext"

# ================================
# Serialization
# ================================

CIRCULAR_MARKER = "[Circular]"
DEPTH_MARKER = "[Too deep]"
THROWS_MARKER = "[Throws: {message}]"
DIAGNOSTIC_MESSAGE = "(Exception in JSON serialization of log entry: {message})"

LINE_TERMINATOR = "\n"
