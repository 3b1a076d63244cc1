"""API-related constants."""

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"
ORIGIN_HEADER = "origin"

# Request handling
REQUEST_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Content types
JSON_CONTENT_TYPES = {"application/json", "text/json"}
FORM_CONTENT_TYPES = {"application/x-www-form-urlencoded", "multipart/form-data"}

# Maximum user agent length kept in logs
MAX_USER_AGENT_LENGTH = 200
