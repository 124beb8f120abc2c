"""
Common Error Constants

Centralized diagnostic messages to avoid string duplication (SonarQube S1192).
"""

# Validation
ERROR_MISSING_PRODUCT_ID = "Product has no usable identifier"
ERROR_INVALID_QUANTITY = "quantity must be a positive integer"

# Store
ERROR_STORE_READ = "Stored collection unreadable, starting empty"
ERROR_STORE_CORRUPT = "Stored collection malformed, starting empty"
ERROR_STORE_WRITE = "Failed to persist collection snapshot"
ERROR_STORE_KEY = "Store key must be a plain name without path separators"
ERROR_STORE_BACKEND = "Unknown store backend"
ERROR_REDIS_CREDENTIALS = "UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set"

# Engine
ERROR_LISTENER_FAILED = "Snapshot listener raised"
