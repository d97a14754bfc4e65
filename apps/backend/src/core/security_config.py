"""Security configuration constants for the Manuscript Assist API.

This module centralizes security-related configuration including:
- Sensitive keys that should be sanitized from logs (credentials, PII and
  manuscript content)
- Error handling security settings
- Other security-related constants
"""

# Credential and PII keys redacted from structured logs. Matching is
# case-insensitive and by substring, so "api_key" also covers
# "TOGETHER_API_KEY".
SENSITIVE_KEYS: set[str] = {
    # Provider credentials and auth material
    "api_key",
    "secret",
    "token",
    "password",
    "authorization",
    "bearer",
    "cookie",
    "x-api-key",
    "x-user-id",
    # Personal data
    "email",
    "phone",
    "address",
}

# Manuscript content and the prompts built from it. These names are generic
# ("text" is inside "context"), so they match whole keys only, after
# lowercasing and dropping "_" and "-" ("textBefore" == "text_before").
MANUSCRIPT_CONTENT_KEYS: set[str] = {
    "text",
    "sourcetext",
    "textbefore",
    "textafter",
    "custominstructions",
    "prompt",
    "systemprompt",
    "userprompt",
    "messages",
    "paragraphs",
    "content",
    "fragmentcontent",
    "sourcefragments",
}

# Production-only error response fields
# In production, error responses should only contain these fields to
# prevent information leakage
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
    "error_code",
}

# Development error response fields (additional fields allowed in development)
DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
    "validation_errors",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    else:
        return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted.

    Args:
        key: The key name to check

    Returns:
        True if the key should be redacted, False otherwise
    """
    key_lower = key.lower()
    if key_lower.replace("_", "").replace("-", "") in MANUSCRIPT_CONTENT_KEYS:
        return True
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
