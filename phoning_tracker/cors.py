def parse_allowlist(raw):
    return {origin.strip() for origin in (raw or '').split(',') if origin.strip()}


def set_cors(response, origin, allowlist):
    """Set CORS headers if the request Origin is allowlisted.

    Configure the allowlist via `CORS_ALLOW_ORIGINS` (comma-separated).
    If unset/empty, no Origin is allowed.
    """

    if origin and origin in allowlist:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'

    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PATCH, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
    return response
