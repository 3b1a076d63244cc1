"""FastAPI middleware package for cross-cutting request/response concerns.

- **RequestContextMiddleware**: Correlation IDs and request start time
- **FingerprintMiddleware**: Client fingerprint for traces and logs
- **RequestLoggingMiddleware**: Structured request logging with timing
- **CorsMiddleware**: CORS policy, preflight and forbidden origins
- **error_handler**: Exception handlers producing problem-detail responses

Middleware run in the order above on the way in (the reverse of their
registration order in ``neacore.api.main``).
"""
