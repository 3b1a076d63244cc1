"""HTTP API layer of the NeaCore gateway, built on FastAPI.

Key components:
- **main**: Application factory and lifespan (counter store, trusted range
  refresher, rate limiter)
- **dependencies**: Per-request gateway checks composed by routes
  - Payload parsing, input validation, rate limiting, client session and
    signature verification
- **middleware**: Cross-cutting concerns for all requests
  - CORS policy, request context, fingerprints, request logging
  - Centralized error handling with problem-detail responses
- **errors**: Error catalog and HTML documentation pages
- **routes**: Example, general, secure, health and error page endpoints
- **schemas** / **utils**: Response envelopes serialized with orjson
"""
