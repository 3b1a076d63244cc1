"""NeaCore - API gateway template with request hardening built in.

NeaCore is a FastAPI application that puts cross-cutting request handling in
front of business controllers, which live outside this package.

Architecture Overview:
- **API Layer**: FastAPI app factory, middleware, route dependencies and routes
- **Core Layer**: Configuration, logging, exceptions and request context
- **Validation Layer**: Declarative field rules, validator and sanitizer
- **Security Layer**: Signatures, CIDR matching, rate limiting, fingerprints
- **Infrastructure Layer**: Counter store and trusted range refresh

Every failure a client can observe is rendered as a problem-detail document
from one closed catalog of error kinds.
"""
