"""Core infrastructure package for shared application functionality.

This package provides the foundational components used across all layers
of the NeaCore gateway:

- **config**: Centralized configuration management with environment support
- **context**: Request context, correlation ID and fingerprint storage
- **exceptions**: Structured exception hierarchy over the ErrorKind vocabulary
- **error_context**: Sensitive data sanitization for safe logging
- **logging**: Structured logging with Loguru
- **types**: Type aliases for request containers and rules
"""
