"""Request security checks.

- **signature**: Shared-secret request signatures
- **cidr**: IPv4/IPv6 CIDR matching for trusted proxy ranges
- **rate_limiter**: Fixed-window rate limiting gated by trusted proxies
- **fingerprint**: Header based client fingerprints
"""
