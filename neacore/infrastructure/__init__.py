"""Infrastructure layer for external system integrations.

This package implements the gateway's dependencies on systems outside the
process:

- **counter_store**: Rate counters in Redis (or in memory for development)
- **trusted_ranges**: Trusted proxy CIDR ranges fetched over HTTP and
  refreshed in the background

Both are created in the application lifespan and shared by all requests.
"""
