"""Data stores for caching.

Stores handle:
- Redis: connection lifecycle, TTL-bound string payloads
- Records: decode/validate/encode of versioned records on any KV store

No business logic in stores - that belongs in services.
"""
