"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: Internal data structures (frozen dataclasses)
- Schemas: API contract (what client sends/receives, camelCase on the wire)
"""
