"""
API package - request boundary for the HTTP surface.

This package provides:
- Pydantic request body models (api.contracts.pydantic_models)
- Global middleware (request_id, error_envelope, request_logging)
"""
