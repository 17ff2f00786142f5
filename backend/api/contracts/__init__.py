"""
Contract package.

Request body models live in api.contracts.pydantic_models; the routes
convert pydantic ValidationError into the INVALID_PARAMS error envelope.
"""
