"""
DevCamper Backend — Pydantic Request/Response Schemas
=======================================================

Request models validate bodies; response models decide exactly which
columns leave the API (password hashes and reset tokens never do).
"""
