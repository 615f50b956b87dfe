# Middleware package init
"""
Memory Locks API — Middleware Package
======================================

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Worker API Key]
            → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject floods before any other work
    2. Request ID: correlation id for logs and error envelopes
    3. Logging: sees the final status, including 401s from the key check
    4. Worker API Key: everything except health, docs and album pages
    5. GZip / CORS: FastAPI's stock middleware

    Starlette runs the last added middleware first, so main.py adds them
    in the reverse of the order above.
"""
