"""
Meganote Backend - Middleware Package
======================================

Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [Login Rate Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation id for logs and error envelopes
    2. Logging: process log + reqLog.log line carrying the request id
    3. Login rate limit: excess login attempts are rejected before any handler work
    4. CORS: allow-listed frontend origins (FastAPI's CORSMiddleware)

Session authentication is not a middleware: it is a router dependency
(meganote.dependencies.get_current_identity) so public routes stay public.
"""
