"""
Core package — cross-cutting concerns.

Modules:
    config      — environment variables & settings
    logging     — structured JSON logging
    errors      — exception hierarchy & handlers
    middleware  — request logging & correlation IDs
    rate_limit  — process-scoped fixed-window rate limiter
    sanitize    — user input sanitisation
    captcha     — Turnstile token verification
"""
