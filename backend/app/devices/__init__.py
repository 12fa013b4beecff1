"""
devices — Registered devices, finder messages and global notification
endpoints.

Sub-modules:
    models  — Device / Message / NotificationEndpoint records
    store   — In-memory record store (production: a real database)
    codes   — Public QR code generation
"""
