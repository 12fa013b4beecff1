"""
notifications — Multi-backend owner notification dispatch.

Sub-modules:
    descriptor  — Endpoint descriptor parsing (``scheme://rest``)
    channels/   — Per-scheme protocol adapters + the scheme registry
    dispatcher  — Single-descriptor dispatch → DispatchOutcome
    fanout      — Event fan-out to device + global endpoints
    models      — Data structures shared across the system
    errors      — Parse / validation / delivery / network error taxonomy
"""
