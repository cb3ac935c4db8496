"""
Trials module - 14-day device trials.

This module handles:
- Trial entity keyed by device fingerprint
- Signed trial tokens
- Trial issuance and status lookups
- Trial heartbeats from unlicensed devices
"""
