"""
Organizations module - Business plan teams.

This module handles:
- Organization, member and invite entities
- Seat usage against the subscription's seat limit
- Team management, invite acceptance and seat changes
"""
