"""
Activations module - Device activation and heartbeats.

This module handles:
- Device records per license
- Activation, deactivation and heartbeats against Keygen
- Concurrent device limits
- Extension version info returned with heartbeats
"""
