"""Subnetly - IP address management for homelab network inventories."""

__version__ = "1.0.0"
