"""RegHound - remote registry key enumeration over SMB."""

__version__ = "1.0.0"
