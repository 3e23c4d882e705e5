"""SMB and remote registry connectivity for RegHound.

Modules:
    connection: SMB connection management
    remote_registry: Remote Registry (MS-RRP) connection provider
"""
