"""Utility modules for RegHound.

Modules:
    console: Rich console output
    helpers: Target and credential string helpers
    logging: Verbosity-gated logging helpers
    network: Host reachability probing
    date_parser: OData timestamp parsing
"""
