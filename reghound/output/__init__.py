"""Output module for RegHound results."""

# Shared color scheme for record and summary output
COLORS = {
    "header": "bold cyan",
    "border": "cyan",
    "host": "bold white",
    "hive": "magenta",
    "key": "white",
    "count": "green",
    "label": "dim",
    "value": "white",
    "warning": "yellow",
    "error": "red",
    "success": "green",
}
