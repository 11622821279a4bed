"""hcmstore CLI — Typer-based operator commands over a storage root.

All output uses Rich for formatted terminal display.
"""
