# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Core configuration, logging and dependency wiring."""
