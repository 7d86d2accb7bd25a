# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Domain models."""
