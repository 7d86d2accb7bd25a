# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Business logic: filters, form state, rendering, notifications."""
