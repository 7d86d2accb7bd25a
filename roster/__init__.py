# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Tennis roster service: players, availability, filters, persistence."""
