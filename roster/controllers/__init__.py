# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""HTTP controllers: thin routers over the roster services."""
