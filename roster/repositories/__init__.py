# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Repository package: record store and the two persistence backends."""
from roster.repositories.player_repository import PlayerRepository

__all__ = ["PlayerRepository"]
