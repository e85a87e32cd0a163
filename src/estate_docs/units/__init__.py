from .catalog import UnitCatalog, UnitSet

__all__ = ["UnitCatalog", "UnitSet"]
