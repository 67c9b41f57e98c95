"""CDC data.cdc.gov (Socrata) surveillance feeds."""

from .nndss import CdcNndssAdapter
from .respiratory import CdcRespiratoryAdapter
from .wastewater import CdcWastewaterAdapter

__all__ = [
    "CdcNndssAdapter",
    "CdcRespiratoryAdapter",
    "CdcWastewaterAdapter",
]
