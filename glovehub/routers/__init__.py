# HTTP adapters over the pipeline services

from . import invoices, quotations

__all__ = ["invoices", "quotations"]
