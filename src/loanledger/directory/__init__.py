"""Catalog and borrower directory.

Book and borrower records are owned outside the lending core; this module
provides the lookup contract the core consumes plus a SQL-backed default.
"""

from .lookups import BorrowerLookup, CatalogLookup, SqlBorrowerDirectory, SqlCatalog
from .models import Book, Borrower
from .schemas import BookCreate, BookDetails, BookSummary, BorrowerCreate, BorrowerDetails

__all__ = [
    "Book",
    "Borrower",
    "BookCreate",
    "BookDetails",
    "BookSummary",
    "BorrowerCreate",
    "BorrowerDetails",
    "CatalogLookup",
    "BorrowerLookup",
    "SqlCatalog",
    "SqlBorrowerDirectory",
]
