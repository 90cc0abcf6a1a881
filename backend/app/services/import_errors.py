"""Errors raised while importing catalog spreadsheets.

Row-level errors are caught by the import services and recorded against the
spreadsheet row number; batch-level errors are turned into HTTP responses by
the routers.
"""


class CatalogImportError(Exception):
    """Base class for every import failure."""


class ValidationError(CatalogImportError):
    """The input is structurally wrong (empty file, bad ids, mismatched lists)."""


class ConflictError(CatalogImportError):
    """The row would violate a uniqueness rule, e.g. a SKU already in use."""


class ParseError(CatalogImportError):
    """A cell could not be decoded into the value it should hold."""


class NotFoundError(CatalogImportError):
    """The row references an entity that does not exist."""


class StoreError(CatalogImportError):
    """A store operation failed underneath the import."""
