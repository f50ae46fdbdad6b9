"""Custom exception hierarchy for catalog-metadata."""


class CatalogMetadataError(Exception):
    """Base exception for all catalog-metadata errors."""


class DatabaseError(CatalogMetadataError):
    """Schema version mismatch, connection failure."""


class ConfigError(CatalogMetadataError):
    """Configuration file cannot be read or has the wrong shape."""


class ParseError(CatalogMetadataError):
    """Error parsing a batch change request."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        super().__init__(message)
