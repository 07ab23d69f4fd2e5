"""Domain-specific exceptions for the Banana API."""


class BananaAPIError(Exception):
    """Base exception for all Banana API errors."""


class ConfigurationError(BananaAPIError):
    """Error related to configuration issues."""


class DataSourceError(BananaAPIError):
    """Error related to analytics data source operations."""


class DataSourceNotImplementedError(DataSourceError, NotImplementedError):
    """The real (non-mock) data source was selected but does not exist."""
