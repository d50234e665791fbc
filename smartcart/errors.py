"""Exceptions raised by the product-search clients."""


class ProductAPIError(Exception):
    """Exception raised when a product-search request fails."""

    pass


class AuthenticationError(ProductAPIError):
    """Missing or rejected credentials for a provider.

    Unlike other ProductAPIErrors this is fatal for every lookup against the
    provider, not just the current query.
    """

    pass
