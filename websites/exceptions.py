"""
Errors raised by the website integration core and its HTTP collaborators.
"""


class IntegrationError(Exception):
    """Base class for website integration failures."""


class NotFound(IntegrationError):
    """The snapshot identifier is unknown to the data source."""

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Website {identifier} not found")


class TransportError(IntegrationError):
    """Network failure or 5xx from the snapshot endpoint. Callers may retry manually."""

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class UnsupportedIntegration(IntegrationError):
    """The integration kind is neither WordPress nor Shopify."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unsupported integration kind: {kind!r}")


class InvalidQuota(IntegrationError):
    """Quota ceiling is zero or negative; utilization cannot be computed."""

    def __init__(self, query_limit):
        self.query_limit = query_limit
        super().__init__(f"Invalid query limit: {query_limit}")
