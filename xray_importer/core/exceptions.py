"""Error types raised by the Xray/Jira transports and the import pipeline."""

from typing import Optional


class XrayIntegrationError(Exception):
    """Base class for every failure talking to Jira or Xray"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class XrayConfigurationError(XrayIntegrationError):
    """Raised when credentials or base URLs are missing"""


class XrayAuthenticationError(XrayIntegrationError):
    """Raised when Xray rejects the client credentials"""


class XrayTransportError(XrayIntegrationError):
    """Raised on network failures and unexpected HTTP statuses"""


class XrayGraphQLError(XrayIntegrationError):
    """Raised when a GraphQL response carries an errors list"""


class XrayImportError(XrayIntegrationError):
    """Raised when a bulk import job fails or never finishes"""


class JiraUpdateError(XrayIntegrationError):
    """Raised when Jira refuses a field update"""


class InvalidStepTransition(RuntimeError):
    """Raised when a progress step would move backwards or is unknown"""
