import httpx
from typing import Optional, Dict, Any
import structlog
from xray_importer.repositories.interfaces.jira_service import IJiraService
from xray_importer.config.settings import settings
from xray_importer.core.exceptions import JiraUpdateError, XrayConfigurationError, XrayTransportError

logger = structlog.get_logger()


class AtlassianJiraService(IJiraService):
    """Atlassian JIRA Cloud implementation of JIRA service"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (settings.jira_base_url or "").rstrip("/")
        self.username = settings.jira_username
        self.api_token = settings.jira_api_token
        self.auth = (self.username, self.api_token) if self.username and self.api_token else None
        self.timeout = settings.xray_request_timeout
        self._transport = transport

    async def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> None:
        """Update JIRA issue fields"""
        if not self.is_configured():
            logger.warning("JIRA service not configured")
            raise XrayConfigurationError("Jira credentials are not configured")

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                # v2 accepts plain text descriptions, v3 would require ADF
                response = await client.put(
                    f"{self.base_url}/rest/api/2/issue/{issue_id}",
                    json={"fields": fields},
                    auth=self.auth,
                    headers={"Accept": "application/json", "Content-Type": "application/json"}
                )
        except httpx.HTTPError as e:
            logger.error("Error updating JIRA issue", issue_id=issue_id, error=str(e))
            raise XrayTransportError(f"Jira update failed: {e}") from e

        if response.status_code != 204:
            logger.error("Failed to update JIRA issue",
                         issue_id=issue_id,
                         status_code=response.status_code,
                         response=response.text)
            raise JiraUpdateError(
                f"Update failed: Jira responded with {response.status_code}",
                status_code=response.status_code,
            )

        logger.info("JIRA issue updated successfully", issue_id=issue_id)

    def is_configured(self) -> bool:
        """Check if JIRA service is properly configured"""
        return bool(self.base_url and self.username and self.api_token)
