from abc import ABC, abstractmethod
from typing import Dict, Any


class IJiraService(ABC):
    """Interface for JIRA integration operations"""

    @abstractmethod
    async def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> None:
        """Update JIRA issue fields, raising JiraUpdateError on rejection"""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass
