from abc import ABC, abstractmethod
from typing import List
from xray_importer.models.linking import CreatedTest, FolderNode, LinkCategory, LinkOutcome, TestLinks, XrayEntity
from xray_importer.models.schemas import TestCase


class IXrayService(ABC):
    """Interface for the Xray operations the import pipeline relies on.

    Every method raises an ``XrayIntegrationError`` subclass when the remote
    side rejects the call. A link call that adds nothing (the test was already
    linked) is not an error and reports ``added_count == 0``.
    """

    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def create(self, test_case: TestCase) -> CreatedTest:
        """Create the test in Jira/Xray and return its issue id and key"""
        pass

    @abstractmethod
    async def update(self, issue_id: str, test_case: TestCase) -> CreatedTest:
        """Re-send the current field values of an existing test"""
        pass

    @abstractmethod
    async def link_to_plan(self, plan_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        pass

    @abstractmethod
    async def link_to_execution(self, execution_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        pass

    @abstractmethod
    async def link_to_set(self, set_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        pass

    @abstractmethod
    async def link_to_folder(self, project_id: str, folder_path: str, test_issue_ids: List[str]) -> LinkOutcome:
        pass

    @abstractmethod
    async def link_preconditions(self, test_issue_id: str, precondition_ids: List[str]) -> LinkOutcome:
        pass

    @abstractmethod
    async def fetch_links(self, test_issue_id: str) -> TestLinks:
        """Read back what Xray currently records for a test"""
        pass

    @abstractmethod
    async def get_project_id(self, project_key: str) -> str:
        """Resolve the numeric project id folder operations need"""
        pass

    @abstractmethod
    async def get_folder(self, project_id: str, path: str = "/") -> FolderNode:
        pass

    @abstractmethod
    async def list_entities(self, category: LinkCategory, project_key: str) -> List[XrayEntity]:
        """Plans, executions, sets or preconditions of a project that a test can be linked to"""
        pass
