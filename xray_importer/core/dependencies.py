from fastapi import Depends
from sqlalchemy.orm import Session
from xray_importer.repositories.interfaces.test_case_repository import ITestCaseRepository
from xray_importer.repositories.interfaces.jira_service import IJiraService
from xray_importer.repositories.interfaces.xray_service import IXrayService

from xray_importer.repositories.implementations.sql_test_case_repository import SQLTestCaseRepository
from xray_importer.repositories.implementations.jira_service import AtlassianJiraService
from xray_importer.repositories.implementations.xray_service import XrayCloudService

from xray_importer.services.import_coordinator import BatchImportCoordinator
from xray_importer.core.database import get_database


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._jira_service = None
        self._xray_service = None

    def test_case_repository(self, db: Session) -> ITestCaseRepository:
        """Get test case repository instance"""
        return SQLTestCaseRepository(db)

    def jira_service(self) -> IJiraService:
        """Get JIRA service instance (singleton)"""
        if self._jira_service is None:
            self._jira_service = AtlassianJiraService()
        return self._jira_service

    def xray_service(self) -> IXrayService:
        """Get Xray service instance (singleton)"""
        if self._xray_service is None:
            self._xray_service = XrayCloudService(jira_service=self.jira_service())
        return self._xray_service

    def import_coordinator(self, db: Session) -> BatchImportCoordinator:
        """Get an import coordinator bound to the request's session"""
        return BatchImportCoordinator(
            repository=self.test_case_repository(db),
            xray_service=self.xray_service(),
        )


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_test_case_repository(db: Session = Depends(get_database)) -> ITestCaseRepository:
    """FastAPI dependency for test case repository"""
    return container.test_case_repository(db)


def get_jira_service() -> IJiraService:
    """FastAPI dependency for JIRA service"""
    return container.jira_service()


def get_xray_service() -> IXrayService:
    """FastAPI dependency for Xray service"""
    return container.xray_service()


def get_import_coordinator(
    repository: ITestCaseRepository = Depends(get_test_case_repository),
    xray_service: IXrayService = Depends(get_xray_service),
) -> BatchImportCoordinator:
    """FastAPI dependency for the import coordinator"""
    return BatchImportCoordinator(repository=repository, xray_service=xray_service)
