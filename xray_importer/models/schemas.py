from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from xray_importer.models.linking import LinkingConfiguration, BatchItemResult


class TestCaseStatus(str, Enum):
    NEW = "new"
    DRAFT = "draft"
    READY = "ready"
    IMPORTED = "imported"


class TestType(str, Enum):
    MANUAL = "Manual"
    AUTOMATED = "Automated"


class TestStep(BaseModel):
    action: str = Field(..., description="Action to be performed")
    data: str = Field(default="", description="Test data required for this step")
    result: str = Field(default="", description="Expected result of the action")


class TestCaseBase(BaseModel):
    summary: str = Field(..., description="Test case summary, becomes the Jira issue summary")
    description: str = Field(default="", description="Detailed description of the test case")
    test_type: TestType = Field(default=TestType.MANUAL)
    priority: str = Field(default="Medium")
    labels: List[str] = Field(default_factory=list, description="Jira labels")
    steps: List[TestStep] = Field(default_factory=list, description="Ordered test steps")
    xray_linking: LinkingConfiguration = Field(default_factory=LinkingConfiguration)
    project_key: Optional[str] = Field(None, description="Jira project the test is imported into")


class TestCaseCreate(TestCaseBase):
    # Set when the record was copied from a test that already exists in Xray
    test_key: Optional[str] = None
    test_issue_id: Optional[str] = None


class TestCaseUpdate(BaseModel):
    summary: Optional[str] = None
    description: Optional[str] = None
    test_type: Optional[TestType] = None
    priority: Optional[str] = None
    labels: Optional[List[str]] = None
    steps: Optional[List[TestStep]] = None
    xray_linking: Optional[LinkingConfiguration] = None
    project_key: Optional[str] = None
    status: Optional[TestCaseStatus] = None


class TestCase(TestCaseBase):
    id: int
    status: TestCaseStatus = TestCaseStatus.NEW
    created_at: datetime
    updated_at: datetime
    test_key: Optional[str] = None
    test_issue_id: Optional[str] = None

    class Config:
        from_attributes = True


class BatchImportRequest(BaseModel):
    record_ids: List[int] = Field(..., description="Local test case ids, imported in this order")


class BatchImportResponse(BaseModel):
    results: List[BatchItemResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    with_warnings: int = 0
