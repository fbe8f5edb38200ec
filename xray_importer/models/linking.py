from pydantic import BaseModel, Field
from typing import Annotated, Any, List, Optional, Literal, Union
from enum import Enum


ROOT_FOLDER = "/"


class LinkCategory(str, Enum):
    PLAN = "plan"
    EXECUTION = "execution"
    SET = "set"
    FOLDER = "folder"
    PRECONDITION = "precondition"


class LinkTarget(BaseModel):
    id: str = Field(..., description="Issue id of the linked Xray entity")
    display_label: Optional[str] = Field(None, description="Human readable label, e.g. 'PROJ-12: Regression'")

    @property
    def label(self) -> str:
        return self.display_label or self.id


class LinkingConfiguration(BaseModel):
    """Xray entities a test case should be associated with, per category"""

    plans: List[LinkTarget] = Field(default_factory=list)
    executions: List[LinkTarget] = Field(default_factory=list)
    sets: List[LinkTarget] = Field(default_factory=list)
    preconditions: List[LinkTarget] = Field(default_factory=list)
    folder_path: str = Field(default="", description="Test repository folder, e.g. '/Feature/Login'")
    project_id: str = Field(default="", description="Numeric Jira project id, required for folder linking")

    @property
    def expected_folder(self) -> Optional[str]:
        """Folder the test should end up in, or None for empty/root"""
        if not self.folder_path or self.folder_path == ROOT_FOLDER:
            return None
        return self.folder_path

    @property
    def links_folder(self) -> bool:
        return self.expected_folder is not None and bool(self.project_id)

    def is_empty(self) -> bool:
        return not (self.plans or self.executions or self.sets or self.preconditions or self.links_folder)


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportPhase(str, Enum):
    IMPORTING = "importing"
    VALIDATING = "validating"
    COMPLETE = "complete"


class ImportStep(BaseModel):
    id: str
    label: str
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None


class LinkedItem(BaseModel):
    label: str
    category: LinkCategory
    key: Optional[str] = None


class FailedItem(BaseModel):
    label: str
    error: str


class CategoryValidation(BaseModel):
    expected: List[str] = Field(default_factory=list)
    found: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


class FolderValidation(BaseModel):
    expected: Optional[str] = None
    found: Optional[str] = None
    valid: bool = True


class ValidationResult(BaseModel):
    is_validated: bool
    plans: CategoryValidation = Field(default_factory=CategoryValidation)
    executions: CategoryValidation = Field(default_factory=CategoryValidation)
    sets: CategoryValidation = Field(default_factory=CategoryValidation)
    preconditions: CategoryValidation = Field(default_factory=CategoryValidation)
    folder: FolderValidation = Field(default_factory=FolderValidation)

    @classmethod
    def unvalidated(cls) -> "ValidationResult":
        """Result used when the read-back itself could not be performed"""
        return cls(is_validated=False)

    @property
    def has_mismatch(self) -> bool:
        categories = (self.plans, self.executions, self.sets, self.preconditions)
        return any(c.missing for c in categories) or not self.folder.valid


class LinkingResult(BaseModel):
    linked_items: List[LinkedItem] = Field(default_factory=list)
    failed_items: List[FailedItem] = Field(default_factory=list)
    has_errors: bool = False
    validation: Optional[ValidationResult] = None


class ProgressState(BaseModel):
    phase: ImportPhase = ImportPhase.IMPORTING
    steps: List[ImportStep] = Field(default_factory=list)
    current_index: int = 0
    created_id: Optional[str] = None
    created_key: Optional[str] = None
    linked_items: List[LinkedItem] = Field(default_factory=list)
    failed_items: List[FailedItem] = Field(default_factory=list)
    has_errors: bool = False
    validation: Optional[ValidationResult] = None
    is_update: bool = False

    @property
    def is_complete(self) -> bool:
        return self.phase == ImportPhase.COMPLETE

    def percent_complete(self) -> float:
        if not self.steps:
            return 0.0
        done = sum(1 for s in self.steps if s.status in (StepStatus.COMPLETED, StepStatus.FAILED))
        return done / len(self.steps)


# Transport level payloads returned by the Xray client

class LinkOutcome(BaseModel):
    added_count: int = 0
    warning: Optional[str] = None


class CreatedTest(BaseModel):
    id: str
    key: str


class TestLinks(BaseModel):
    plans: List[str] = Field(default_factory=list)
    executions: List[str] = Field(default_factory=list)
    sets: List[str] = Field(default_factory=list)
    preconditions: List[str] = Field(default_factory=list)
    folder: Optional[str] = None


class XrayEntity(BaseModel):
    issue_id: str
    key: str = ""
    summary: str = ""
    test_count: Optional[int] = None


class FolderNode(BaseModel):
    name: str = ""
    path: str = ROOT_FOLDER
    tests_count: int = 0
    # Xray returns the child folders as raw JSON
    folders: List[Any] = Field(default_factory=list)


# Record classification, resolved once when a record is loaded

class NewRecord(BaseModel):
    kind: Literal["new"] = "new"


class AlreadyTracked(BaseModel):
    kind: Literal["already_tracked"] = "already_tracked"
    source_key: str
    source_id: str


RecordClassification = Annotated[Union[NewRecord, AlreadyTracked], Field(discriminator="kind")]


class BatchItemResult(BaseModel):
    record_id: int
    key: Optional[str] = None
    issue_id: Optional[str] = None
    error: Optional[str] = None
    has_errors: bool = False
    progress: Optional[ProgressState] = None

    @property
    def succeeded(self) -> bool:
        return self.key is not None
