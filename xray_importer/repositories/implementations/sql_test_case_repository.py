from typing import List, Optional
from sqlalchemy.orm import Session
from xray_importer.repositories.interfaces.test_case_repository import ITestCaseRepository
from xray_importer.models.database import TestCaseModel
from xray_importer.models.schemas import TestCase, TestCaseCreate, TestCaseUpdate, TestCaseStatus


class SQLTestCaseRepository(ITestCaseRepository):
    """SQLAlchemy implementation of the test case store"""

    def __init__(self, db: Session):
        self.db = db

    def _get_model(self, test_case_id: int) -> Optional[TestCaseModel]:
        return self.db.query(TestCaseModel).filter(TestCaseModel.id == test_case_id).first()

    def _commit(self) -> None:
        # a failed commit leaves the session unusable until it is rolled back
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    async def create(self, test_case: TestCaseCreate) -> TestCase:
        """Create a new test case"""
        db_test_case = TestCaseModel(**test_case.model_dump())
        self.db.add(db_test_case)
        self._commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def get_by_id(self, test_case_id: int) -> Optional[TestCase]:
        """Get test case by ID"""
        db_test_case = self._get_model(test_case_id)
        if db_test_case:
            return TestCase.model_validate(db_test_case)
        return None

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[TestCase]:
        """Get all test cases with pagination"""
        db_test_cases = self.db.query(TestCaseModel).order_by(TestCaseModel.id).offset(skip).limit(limit).all()
        return [TestCase.model_validate(test_case) for test_case in db_test_cases]

    async def update(self, test_case_id: int, test_case_update: TestCaseUpdate) -> Optional[TestCase]:
        """Update an existing test case"""
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return None

        update_data = test_case_update.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in update_data.items():
            setattr(db_test_case, field, value)

        self._commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def delete(self, test_case_id: int) -> bool:
        """Delete a test case"""
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return False

        self.db.delete(db_test_case)
        self._commit()
        return True

    async def mark_imported(self, test_case_id: int, test_key: str, test_issue_id: str) -> Optional[TestCase]:
        db_test_case = self._get_model(test_case_id)
        if not db_test_case:
            return None

        db_test_case.status = TestCaseStatus.IMPORTED
        db_test_case.test_key = test_key
        db_test_case.test_issue_id = test_issue_id
        self._commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)
