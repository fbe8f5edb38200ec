from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from xray_importer.models.schemas import TestCaseStatus, TestType

Base = declarative_base()


class TestCaseModel(Base):
    __tablename__ = "test_cases"

    id = Column(Integer, primary_key=True, index=True)
    summary = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    test_type = Column(Enum(TestType), default=TestType.MANUAL)
    priority = Column(String(50), default="Medium")
    status = Column(Enum(TestCaseStatus), default=TestCaseStatus.NEW)
    labels = Column(JSON, default=list)
    steps = Column(JSON, default=list)
    # Serialized LinkingConfiguration
    xray_linking = Column(JSON, default=dict)
    project_key = Column(String(50), nullable=True, index=True)
    test_key = Column(String(50), nullable=True, index=True)
    test_issue_id = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<TestCase(id={self.id}, summary='{self.summary}', status='{self.status}')>"
