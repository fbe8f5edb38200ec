import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from xray_importer.core.database import get_database
from xray_importer.core.dependencies import get_jira_service, get_xray_service
from xray_importer.models.database import Base
from tests.fakes import FakeJiraService, FakeXrayService, InMemoryTestCaseRepository


@pytest.fixture
def fake_xray():
    return FakeXrayService()


@pytest.fixture
def fake_jira():
    return FakeJiraService()


@pytest.fixture
def repository():
    return InMemoryTestCaseRepository()


@pytest.fixture
def test_client(fake_xray, fake_jira):
    """API client backed by an in-memory database and fake Atlassian services"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_database] = override_get_db
    app.dependency_overrides[get_xray_service] = lambda: fake_xray
    app.dependency_overrides[get_jira_service] = lambda: fake_jira

    yield TestClient(app)

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
