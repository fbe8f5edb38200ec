"""
Xray Test Case Importer API

FastAPI backend that pushes locally authored test cases into Jira/Xray Cloud
and associates each test with Test Plans, Test Executions, Test Sets, a
repository folder and preconditions.

Architecture Overview:
- Repository pattern for the local test case store
- Dependency Injection container for the Xray and Jira transports
- Best-effort linking: one failed association never aborts the others
- Read-back validation of every link after an import

Key Features:
- Create tests through the Xray bulk import API (job polling included)
- Update tests that already exist in Jira instead of creating duplicates
- Per-step progress (create, each link, validation) for every record
- Sequential batch imports with per-record results
- Code snippets in step data rendered as Jira {code} blocks
- Structured logging with structlog

Usage:
1. Copy .env.example to .env and set XRAY_CLIENT_ID / XRAY_CLIENT_SECRET
2. Install dependencies: pip install -e ".[test]"
3. Run the application: python main.py
4. Access API docs at: http://localhost:8000/api/v1/docs
5. Or import from the shell: python scripts/import_test_cases.py 3 4 7

API Endpoints:
- POST /api/v1/test-cases/ - Store a local test case
- GET /api/v1/test-cases/{id} - Get test case by ID
- PUT /api/v1/test-cases/{id} - Update test case
- DELETE /api/v1/test-cases/{id} - Delete test case
- POST /api/v1/imports/test-cases/{id} - Import and link one test case
- POST /api/v1/imports/batch - Import several test cases in order
- POST /api/v1/imports/test-cases/{id}/validate - Re-check links in Xray
- GET /api/v1/xray/project-id/{project_key} - Resolve the numeric project id
- GET /api/v1/xray/folders/{project_id}?path=/ - Browse the test repository
- GET /api/v1/xray/{test-plans,test-executions,test-sets,preconditions}/{project_key} - List link targets
- GET /api/v1/health - Health check

Architecture Components:

1. Controllers (xray_importer/api/routes/):
   - HTTP surface for records, imports and health

2. Services (xray_importer/services/):
   - link_plan: ordered link operations for a configuration
   - progress_tracker: step state machine
   - linking_orchestrator: runs the plan, then validation
   - reconciliation: diff between requested and actual links
   - import_coordinator: create-or-update, link, mark imported

3. Repositories (xray_importer/repositories/):
   - Test case store (SQLAlchemy)
   - Xray Cloud and Jira REST transports (httpx)

4. Models (xray_importer/models/):
   - Pydantic schemas and linking/progress types
   - SQLAlchemy models for database
"""

__version__ = "1.0.0"
__description__ = "Imports local test cases into Jira/Xray and links them"
