import asyncio
import httpx
from typing import Optional, List, Dict, Any, Awaitable, Callable
import structlog

from xray_importer.repositories.interfaces.xray_service import IXrayService
from xray_importer.repositories.interfaces.jira_service import IJiraService
from xray_importer.models.linking import CreatedTest, FolderNode, LinkCategory, LinkOutcome, TestLinks, XrayEntity
from xray_importer.models.schemas import TestCase
from xray_importer.config.settings import settings
from xray_importer.core.cache import TTLCache, XRAY_TOKEN_CACHE
from xray_importer.core.exceptions import (
    XrayAuthenticationError,
    XrayConfigurationError,
    XrayGraphQLError,
    XrayImportError,
    XrayTransportError,
)
from xray_importer.utils.code_detection import format_step_data

logger = structlog.get_logger()


ADD_TESTS_TO_TEST_PLAN = """
mutation AddTestsToTestPlan($issueId: String!, $testIssueIds: [String]!) {
  addTestsToTestPlan(issueId: $issueId, testIssueIds: $testIssueIds) {
    addedTests
    warning
  }
}
"""

ADD_TESTS_TO_TEST_EXECUTION = """
mutation AddTestsToTestExecution($issueId: String!, $testIssueIds: [String]!) {
  addTestsToTestExecution(issueId: $issueId, testIssueIds: $testIssueIds) {
    addedTests
    warning
  }
}
"""

ADD_TESTS_TO_TEST_SET = """
mutation AddTestsToTestSet($issueId: String!, $testIssueIds: [String]!) {
  addTestsToTestSet(issueId: $issueId, testIssueIds: $testIssueIds) {
    addedTests
    warning
  }
}
"""

ADD_TESTS_TO_FOLDER = """
mutation AddTestsToFolder($projectId: String!, $path: String!, $testIssueIds: [String]!) {
  addTestsToFolder(projectId: $projectId, path: $path, testIssueIds: $testIssueIds) {
    folder {
      name
      path
      testsCount
    }
    warnings
  }
}
"""

ADD_PRECONDITIONS_TO_TEST = """
mutation AddPreconditionsToTest($issueId: String!, $preconditionIssueIds: [String]!) {
  addPreconditionsToTest(issueId: $issueId, preconditionIssueIds: $preconditionIssueIds) {
    addedPreconditions
    warning
  }
}
"""

REMOVE_ALL_TEST_STEPS = """
mutation RemoveAllTestSteps($issueId: String!) {
  removeAllTestSteps(issueId: $issueId)
}
"""

ADD_TEST_STEP = """
mutation AddTestStep($issueId: String!, $step: CreateStepInput!) {
  addTestStep(issueId: $issueId, step: $step) {
    id
  }
}
"""

GET_TEST_WITH_LINKS = """
query GetTestWithLinks($issueId: String!) {
  getTest(issueId: $issueId) {
    issueId
    jira(fields: ["key"])
    folder {
      path
    }
    testPlans(limit: 100) {
      results {
        issueId
      }
    }
    testSets(limit: 100) {
      results {
        issueId
      }
    }
    testExecutions(limit: 100) {
      results {
        issueId
      }
    }
    preconditions(limit: 100) {
      results {
        issueId
      }
    }
  }
}
"""

GET_PROJECT_SETTINGS = """
query GetProjectSettings($projectIdOrKey: String!) {
  getProjectSettings(projectIdOrKey: $projectIdOrKey) {
    projectId
  }
}
"""

GET_FOLDER = """
query GetFolder($projectId: String!, $path: String!) {
  getFolder(projectId: $projectId, path: $path) {
    name
    path
    testsCount
    folders
  }
}
"""

GET_TEST_PLANS = """
query GetTestPlans($jql: String!, $limit: Int!) {
  getTestPlans(jql: $jql, limit: $limit) {
    results {
      issueId
      jira(fields: ["key", "summary"])
      tests(limit: 1) {
        total
      }
    }
  }
}
"""

GET_TEST_EXECUTIONS = """
query GetTestExecutions($jql: String!, $limit: Int!) {
  getTestExecutions(jql: $jql, limit: $limit) {
    results {
      issueId
      jira(fields: ["key", "summary"])
      tests(limit: 1) {
        total
      }
    }
  }
}
"""

GET_TEST_SETS = """
query GetTestSets($jql: String!, $limit: Int!) {
  getTestSets(jql: $jql, limit: $limit) {
    results {
      issueId
      jira(fields: ["key", "summary"])
      tests(limit: 1) {
        total
      }
    }
  }
}
"""

GET_PRECONDITIONS = """
query GetPreconditions($jql: String!, $limit: Int!) {
  getPreconditions(jql: $jql, limit: $limit) {
    results {
      issueId
      jira(fields: ["key", "summary"])
    }
  }
}
"""

# category -> (query, result field)
ENTITY_LISTINGS = {
    LinkCategory.PLAN: (GET_TEST_PLANS, "getTestPlans"),
    LinkCategory.EXECUTION: (GET_TEST_EXECUTIONS, "getTestExecutions"),
    LinkCategory.SET: (GET_TEST_SETS, "getTestSets"),
    LinkCategory.PRECONDITION: (GET_PRECONDITIONS, "getPreconditions"),
}


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the error text Xray puts in a response body"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


def _added_count(value: Any) -> int:
    """Xray reports added ids as a list; older responses used a plain number"""
    if isinstance(value, list):
        return len(value)
    return int(value or 0)


def _issue_ids(section: Optional[Dict[str, Any]]) -> List[str]:
    return [str(item["issueId"]) for item in (section or {}).get("results", [])]


class XrayCloudService(IXrayService):
    """Xray Cloud implementation backed by the REST bulk import and GraphQL APIs"""

    def __init__(
        self,
        jira_service: IJiraService,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_cache: TTLCache = XRAY_TOKEN_CACHE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = settings.xray_base_url.rstrip("/")
        self.client_id = settings.xray_client_id
        self.client_secret = settings.xray_client_secret
        self.jira_service = jira_service
        self._transport = transport
        self._token_cache = token_cache
        self._sleep = sleep

    def is_configured(self) -> bool:
        """Check if Xray service is properly configured"""
        return bool(self.base_url and self.client_id and self.client_secret)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    async def _get_token(self, client: httpx.AsyncClient) -> str:
        if not self.is_configured():
            raise XrayConfigurationError("Xray client credentials are not configured")

        cache_key = ("xray_token", self.base_url, self.client_id)
        token = self._token_cache.get(cache_key)
        if token:
            return token

        logger.info("Authenticating with Xray", base_url=self.base_url)
        response = await client.post(
            f"{self.base_url}/api/v2/authenticate",
            json={"client_id": self.client_id, "client_secret": self.client_secret},
            headers={"Content-Type": "application/json"},
        )
        if response.status_code != 200:
            message = _error_message(response)
            logger.error("Xray authentication failed", status_code=response.status_code, error=message)
            if "Invalid client credentials" in message:
                raise XrayAuthenticationError(
                    "Authentication failed: Invalid client credentials",
                    status_code=response.status_code,
                )
            raise XrayAuthenticationError(f"Authentication failed: {message}", status_code=response.status_code)

        token = response.json()
        if not token:
            raise XrayAuthenticationError("Authentication failed: No token received")
        self._token_cache.set(cache_key, token, settings.xray_token_ttl_seconds)
        return token

    async def _auth_headers(self, client: httpx.AsyncClient) -> Dict[str, str]:
        token = await self._get_token(client)
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def _execute_graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with self._client(settings.xray_request_timeout) as client:
                headers = await self._auth_headers(client)
                response = await client.post(
                    f"{self.base_url}/api/v2/graphql",
                    json={"query": query, "variables": variables},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise XrayTransportError(f"Xray request failed: {e}") from e

        if response.status_code != 200:
            raise XrayTransportError(_error_message(response), status_code=response.status_code)

        body = response.json()
        errors = body.get("errors")
        if errors:
            raise XrayGraphQLError(errors[0].get("message") or "GraphQL error")
        return body.get("data") or {}

    def _to_bulk_import_payload(self, test_case: TestCase, project_key: str) -> Dict[str, Any]:
        return {
            "testtype": test_case.test_type.value,
            "fields": {
                "summary": test_case.summary,
                "project": {"key": project_key},
                "description": test_case.description or "",
                "labels": test_case.labels or [],
            },
            "steps": [
                {
                    "action": step.action or "",
                    "data": format_step_data(step.data or ""),
                    "result": step.result or "",
                }
                for step in test_case.steps
            ],
        }

    async def create(self, test_case: TestCase) -> CreatedTest:
        """Create a test through the bulk import API and wait for the job"""
        project_key = test_case.project_key or settings.default_project_key
        if not project_key:
            raise XrayImportError("No project key specified")

        payload = [self._to_bulk_import_payload(test_case, project_key)]
        try:
            async with self._client(settings.xray_import_timeout) as client:
                headers = await self._auth_headers(client)
                response = await client.post(
                    f"{self.base_url}/api/v1/import/test/bulk",
                    json=payload,
                    headers=headers,
                )
                if response.status_code != 200:
                    raise XrayImportError(
                        f"Import failed: {_error_message(response)}",
                        status_code=response.status_code,
                    )

                job_id = response.json().get("jobId")
                if not job_id:
                    raise XrayImportError("Import completed but no jobId returned")

                logger.info("Xray import job started", job_id=job_id, project_key=project_key)
                return await self._wait_for_job(client, headers, job_id)
        except httpx.HTTPError as e:
            raise XrayTransportError(f"Import failed: {e}") from e

    async def _wait_for_job(self, client: httpx.AsyncClient, headers: Dict[str, str], job_id: str) -> CreatedTest:
        for attempt in range(settings.xray_job_max_attempts):
            response = await client.get(
                f"{self.base_url}/api/v1/import/test/bulk/{job_id}/status",
                headers=headers,
            )
            if response.status_code != 200:
                raise XrayImportError(
                    f"Failed to get job status: {_error_message(response)}",
                    status_code=response.status_code,
                )

            data = response.json()
            status = data.get("status")
            result = data.get("result") or {}

            if status == "successful":
                issues = result.get("issues") or result.get("createdIssues") or []
                if not issues:
                    raise XrayImportError("Import job succeeded but returned no issues")
                created = CreatedTest(id=str(issues[0]["id"]), key=issues[0]["key"])
                logger.info("Xray import job finished", job_id=job_id, test_key=created.key, attempts=attempt + 1)
                return created

            if status == "failed":
                if isinstance(result, str):
                    message = result
                else:
                    message = (
                        result.get("error")
                        or result.get("message")
                        or ", ".join(result.get("errors") or [])
                        or "Import job failed"
                    )
                logger.error("Xray import job failed", job_id=job_id, error=message)
                raise XrayImportError(message)

            await self._sleep(settings.xray_job_poll_interval)

        raise XrayImportError("Job status polling timed out")

    async def update(self, issue_id: str, test_case: TestCase) -> CreatedTest:
        """Re-send summary, description, labels and steps of an existing test"""
        await self.jira_service.update_issue(
            issue_id,
            {
                "summary": test_case.summary,
                "description": test_case.description or "",
                "labels": test_case.labels or [],
            },
        )

        await self._execute_graphql(REMOVE_ALL_TEST_STEPS, {"issueId": issue_id})
        for step in test_case.steps:
            await self._execute_graphql(
                ADD_TEST_STEP,
                {
                    "issueId": issue_id,
                    "step": {
                        "action": step.action or "",
                        "data": format_step_data(step.data or ""),
                        "result": step.result or "",
                    },
                },
            )

        logger.info("Xray test updated", issue_id=issue_id, steps=len(test_case.steps))
        return CreatedTest(id=issue_id, key=test_case.test_key or "")

    async def link_to_plan(self, plan_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        data = await self._execute_graphql(ADD_TESTS_TO_TEST_PLAN, {"issueId": plan_id, "testIssueIds": test_issue_ids})
        result = data["addTestsToTestPlan"]
        return LinkOutcome(added_count=_added_count(result.get("addedTests")), warning=result.get("warning"))

    async def link_to_execution(self, execution_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        data = await self._execute_graphql(
            ADD_TESTS_TO_TEST_EXECUTION, {"issueId": execution_id, "testIssueIds": test_issue_ids}
        )
        result = data["addTestsToTestExecution"]
        return LinkOutcome(added_count=_added_count(result.get("addedTests")), warning=result.get("warning"))

    async def link_to_set(self, set_id: str, test_issue_ids: List[str]) -> LinkOutcome:
        data = await self._execute_graphql(ADD_TESTS_TO_TEST_SET, {"issueId": set_id, "testIssueIds": test_issue_ids})
        result = data["addTestsToTestSet"]
        return LinkOutcome(added_count=_added_count(result.get("addedTests")), warning=result.get("warning"))

    async def link_to_folder(self, project_id: str, folder_path: str, test_issue_ids: List[str]) -> LinkOutcome:
        data = await self._execute_graphql(
            ADD_TESTS_TO_FOLDER, {"projectId": project_id, "path": folder_path, "testIssueIds": test_issue_ids}
        )
        result = data["addTestsToFolder"]
        warnings = result.get("warnings") or []
        # The folder mutation reports the folder, not a count
        added = 0 if warnings else len(test_issue_ids)
        return LinkOutcome(added_count=added, warning="; ".join(warnings) or None)

    async def link_preconditions(self, test_issue_id: str, precondition_ids: List[str]) -> LinkOutcome:
        data = await self._execute_graphql(
            ADD_PRECONDITIONS_TO_TEST, {"issueId": test_issue_id, "preconditionIssueIds": precondition_ids}
        )
        result = data["addPreconditionsToTest"]
        return LinkOutcome(added_count=_added_count(result.get("addedPreconditions")), warning=result.get("warning"))

    async def fetch_links(self, test_issue_id: str) -> TestLinks:
        data = await self._execute_graphql(GET_TEST_WITH_LINKS, {"issueId": test_issue_id})
        test = data.get("getTest")
        if not test:
            raise XrayGraphQLError(f"Test {test_issue_id} not found")

        return TestLinks(
            plans=_issue_ids(test.get("testPlans")),
            executions=_issue_ids(test.get("testExecutions")),
            sets=_issue_ids(test.get("testSets")),
            preconditions=_issue_ids(test.get("preconditions")),
            folder=(test.get("folder") or {}).get("path"),
        )

    async def get_project_id(self, project_key: str) -> str:
        data = await self._execute_graphql(GET_PROJECT_SETTINGS, {"projectIdOrKey": project_key})
        project_id = (data.get("getProjectSettings") or {}).get("projectId")
        if not project_id:
            raise XrayGraphQLError(f"Could not resolve project ID for {project_key}")
        return str(project_id)

    async def get_folder(self, project_id: str, path: str = "/") -> FolderNode:
        data = await self._execute_graphql(GET_FOLDER, {"projectId": project_id, "path": path})
        folder = data.get("getFolder")
        if not folder:
            raise XrayGraphQLError(f"Folder {path} not found")

        return FolderNode(
            name=folder.get("name") or "",
            path=folder.get("path") or path,
            tests_count=folder.get("testsCount") or 0,
            folders=folder.get("folders") or [],
        )

    async def list_entities(self, category: LinkCategory, project_key: str) -> List[XrayEntity]:
        if category not in ENTITY_LISTINGS:
            raise ValueError(f"Cannot list {category.value} entities")

        query, field = ENTITY_LISTINGS[category]
        data = await self._execute_graphql(
            query, {"jql": f"project = '{project_key}'", "limit": settings.xray_listing_limit}
        )
        entities = []
        for item in (data.get(field) or {}).get("results", []):
            jira = item.get("jira") or {}
            tests = item.get("tests")
            entities.append(
                XrayEntity(
                    issue_id=str(item["issueId"]),
                    key=jira.get("key", ""),
                    summary=jira.get("summary", ""),
                    test_count=tests.get("total", 0) if tests is not None else None,
                )
            )
        return entities
