import pytest

from xray_importer.core.exceptions import XrayImportError
from xray_importer.models.linking import AlreadyTracked, LinkingConfiguration, NewRecord, StepStatus
from xray_importer.models.schemas import TestCaseCreate as NewTestCase, TestCaseStatus
from xray_importer.services.import_coordinator import RECORD_NOT_FOUND, BatchImportCoordinator, classify_record
from tests.fakes import full_configuration, graphql_error, make_test_case, target


async def _store(repository, **fields):
    fields.setdefault("summary", "Login with valid credentials")
    return await repository.create(NewTestCase(**fields))


def test_classify_new_record():
    assert isinstance(classify_record(make_test_case()), NewRecord)


def test_classify_needs_both_key_and_id():
    assert isinstance(classify_record(make_test_case(test_key="PROJ-9")), NewRecord)

    tracked = classify_record(make_test_case(test_key="PROJ-9", test_issue_id="10009"))
    assert isinstance(tracked, AlreadyTracked)
    assert tracked.source_key == "PROJ-9"
    assert tracked.source_id == "10009"


@pytest.mark.asyncio
async def test_new_record_is_created_linked_and_marked_imported(repository, fake_xray):
    record = await _store(repository, xray_linking=full_configuration())
    coordinator = BatchImportCoordinator(repository, fake_xray)

    result = await coordinator.import_record(record.id)

    assert result.succeeded
    assert result.key == "PROJ-1"
    assert result.issue_id == "10001"
    assert not result.has_errors
    assert result.progress.is_complete
    assert all(s.status == StepStatus.COMPLETED for s in result.progress.steps)
    stored = await repository.get_by_id(record.id)
    assert stored.status == TestCaseStatus.IMPORTED
    assert stored.test_key == "PROJ-1"
    assert stored.test_issue_id == "10001"


@pytest.mark.asyncio
async def test_tracked_record_is_updated_in_place(repository, fake_xray):
    record = await _store(repository, test_key="PROJ-9", test_issue_id="10009")
    coordinator = BatchImportCoordinator(repository, fake_xray)

    result = await coordinator.import_record(record.id)

    assert fake_xray.calls_to("create") == []
    assert fake_xray.calls_to("update") == [("update", "10009", record.id)]
    assert result.key == "PROJ-9"
    assert result.issue_id == "10009"
    assert result.progress.is_update
    assert result.progress.steps[0].label == "Updating test in Jira..."


@pytest.mark.asyncio
async def test_failed_create_skips_linking(repository, fake_xray):
    record = await _store(repository, xray_linking=full_configuration())
    fake_xray.create_error = XrayImportError("Import failed: project PROJ does not exist")
    coordinator = BatchImportCoordinator(repository, fake_xray)

    result = await coordinator.import_record(record.id)

    assert not result.succeeded
    assert result.has_errors
    assert result.error == "Import failed: project PROJ does not exist"
    assert [c[0] for c in fake_xray.calls] == ["create"]
    assert result.progress.steps[0].status == StepStatus.FAILED
    stored = await repository.get_by_id(record.id)
    assert stored.status == TestCaseStatus.NEW
    assert stored.test_key is None


@pytest.mark.asyncio
async def test_link_failure_keeps_the_created_test(repository, fake_xray):
    config = LinkingConfiguration(plans=[target("101", "PROJ-1: Release plan")])
    record = await _store(repository, xray_linking=config)
    fake_xray.fail("link_to_plan", "101", graphql_error("Plan not found"))

    result = await BatchImportCoordinator(repository, fake_xray).import_record(record.id)

    assert result.succeeded
    assert result.has_errors
    assert result.progress.failed_items[0].error == "Plan not found"
    assert (await repository.get_by_id(record.id)).status == TestCaseStatus.IMPORTED


@pytest.mark.asyncio
async def test_missing_record(repository, fake_xray):
    result = await BatchImportCoordinator(repository, fake_xray).import_record(42)

    assert result.error == RECORD_NOT_FOUND
    assert result.has_errors
    assert fake_xray.calls == []


@pytest.mark.asyncio
async def test_batch_runs_records_in_order(repository, fake_xray):
    first = await _store(repository, summary="First")
    second = await _store(repository, summary="Second")
    third = await _store(repository, summary="Third")
    coordinator = BatchImportCoordinator(repository, fake_xray)

    results = await coordinator.run_batch([third.id, first.id, second.id])

    assert [r.record_id for r in results] == [third.id, first.id, second.id]
    assert [c[1] for c in fake_xray.calls_to("create")] == [third.id, first.id, second.id]


@pytest.mark.asyncio
async def test_batch_continues_past_a_failed_record(repository, fake_xray):
    """One record failing to create must not affect the others"""
    records = [await _store(repository, summary=f"Case {i}") for i in range(3)]

    original_create = fake_xray.create

    async def flaky_create(test_case):
        if test_case.id == records[1].id:
            fake_xray.calls.append(("create", test_case.id))
            raise XrayImportError("Import failed: summary too long")
        return await original_create(test_case)

    fake_xray.create = flaky_create
    results = await BatchImportCoordinator(repository, fake_xray).run_batch([r.id for r in records])

    assert [r.succeeded for r in results] == [True, False, True]
    assert results[1].error == "Import failed: summary too long"


@pytest.mark.asyncio
async def test_progress_callback_is_keyed_by_record(repository, fake_xray):
    first = await _store(repository)
    second = await _store(repository, xray_linking=LinkingConfiguration(sets=[target("301")]))
    seen = []

    await BatchImportCoordinator(repository, fake_xray).run_batch(
        [first.id, second.id],
        on_progress=lambda record_id, state: seen.append((record_id, state.phase)),
    )

    assert {record_id for record_id, _ in seen} == {first.id, second.id}
    assert seen[-1] == (second.id, "complete")
    first_events = [phase for record_id, phase in seen if record_id == first.id]
    assert first_events[-1] == "complete"


@pytest.mark.asyncio
async def test_revalidate_uses_stored_issue_id(repository, fake_xray):
    record = await _store(
        repository,
        test_key="PROJ-9",
        test_issue_id="10009",
        xray_linking=LinkingConfiguration(plans=[target("101")]),
    )

    validation = await BatchImportCoordinator(repository, fake_xray).revalidate(record)

    assert fake_xray.calls == [("fetch_links", "10009")]
    assert validation.plans.missing == ["101"]


@pytest.mark.asyncio
async def test_mixed_batch_routes_each_record_and_continues(repository, fake_xray):
    new_record = await _store(repository, summary="Brand new")
    tracked = await _store(repository, summary="Known", test_key="PROJ-9", test_issue_id="10009")
    fake_xray.create_error = XrayImportError("Import failed: project PROJ does not exist")

    results = await BatchImportCoordinator(repository, fake_xray).run_batch([new_record.id, tracked.id])

    assert fake_xray.calls_to("create") == [("create", new_record.id)]
    assert fake_xray.calls_to("update") == [("update", "10009", tracked.id)]
    assert [r.succeeded for r in results] == [False, True]
    assert results[0].error == "Import failed: project PROJ does not exist"
    assert results[1].key == "PROJ-9"
    assert not results[1].has_errors


@pytest.mark.asyncio
async def test_failed_update_leaves_record_untouched(repository, fake_xray):
    record = await _store(repository, test_key="PROJ-9", test_issue_id="10009",
                          xray_linking=LinkingConfiguration(plans=[target("101")]))
    fake_xray.update_error = RuntimeError()

    result = await BatchImportCoordinator(repository, fake_xray).import_record(record.id)

    assert result.key is None
    assert not result.succeeded
    assert result.error == "Update failed"
    create_step = result.progress.steps[0]
    assert create_step.status == StepStatus.FAILED
    assert create_step.error == "Update failed"
    assert result.progress.current_index == 1
    assert fake_xray.calls_to("link_to_plan") == []
    stored = await repository.get_by_id(record.id)
    assert stored.status == TestCaseStatus.NEW
    assert stored.test_key == "PROJ-9"


@pytest.mark.asyncio
async def test_local_save_failure_does_not_stop_the_batch(repository, fake_xray):
    first = await _store(repository, summary="First", xray_linking=LinkingConfiguration(sets=[target("301")]))
    second = await _store(repository, summary="Second")
    original_mark = repository.mark_imported

    async def locked_mark(test_case_id, test_key, test_issue_id):
        if test_case_id == first.id:
            raise RuntimeError("database is locked")
        return await original_mark(test_case_id, test_key, test_issue_id)

    repository.mark_imported = locked_mark
    results = await BatchImportCoordinator(repository, fake_xray).run_batch([first.id, second.id])

    assert [r.record_id for r in results] == [first.id, second.id]
    assert results[0].succeeded
    assert results[0].has_errors
    assert "database is locked" in results[0].error
    assert results[0].progress.is_complete
    assert fake_xray.calls_to("link_to_set") == [("link_to_set", "301", [results[0].issue_id])]
    assert results[1].succeeded
    assert (await repository.get_by_id(second.id)).status == TestCaseStatus.IMPORTED


@pytest.mark.asyncio
async def test_project_id_is_resolved_for_folder_linking(repository, fake_xray):
    record = await _store(repository, project_key="PROJ",
                          xray_linking=LinkingConfiguration(folder_path="/Feature/Login"))
    fake_xray.project_ids["PROJ"] = "10000"

    result = await BatchImportCoordinator(repository, fake_xray).import_record(record.id)

    assert fake_xray.calls_to("get_project_id") == [("get_project_id", "PROJ")]
    assert fake_xray.calls_to("link_to_folder") == [("link_to_folder", "10000", "/Feature/Login", [result.issue_id])]
    assert [s.id for s in result.progress.steps] == ["create", "folder"]
    assert not result.has_errors


@pytest.mark.asyncio
async def test_unresolved_project_id_surfaces_as_folder_drift(repository, fake_xray):
    record = await _store(repository, project_key="NOPE",
                          xray_linking=LinkingConfiguration(folder_path="/Feature/Login"))

    result = await BatchImportCoordinator(repository, fake_xray).import_record(record.id)

    assert result.succeeded
    assert fake_xray.calls_to("link_to_folder") == []
    assert result.has_errors
    assert not result.progress.validation.folder.valid
