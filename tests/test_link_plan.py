from xray_importer.models.linking import LinkCategory, LinkingConfiguration
from xray_importer.services.link_plan import build_link_plan, build_progress_steps, count_links
from tests.fakes import full_configuration, target


def test_count_links_empty_configuration():
    assert count_links(LinkingConfiguration()) == 0


def test_count_links_full_configuration():
    """Each plan/execution/set is one call, folder and preconditions one call each"""
    assert count_links(full_configuration()) == 6


def test_folder_needs_project_id():
    config = LinkingConfiguration(folder_path="/Feature/Login")
    assert count_links(config) == 0


def test_root_folder_is_not_linked():
    config = LinkingConfiguration(folder_path="/", project_id="10000")
    assert count_links(config) == 0
    assert config.is_empty()


def test_preconditions_are_one_batched_call():
    config = LinkingConfiguration(preconditions=[target("1"), target("2"), target("3")])
    plan = build_link_plan(config)

    assert len(plan) == 1
    assert plan[0].target_ids == ("1", "2", "3")
    assert plan[0].step_label == "Linking 3 precondition(s)..."
    assert plan[0].success_label == "3 precondition(s)"
    assert plan[0].failure_label == "Preconditions"


def test_plan_order_and_step_ids():
    plan = build_link_plan(full_configuration())

    assert [link.step_id for link in plan] == ["plan-0", "plan-1", "exec-0", "set-0", "folder", "preconditions"]
    assert [link.category for link in plan] == [
        LinkCategory.PLAN,
        LinkCategory.PLAN,
        LinkCategory.EXECUTION,
        LinkCategory.SET,
        LinkCategory.FOLDER,
        LinkCategory.PRECONDITION,
    ]


def test_labels_and_keys_come_from_display_label():
    plan = build_link_plan(full_configuration())
    first, folder = plan[0], plan[4]

    assert first.step_label == "Linking to PROJ-1: Release plan..."
    assert first.key == "PROJ-1"
    assert first.failure_label == "Test Plan: PROJ-1: Release plan"
    assert folder.step_label == "Adding to folder /Feature/Login..."
    assert folder.failure_label == "Folder: /Feature/Login"
    assert folder.key is None


def test_label_falls_back_to_id():
    plan = build_link_plan(LinkingConfiguration(sets=[target("301")]))
    assert plan[0].step_label == "Linking to 301..."


def test_progress_steps_start_with_create():
    steps = build_progress_steps(full_configuration())

    assert len(steps) == count_links(full_configuration()) + 1
    assert steps[0].id == "create"
    assert steps[0].label == "Creating test in Jira..."
    assert all(step.status == "pending" for step in steps)


def test_progress_steps_for_update():
    steps = build_progress_steps(LinkingConfiguration(), is_update=True)
    assert [s.label for s in steps] == ["Updating test in Jira..."]
