"""Ordered plan of link operations derived from a LinkingConfiguration.

Both the progress steps and the orchestrator iterate this plan, so the
precomputed step list and the calls actually made always agree in length
and order: plans, executions, sets, folder, preconditions.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from xray_importer.models.linking import ImportStep, LinkCategory, LinkingConfiguration, LinkTarget

CREATE_STEP_ID = "create"
FOLDER_STEP_ID = "folder"
PRECONDITIONS_STEP_ID = "preconditions"

CATEGORY_TITLES = {
    LinkCategory.PLAN: "Test Plan",
    LinkCategory.EXECUTION: "Test Execution",
    LinkCategory.SET: "Test Set",
    LinkCategory.FOLDER: "Folder",
    LinkCategory.PRECONDITION: "Preconditions",
}

_STEP_PREFIXES = {
    LinkCategory.PLAN: "plan",
    LinkCategory.EXECUTION: "exec",
    LinkCategory.SET: "set",
}


@dataclass(frozen=True)
class PlannedLink:
    step_id: str
    category: LinkCategory
    target_ids: Tuple[str, ...]
    display: str
    step_label: str
    key: Optional[str] = None

    @property
    def success_label(self) -> str:
        return self.display

    @property
    def failure_label(self) -> str:
        if self.category == LinkCategory.PRECONDITION:
            return CATEGORY_TITLES[self.category]
        return f"{CATEGORY_TITLES[self.category]}: {self.display}"


def _display_key(display: str) -> str:
    # "PROJ-12: Regression" -> "PROJ-12"
    return display.split(":")[0].strip()


def _per_item_links(category: LinkCategory, targets: List[LinkTarget]) -> List[PlannedLink]:
    prefix = _STEP_PREFIXES[category]
    return [
        PlannedLink(
            step_id=f"{prefix}-{i}",
            category=category,
            target_ids=(target.id,),
            display=target.label,
            step_label=f"Linking to {target.label}...",
            key=_display_key(target.label),
        )
        for i, target in enumerate(targets)
    ]


def build_link_plan(config: LinkingConfiguration) -> List[PlannedLink]:
    plan: List[PlannedLink] = []
    plan.extend(_per_item_links(LinkCategory.PLAN, config.plans))
    plan.extend(_per_item_links(LinkCategory.EXECUTION, config.executions))
    plan.extend(_per_item_links(LinkCategory.SET, config.sets))

    if config.links_folder:
        plan.append(
            PlannedLink(
                step_id=FOLDER_STEP_ID,
                category=LinkCategory.FOLDER,
                target_ids=(config.project_id,),
                display=config.folder_path,
                step_label=f"Adding to folder {config.folder_path}...",
            )
        )

    if config.preconditions:
        count = len(config.preconditions)
        plan.append(
            PlannedLink(
                step_id=PRECONDITIONS_STEP_ID,
                category=LinkCategory.PRECONDITION,
                target_ids=tuple(p.id for p in config.preconditions),
                display=f"{count} precondition(s)",
                step_label=f"Linking {count} precondition(s)...",
            )
        )

    return plan


def count_links(config: LinkingConfiguration) -> int:
    """Number of link calls a configuration needs (excluding creation)"""
    return len(build_link_plan(config))


def build_progress_steps(config: LinkingConfiguration, is_update: bool = False) -> List[ImportStep]:
    label = "Updating test in Jira..." if is_update else "Creating test in Jira..."
    steps = [ImportStep(id=CREATE_STEP_ID, label=label)]
    steps.extend(ImportStep(id=link.step_id, label=link.step_label) for link in build_link_plan(config))
    return steps
