"""Dashboard checklist derived from an instance's status and step label."""

from src.orchestrator.schemas.provisioning import ProvisioningStep

PROVISIONING_STEPS: tuple[tuple[str, str], ...] = (
    ("queued", "Queued"),
    ("creating", "Creating Server"),
    ("installing", "Installing Dependencies"),
    ("configuring", "Configuring Agent"),
    ("running", "Running"),
)

# Runner step label -> index of the checklist row that is active after it
STEP_TO_ACTIVE_INDEX: dict[str, int] = {
    "vm_created": 2,
    "network_configured": 2,
    "ansible_started": 3,
    "ansible_complete": 4,
}

_DEFAULT_PROVISIONING_INDEX = 1
_DEFAULT_FAILED_INDEX = 2
_FINISHED_STATUSES = frozenset({"running", "stopping", "stopped"})


def _mark(active_index: int, current: str) -> list[ProvisioningStep]:
    return [
        ProvisioningStep(
            id=step_id,
            label=label,
            status="completed" if i < active_index else current if i == active_index else "pending",
        )
        for i, (step_id, label) in enumerate(PROVISIONING_STEPS)
    ]


def build_provisioning_steps(
    status: str, current_step: str | None = None
) -> list[ProvisioningStep]:
    """Map instance status and step label to the five-row checklist."""
    mapped = STEP_TO_ACTIVE_INDEX.get(current_step) if current_step else None

    if status == "failed":
        return _mark(mapped if mapped is not None else _DEFAULT_FAILED_INDEX, "error")

    if status == "pending":
        active_index = 0
    elif status == "provisioning":
        active_index = mapped if mapped is not None else _DEFAULT_PROVISIONING_INDEX
    elif status in _FINISHED_STATUSES:
        active_index = len(PROVISIONING_STEPS)
    else:
        active_index = 0
    return _mark(active_index, "active")
