from typing import Dict, FrozenSet

from .models.document import ValidationStatus

# Re-approving an approved document (or re-rejecting a rejected one) is allowed
# and overwrites the validator and timestamp. Nothing returns to pending.
VALIDATION_TRANSITIONS: Dict[ValidationStatus, FrozenSet[ValidationStatus]] = {
    ValidationStatus.PENDING: frozenset({ValidationStatus.APPROVED, ValidationStatus.REJECTED}),
    ValidationStatus.APPROVED: frozenset({ValidationStatus.APPROVED}),
    ValidationStatus.REJECTED: frozenset({ValidationStatus.REJECTED}),
}


class InvalidStatusTransitionError(Exception):
    def __init__(self, current_status: ValidationStatus, target_status: ValidationStatus, message: str):
        self.current_status = current_status
        self.target_status = target_status
        self.message = message
        super().__init__(message)


def validate_status_transition(current_status: ValidationStatus, target_status: ValidationStatus) -> None:
    valid_targets = VALIDATION_TRANSITIONS.get(current_status, frozenset())
    if target_status not in valid_targets:
        valid_list = ", ".join(f"'{s.value}'" for s in sorted(valid_targets, key=lambda s: s.value)) or "none"
        raise InvalidStatusTransitionError(
            current_status,
            target_status,
            f"Cannot transition document from '{current_status.value}' to '{target_status.value}'. "
            f"Valid transitions from '{current_status.value}': {valid_list}."
        )


def can_transition(current_status: ValidationStatus, target_status: ValidationStatus) -> bool:
    return target_status in VALIDATION_TRANSITIONS.get(current_status, frozenset())


def get_valid_transitions(current_status: ValidationStatus) -> FrozenSet[ValidationStatus]:
    return VALIDATION_TRANSITIONS.get(current_status, frozenset())
