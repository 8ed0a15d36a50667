"""Errors raised while composing stacks, before anything is synthesized."""


class StackCompositionError(Exception):
    """Base class for composition-time failures."""


class MissingStackOutputError(StackCompositionError):
    def __init__(self, stack_id: str, output_name: str) -> None:
        super().__init__(
            f"{stack_id} requires '{output_name}' from an upstream stack, "
            "construct the producing stack first"
        )
        self.stack_id = stack_id
        self.output_name = output_name


class DuplicateListenerRulePriorityError(StackCompositionError):
    def __init__(self, priority: int, owner: str, claimed_by: str) -> None:
        super().__init__(
            f"Listener rule priority {priority} requested by {owner} "
            f"is already claimed by {claimed_by}"
        )
        self.priority = priority
        self.owner = owner
        self.claimed_by = claimed_by


class InvalidSettingsError(StackCompositionError, ValueError):
    """CDK context values could not be turned into settings."""
