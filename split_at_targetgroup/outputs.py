"""Typed bundles of what each stack hands to the stacks built after it."""
from typing import TYPE_CHECKING, Optional, TypeVar

from attrs import define, field
from aws_cdk import aws_ec2 as ec2, aws_ecs as ecs, aws_elasticloadbalancingv2 as elbv2

from common.exceptions import DuplicateListenerRulePriorityError, MissingStackOutputError

if TYPE_CHECKING:
    from networking.shared_infra_stack import SharedInfraStack
    from split_at_targetgroup.ecs_service_stack import EcsServiceStack
    from split_at_targetgroup.load_balancer_stack import LoadBalancerStack

T = TypeVar("T")


def require_output(stack_id: str, output_name: str, value: Optional[T]) -> T:
    if value is None:
        raise MissingStackOutputError(stack_id, output_name)
    return value


@define(slots=True)
class ListenerRulePriorities:
    """Rule priorities claimed on one listener while composing.

    Priorities are CloudFormation parameters, so only their defaults are
    known here. Checking those catches clashes between services composed
    into the same app.
    """

    listener_id: str
    _claims: dict[int, str] = field(factory=dict, init=False)

    def claim(self, priority: int, owner: str) -> int:
        claimed_by = self._claims.get(priority)
        if claimed_by is not None:
            raise DuplicateListenerRulePriorityError(priority, owner, claimed_by)
        self._claims[priority] = owner
        return priority

    @property
    def claimed(self) -> list[int]:
        return sorted(self._claims)


@define(slots=True, frozen=True)
class SharedInfraOutputs:
    vpc: ec2.IVpc
    cluster: ecs.ICluster


@define(slots=True, frozen=True)
class LoadBalancerOutputs:
    listener: elbv2.ApplicationListener
    target_group: elbv2.IApplicationTargetGroup
    rule_priorities: ListenerRulePriorities


@define(slots=True, frozen=True)
class AppStacks:
    shared_infra: "SharedInfraStack"
    load_balancer: "LoadBalancerStack"
    services: tuple["EcsServiceStack", ...] = field(converter=tuple)
