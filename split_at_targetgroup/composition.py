"""Builds the stacks in dependency order and returns them as one bundle.

SharedInfraStack -> LoadBalancerStack -> EcsServiceStack (one per service).
Each stack receives only the upstream outputs it references.
"""
import os
from typing import Optional, Sequence

from aws_cdk import App, Environment
from aws_lambda_powertools import Logger

from common import constants
from common.settings import NetworkSettings, ServiceSettings
from networking.shared_infra_stack import SharedInfraStack
from split_at_targetgroup.ecs_service_stack import EcsServiceStack
from split_at_targetgroup.load_balancer_stack import LoadBalancerStack
from split_at_targetgroup.outputs import AppStacks

logger = Logger(
    service=constants.SERVICE_NAME, level=os.getenv("LOG_LEVEL", "INFO").upper()
)


def compose(
    app: App,
    *,
    network: Optional[NetworkSettings] = None,
    services: Sequence[ServiceSettings] = (ServiceSettings(),),
    env: Optional[Environment] = None,
) -> AppStacks:
    shared_infra = SharedInfraStack(
        app, constants.SHARED_INFRA_STACK_ID, network=network, env=env
    )
    infra = shared_infra.outputs

    load_balancer = LoadBalancerStack(
        app, constants.LOAD_BALANCER_STACK_ID, vpc=infra.vpc, env=env
    )
    front_end = load_balancer.outputs

    service_stacks = []
    for settings in services:
        service_stacks.append(
            EcsServiceStack(
                app,
                settings.construct_id,
                vpc=infra.vpc,
                cluster=infra.cluster,
                listener=front_end.listener,
                target_group=front_end.target_group,
                rule_priorities=front_end.rule_priorities,
                settings=settings,
                env=env,
            )
        )

    logger.info(
        "Composed stacks",
        extra={
            "stacks": [
                shared_infra.stack_name,
                load_balancer.stack_name,
                *(stack.stack_name for stack in service_stacks),
            ],
            "claimed_priorities": front_end.rule_priorities.claimed,
        },
    )
    return AppStacks(
        shared_infra=shared_infra,
        load_balancer=load_balancer,
        services=service_stacks,
    )
