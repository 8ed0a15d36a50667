from typing import Optional

from aws_cdk import (
    CfnParameter,
    Stack,
    aws_ec2 as ec2,
    aws_ecr as ecr,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_logs as logs,
)
from aws_lambda_powertools import Logger
from constructs import Construct

from common import constants
from common.settings import ServiceSettings
from common.stack_context import StackContext
from split_at_targetgroup.outputs import ListenerRulePriorities, require_output

logger = Logger(service=constants.SERVICE_NAME, child=True)


class EcsServiceStack(Stack):
    """Fargate service reachable through a host-header rule on the shared listener.

    The service gets its own target group; the listener and the load balancer
    stay in LoadBalancerStack.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: Optional[ec2.IVpc] = None,
        cluster: Optional[ecs.ICluster] = None,
        listener: Optional[elbv2.IApplicationListener] = None,
        target_group: Optional[elbv2.IApplicationTargetGroup] = None,
        rule_priorities: Optional[ListenerRulePriorities] = None,
        settings: Optional[ServiceSettings] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        vpc = require_output(construct_id, "vpc", vpc)
        self.cluster = require_output(construct_id, "cluster", cluster)
        self.listener = require_output(construct_id, "listener", listener)
        # The listener's default target group; traffic matching the rule goes
        # to the service's own group instead.
        self.default_target_group = require_output(construct_id, "target_group", target_group)
        self.settings = settings or ServiceSettings()

        if rule_priorities is not None:
            rule_priorities.claim(self.settings.priority, owner=construct_id)

        self._build_parameters()
        self.context = StackContext(scope=self, prefix=self.service_name.value_as_string)

        self.target_group = self._build_target_group(vpc)
        self.task_execution_role = self._build_task_execution_role()
        self.log_group = self.context.build_log_group(
            "ServiceLogGroup", log_group_name=f"/ecs/{self.service_name.value_as_string}"
        )
        self.task_definition = self._build_task_definition(
            self.task_execution_role, self.log_group
        )
        self.service = ecs.FargateService(
            self,
            "FargateService",
            service_name=self.service_name.value_as_string,
            cluster=self.cluster,
            task_definition=self.task_definition,
        )
        self.listener_rule = self._build_listener_rule(self.target_group)
        self.target_group.add_target(self.service)

        logger.info(
            "Declared ECS service",
            extra={
                "stack": construct_id,
                "service_name": self.settings.service_name,
                "priority": self.settings.priority,
                "host_headers": list(self.settings.host_headers),
                "default_target_group": self.default_target_group.node.path,
            },
        )

    def _build_parameters(self) -> None:
        self.service_name = CfnParameter(
            self,
            "ServiceName",
            type="String",
            description="This will set the Container, Task Definition, and Service name in Fargate",
            default=self.settings.service_name,
            min_length=1,
            max_length=constants.MAX_SERVICE_NAME_LENGTH,
        )
        self.ecr_repo_name = CfnParameter(
            self,
            "ECRRepoName",
            type="String",
            description="Name of Amazon Elastic Container Registry",
        )
        self.health_check_path = CfnParameter(
            self,
            "HealthCheckPath",
            type="String",
            description="Health Check Path for ECS Container",
            default=self.settings.health_check_path,
        )
        self.health_check_port = CfnParameter(
            self,
            "HealthCheckPort",
            type="Number",
            description="Health Check Port for ECS Container",
            default=self.settings.health_check_port,
        )
        self.container_port = CfnParameter(
            self,
            "ContainerPort",
            type="Number",
            description="port number exposed from the container image",
            default=self.settings.container_port,
        )
        self.priority = CfnParameter(
            self,
            "Priority",
            type="Number",
            description="Priority of Listener Rule",
            default=self.settings.priority,
            min_value=constants.MIN_RULE_PRIORITY,
            max_value=constants.MAX_RULE_PRIORITY,
        )
        self.host_headers = CfnParameter(
            self,
            "HostHeaders",
            type="CommaDelimitedList",
            description="Host headers routed to this service by the listener rule",
            default=",".join(self.settings.host_headers),
        )

    def _build_target_group(self, vpc: ec2.IVpc) -> elbv2.ApplicationTargetGroup:
        return elbv2.ApplicationTargetGroup(
            self,
            "TargetGroup",
            target_group_name=self.context.build_resource_name(constants.TARGET_GROUP_SUFFIX),
            vpc=vpc,
            port=constants.HTTP_PORT,
            target_type=elbv2.TargetType.IP,
            health_check=elbv2.HealthCheck(
                path=self.health_check_path.value_as_string,
                port=self.health_check_port.value_as_string,
            ),
        )

    def _build_task_execution_role(self) -> iam.Role:
        role = iam.Role(
            self,
            "ecs-task-execution-role",
            role_name=self.context.build_resource_name("ecs-task-execution-role"),
            assumed_by=iam.ServicePrincipal(constants.ECS_TASKS_PRINCIPAL),
        )
        role.add_to_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                resources=["*"],
                actions=constants.TASK_EXECUTION_ACTIONS,
            )
        )
        return role

    def _build_task_definition(
        self, execution_role: iam.IRole, log_group: logs.ILogGroup
    ) -> ecs.FargateTaskDefinition:
        task_definition = ecs.FargateTaskDefinition(
            self, "TaskDef", execution_role=execution_role
        )
        repository = ecr.Repository.from_repository_name(
            self, "ECRRepo", self.ecr_repo_name.value_as_string
        )
        container = task_definition.add_container(
            "app",
            container_name=self.service_name.value_as_string,
            image=ecs.ContainerImage.from_ecr_repository(
                repository, constants.CONTAINER_IMAGE_TAG
            ),
            memory_limit_mib=self.settings.memory_limit_mib,
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=constants.SERVICE_NAME, log_group=log_group
            ),
        )
        container.add_port_mappings(
            ecs.PortMapping(
                container_port=self.container_port.value_as_number,
                protocol=ecs.Protocol.TCP,
            )
        )
        return task_definition

    def _build_listener_rule(
        self, target_group: elbv2.IApplicationTargetGroup
    ) -> elbv2.ApplicationListenerRule:
        return elbv2.ApplicationListenerRule(
            self,
            "HostHeaderListenerRule",
            listener=self.listener,
            priority=self.priority.value_as_number,
            conditions=[
                elbv2.ListenerCondition.host_headers(self.host_headers.value_as_list)
            ],
            target_groups=[target_group],
        )
