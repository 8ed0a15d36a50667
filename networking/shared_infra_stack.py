from typing import Optional

from aws_cdk import (
    CfnCondition,
    CfnOutput,
    CfnParameter,
    Fn,
    Stack,
    aws_ec2 as ec2,
    aws_ecs as ecs,
)
from aws_lambda_powertools import Logger
from constructs import Construct

from common import constants
from common.settings import NetworkSettings
from common.stack_context import StackContext
from split_at_targetgroup.outputs import SharedInfraOutputs

logger = Logger(service=constants.SERVICE_NAME, child=True)


class SharedInfraStack(Stack):
    """VPC shared by every service, plus an ECS cluster behind a condition."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        network: Optional[NetworkSettings] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.network = network or NetworkSettings()

        self.environment_parameter = CfnParameter(
            self,
            "Environment",
            description="Environment",
            type="String",
            default=constants.DEFAULT_ENV,
            allowed_values=constants.ALLOWED_ENVS,
        )
        self.context = StackContext(
            scope=self, prefix=self.environment_parameter.value_as_string
        )

        # Declared for the console but not read: the VPC layout below comes from
        # NetworkSettings, subnet math cannot run on deploy-time values.
        self.network_parameters = self._build_network_parameters()

        self.ecs_cluster_parameter = CfnParameter(
            self,
            "ECSCluster",
            description="Create ECS Cluster in VPC",
            type="String",
            default="false",
            allowed_values=constants.BOOLEAN_VALUES,
        )
        self.enable_cluster_condition = CfnCondition(
            self,
            "EnableCreateECSCluster",
            expression=Fn.condition_equals(
                "true", self.ecs_cluster_parameter.value_as_string
            ),
        )

        self.context.set_parameter_groups(
            {
                "VPC Configuration": [self.environment_parameter, *self.network_parameters],
                "(Optional)ECS Cluster in VPC": [self.ecs_cluster_parameter],
            }
        )

        self.vpc = self._build_vpc()
        self.cluster = self._build_cluster(self.vpc)

        CfnOutput(
            self,
            "VpcId",
            value=self.vpc.vpc_id,
            export_name=self.context.build_export_name("VpcId"),
        )
        CfnOutput(
            self,
            "ClusterName",
            value=self.cluster.cluster_name,
            export_name=self.context.build_export_name("ClusterName"),
            condition=self.enable_cluster_condition,
        )

        logger.info(
            "Declared shared infrastructure",
            extra={
                "stack": construct_id,
                "cidr": self.network.cidr,
                "max_azs": self.network.max_azs,
                "availability_zones": self.availability_zones,
            },
        )

    @property
    def availability_zones(self) -> list[str]:
        return constants.AVAILABILITY_ZONES

    @property
    def outputs(self) -> SharedInfraOutputs:
        return SharedInfraOutputs(vpc=self.vpc, cluster=self.cluster)

    def _build_network_parameters(self) -> list[CfnParameter]:
        mask_constraint = "CIDR network mask parameter must be in the form x.x.x.x/16-28"
        max_azs = CfnParameter(
            self,
            "MaxAZs",
            description="Max Availability Zones",
            type="Number",
            default=constants.MAX_AZS,
            min_value=constants.MIN_AZS,
            max_value=constants.MAX_AZS_LIMIT,
        )
        vpc_cidr = CfnParameter(
            self,
            "VPCCIDR",
            description="CIDR block for the VPC",
            type="String",
            default=constants.VPC_CIDR,
            constraint_description="CIDR block parameter must be in the form x.x.x.x/16-28",
            allowed_pattern=constants.VPC_CIDR_PATTERN,
        )
        masks = [
            CfnParameter(
                self,
                f"{tier}SubnetCIDRMask",
                description=f"CIDR block for the {tier} Subnet",
                type="Number",
                default=default,
                min_value=constants.MIN_CIDR_MASK,
                max_value=constants.MAX_CIDR_MASK,
                constraint_description=mask_constraint,
            )
            for tier, default in (
                ("Public", constants.PUBLIC_SUBNET_CIDR_MASK),
                ("Private", constants.PRIVATE_SUBNET_CIDR_MASK),
                ("Db", constants.DB_SUBNET_CIDR_MASK),
            )
        ]
        return [max_azs, vpc_cidr, *masks]

    def _build_vpc(self) -> ec2.Vpc:
        return ec2.Vpc(
            self,
            "Vpc",
            vpc_name=self.context.build_resource_name("vpc"),
            ip_addresses=ec2.IpAddresses.cidr(self.network.cidr),
            nat_gateways=self.network.nat_gateways,
            max_azs=self.network.max_azs,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=self.network.public_subnet_mask,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=self.network.private_subnet_mask,
                ),
                ec2.SubnetConfiguration(
                    name="Db",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=self.network.db_subnet_mask,
                ),
            ],
        )

    def _build_cluster(self, vpc: ec2.IVpc) -> ecs.Cluster:
        cluster = ecs.Cluster(
            self,
            "Cluster",
            cluster_name=self.context.build_resource_name("cluster"),
            vpc=vpc,
        )
        cfn_cluster: ecs.CfnCluster = cluster.node.default_child
        cfn_cluster.cfn_options.condition = self.enable_cluster_condition
        return cluster
