from attrs import define, field
from aws_cdk import CfnParameter, RemovalPolicy, Stack, aws_logs as logs
from typing import Mapping, Optional, Sequence

import common.constants as constants


@define(slots=True, frozen=True)
class StackContext:
    scope: Stack
    prefix: str = field(
        default=constants.DEFAULT_ENV,
        metadata={"description": "Name prefix, usually a parameter token (env or service name)"},
    )
    project: str = field(default=constants.PROJECT_NAME, init=False)

    # ---------- naming ----------
    def build_resource_name(self, resource_type: str) -> str:
        """Build a physical resource name.

        Examples:
            - Environment=dev, "vpc": dev-vpc
            - ServiceName=web, "tg": web-tg
        """
        return f"{self.prefix}-{resource_type}"

    def build_export_name(self, output_name: str) -> str:
        """Build a stable cross-stack export name, e.g. SplitAtTargetGroup-VpcId."""
        return f"{self.project}-{output_name}"

    # ---------- template metadata ----------
    def set_parameter_groups(
        self, groups: Mapping[str, Sequence[CfnParameter]]
    ) -> None:
        """Group parameters in the CloudFormation console."""
        self.scope.template_options.metadata = {
            "AWS::CloudFormation::Interface": {
                "ParameterGroups": [
                    {
                        "Label": {"default": label},
                        "Parameters": [param.node.id for param in params],
                    }
                    for label, params in groups.items()
                ],
            },
        }

    # ---------- logging ----------
    def build_log_group(
        self, construct_id: str, log_group_name: Optional[str] = None
    ) -> logs.LogGroup:
        return logs.LogGroup(
            self.scope,
            construct_id,
            log_group_name=log_group_name,
            removal_policy=RemovalPolicy.DESTROY,
            retention=logs.RetentionDays.ONE_YEAR,
        )
