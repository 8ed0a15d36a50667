from typing import Optional

from aws_cdk import (
    CfnCondition,
    CfnOutput,
    CfnParameter,
    Fn,
    Stack,
    aws_ec2 as ec2,
    aws_elasticloadbalancingv2 as elbv2,
)
from aws_lambda_powertools import Logger
from constructs import Construct

from common import constants
from common.stack_context import StackContext
from split_at_targetgroup.outputs import (
    ListenerRulePriorities,
    LoadBalancerOutputs,
    require_output,
)

logger = Logger(service=constants.SERVICE_NAME, child=True)


class LoadBalancerStack(Stack):
    """Public ALB with an HTTPS listener whose default action is a target group.

    Services attach their own target groups to the listener through host-header
    rules, see EcsServiceStack.

    The load balancer is gated by ``UseCertificateCondition`` while the HTTPS
    listener and the 80 -> 443 redirect are declared unconditionally. With
    UseCertificate=false the listeners point at a load balancer that is not
    created and the deployment fails.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        vpc: Optional[ec2.IVpc] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        vpc = require_output(construct_id, "vpc", vpc)
        self.context = StackContext(scope=self)

        self.certificate_arn = CfnParameter(
            self,
            "CertificateArn",
            description="ARN of the ACM certificate for the HTTPS listener",
            type="String",
        )
        self.use_certificate = CfnParameter(
            self,
            "UseCertificate",
            description="use certificate",
            type="String",
            default="false",
            allowed_values=constants.BOOLEAN_VALUES,
        )
        self.use_certificate_condition = CfnCondition(
            self,
            "UseCertificateCondition",
            expression=Fn.condition_equals("true", self.use_certificate.value_as_string),
        )

        self.load_balancer = self._build_load_balancer(vpc)
        self.redirect_listener = self.load_balancer.add_redirect(
            source_protocol=elbv2.ApplicationProtocol.HTTP,
            source_port=constants.HTTP_PORT,
            target_protocol=elbv2.ApplicationProtocol.HTTPS,
            target_port=constants.HTTPS_PORT,
        )
        self.target_group = self._build_default_target_group(vpc)
        self.listener = self._build_https_listener(self.target_group)
        self.rule_priorities = ListenerRulePriorities(listener_id=self.listener.node.path)

        CfnOutput(
            self,
            "LoadBalancerDNS",
            value=self.load_balancer.load_balancer_dns_name,
            export_name=constants.LOAD_BALANCER_DNS_EXPORT,
        )
        CfnOutput(
            self,
            "ListenerArn",
            value=self.listener.listener_arn,
            export_name=self.context.build_export_name("HTTPSListenerArn"),
        )
        CfnOutput(
            self,
            "TargetGroupArn",
            value=self.target_group.target_group_arn,
            export_name=self.context.build_export_name(
                f"{constants.DEFAULT_TARGET_GROUP_NAME}Arn"
            ),
        )

        logger.info(
            "Declared load balancer front end",
            extra={
                "stack": construct_id,
                "listener": self.listener.node.path,
                "default_target_group": constants.DEFAULT_TARGET_GROUP_NAME,
            },
        )

    @property
    def outputs(self) -> LoadBalancerOutputs:
        return LoadBalancerOutputs(
            listener=self.listener,
            target_group=self.target_group,
            rule_priorities=self.rule_priorities,
        )

    def _build_load_balancer(self, vpc: ec2.IVpc) -> elbv2.ApplicationLoadBalancer:
        # Outbound stays open so registering targets from service stacks only adds
        # ingress rules on their side, never egress rules here.
        security_group = ec2.SecurityGroup(
            self,
            "PublicALBSecurityGroup",
            vpc=vpc,
            description="Security group for the public Application Load Balancer",
            allow_all_outbound=True,
        )
        load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "PublicALB",
            vpc=vpc,
            internet_facing=True,
            security_group=security_group,
        )
        cfn_load_balancer: elbv2.CfnLoadBalancer = load_balancer.node.default_child
        cfn_load_balancer.cfn_options.condition = self.use_certificate_condition
        return load_balancer

    def _build_default_target_group(
        self, vpc: ec2.IVpc
    ) -> elbv2.ApplicationTargetGroup:
        return elbv2.ApplicationTargetGroup(
            self,
            constants.DEFAULT_TARGET_GROUP_NAME,
            vpc=vpc,
            target_group_name=constants.DEFAULT_TARGET_GROUP_NAME,
            port=constants.HTTP_PORT,
            target_type=elbv2.TargetType.IP,
        )

    def _build_https_listener(
        self, target_group: elbv2.IApplicationTargetGroup
    ) -> elbv2.ApplicationListener:
        certificate = elbv2.ListenerCertificate.from_arn(
            self.certificate_arn.value_as_string
        )
        return self.load_balancer.add_listener(
            "HTTPSListener",
            port=constants.HTTPS_PORT,
            default_target_groups=[target_group],
            certificates=[certificate],
        )
