import json
from typing import Any, Mapping

import pytest
from aws_cdk.assertions import Template
from stack_test_helpers import (
    NameTestCase,
    ParameterTestCase,
    build_stacks,
    find_resources_by_type,
    get_single_resource_id,
    parameter_values,
    resolve_intrinsic,
    shared_template,
    stacks,
)

from common import constants
from common.settings import NetworkSettings

# ----------------------------- Resource count smoke test ------------------------

RESOURCES = [
    ("AWS::EC2::VPC", 1),
    ("AWS::EC2::Subnet", 6),
    ("AWS::EC2::InternetGateway", 1),
    ("AWS::EC2::NatGateway", 1),
    ("AWS::EC2::EIP", 1),
    ("AWS::ECS::Cluster", 1),
]


@pytest.mark.parametrize("resource_type,expected", RESOURCES)
def test_resource_count(shared_template: Template, resource_type: str, expected: int):
    shared_template.resource_count_is(resource_type, expected)


# ------------------- Parameter tests -------------------

PARAMETER_CASES = (
    ParameterTestCase(
        id="Environment",
        type="String",
        default="dev",
        extra={"AllowedValues": ["dev", "staging", "qa", "shared", "prod"]},
    ),
    ParameterTestCase(
        id="MaxAZs", type="Number", default=2, extra={"MinValue": 2, "MaxValue": 4}
    ),
    ParameterTestCase(
        id="VPCCIDR",
        type="String",
        default="10.229.0.0/16",
        extra={"AllowedPattern": constants.VPC_CIDR_PATTERN},
    ),
    ParameterTestCase(id="PublicSubnetCIDRMask", type="Number", default=28, extra={}),
    ParameterTestCase(id="PrivateSubnetCIDRMask", type="Number", default=24, extra={}),
    ParameterTestCase(id="DbSubnetCIDRMask", type="Number", default=28, extra={}),
    ParameterTestCase(
        id="ECSCluster",
        type="String",
        default="false",
        extra={"AllowedValues": ["true", "false"]},
    ),
)


@pytest.mark.parametrize("case", PARAMETER_CASES, ids=lambda test: test.id)
def test_parameters(shared_template: Template, case: ParameterTestCase):
    shared_template.has_parameter(
        case.id, {"Type": case.type, "Default": case.default, **case.extra}
    )


def test_parameter_groups_metadata(shared_template: Template):
    groups = shared_template.to_json()["Metadata"]["AWS::CloudFormation::Interface"][
        "ParameterGroups"
    ]
    assert groups == [
        {
            "Label": {"default": "VPC Configuration"},
            "Parameters": [
                "Environment",
                "MaxAZs",
                "VPCCIDR",
                "PublicSubnetCIDRMask",
                "PrivateSubnetCIDRMask",
                "DbSubnetCIDRMask",
            ],
        },
        {
            "Label": {"default": "(Optional)ECS Cluster in VPC"},
            "Parameters": ["ECSCluster"],
        },
    ]


# ------------------- Naming tests -------------------

NAME_CASES = (
    NameTestCase(id="dev-vpc", resource_type="AWS::EC2::VPC", environment="dev", expected="dev-vpc"),
    NameTestCase(
        id="dev-cluster", resource_type="AWS::ECS::Cluster", environment="dev", expected="dev-cluster"
    ),
    NameTestCase(
        id="prod-vpc", resource_type="AWS::EC2::VPC", environment="prod", expected="prod-vpc"
    ),
)


def _resource_name(resource: Mapping[str, Any]) -> Any:
    props = resource["Properties"]
    if "ClusterName" in props:
        return props["ClusterName"]
    return next(tag["Value"] for tag in props["Tags"] if tag["Key"] == "Name")


@pytest.mark.parametrize("case", NAME_CASES, ids=lambda test: test.id)
def test_names_follow_environment(shared_template: Template, case: NameTestCase):
    json_template = shared_template.to_json()
    resources = find_resources_by_type(shared_template, case.resource_type)
    logical_id = get_single_resource_id(resources, case.resource_type)
    parameters = parameter_values(json_template, {"Environment": case.environment})

    name = resolve_intrinsic(_resource_name(resources[logical_id]), parameters)

    assert name == case.expected


# ------------------- Condition tests -------------------


def test_cluster_is_gated_by_condition(shared_template: Template):
    shared_template.has_resource(
        "AWS::ECS::Cluster", {"Condition": "EnableCreateECSCluster"}
    )
    assert shared_template.to_json()["Conditions"]["EnableCreateECSCluster"] == {
        "Fn::Equals": ["true", {"Ref": "ECSCluster"}]
    }


def test_vpc_is_unconditional(shared_template: Template):
    vpcs = find_resources_by_type(shared_template, "AWS::EC2::VPC")
    logical_id = get_single_resource_id(vpcs, "AWS::EC2::VPC")
    assert "Condition" not in vpcs[logical_id]


# ------------------- Network layout tests -------------------


def test_vpc_uses_literal_cidr_not_parameter(shared_template: Template):
    shared_template.has_resource_properties(
        "AWS::EC2::VPC", {"CidrBlock": "10.229.0.0/16"}
    )
    resources = json.dumps(shared_template.to_json()["Resources"])
    for inert in ("VPCCIDR", "MaxAZs", "PublicSubnetCIDRMask", "PrivateSubnetCIDRMask", "DbSubnetCIDRMask"):
        assert inert not in resources


def test_subnet_tiers_have_independent_masks(shared_template: Template):
    subnets = find_resources_by_type(shared_template, "AWS::EC2::Subnet")
    masks = sorted(
        subnet["Properties"]["CidrBlock"].split("/")[1] for subnet in subnets.values()
    )
    assert masks == ["24", "24", "28", "28", "28", "28"]


def test_subnets_spread_over_pinned_availability_zones(shared_template: Template):
    subnets = find_resources_by_type(shared_template, "AWS::EC2::Subnet")
    zones = {subnet["Properties"]["AvailabilityZone"] for subnet in subnets.values()}
    assert zones == set(constants.AVAILABILITY_ZONES)


def test_network_settings_override_layout():
    stacks = build_stacks(
        network=NetworkSettings(cidr="10.10.0.0/16", private_subnet_mask=20)
    )
    template = Template.from_stack(stacks.shared_infra)

    template.has_resource_properties("AWS::EC2::VPC", {"CidrBlock": "10.10.0.0/16"})
    subnets = find_resources_by_type(template, "AWS::EC2::Subnet")
    masks = [s["Properties"]["CidrBlock"].split("/")[1] for s in subnets.values()]
    assert masks.count("20") == 2


# ------------------- Output tests -------------------


def test_outputs_are_exported_under_stable_names(shared_template: Template):
    shared_template.has_output(
        "VpcId", {"Export": {"Name": "SplitAtTargetGroup-VpcId"}}
    )
    shared_template.has_output(
        "ClusterName",
        {
            "Export": {"Name": "SplitAtTargetGroup-ClusterName"},
            "Condition": "EnableCreateECSCluster",
        },
    )
