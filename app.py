#!/usr/bin/env python3
"""AWS CDK entrypoint for the split-at-target-group deployment.

Composes the shared VPC/cluster stack, the public load balancer stack and one
ECS service stack per configured service, all in a single deployment
environment sourced from the CDK CLI defaults. Composition-time settings are
read from CDK context (see common/settings.py).
"""
import os

import aws_cdk as cdk
from aws_cdk import Environment

from common.settings import load_network_settings, load_service_settings
from split_at_targetgroup.composition import compose

app = cdk.App()

env = Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION"),
)

compose(
    app,
    network=load_network_settings(app),
    services=load_service_settings(app),
    env=env,
)

app.synth()
