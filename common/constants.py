PROJECT_NAME = "SplitAtTargetGroup"
SERVICE_NAME = "split-at-targetgroup"  # Logger service name

# Stack ids
SHARED_INFRA_STACK_ID = "VPCWithECSCLuster"
LOAD_BALANCER_STACK_ID = f"{PROJECT_NAME}-LBStack"
SERVICE_STACK_ID = f"{PROJECT_NAME}-ServiceStack"

# Shared infrastructure
DEFAULT_ENV = "dev"
ALLOWED_ENVS = ["dev", "staging", "qa", "shared", "prod"]
AVAILABILITY_ZONES = ["ap-northeast-2a", "ap-northeast-2c"]
VPC_CIDR = "10.229.0.0/16"
VPC_CIDR_PATTERN = (
    r"^(([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])\.){3}"
    r"([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])(\/(1[6-9]|2[0-8]))$"
)
MAX_AZS = 2
MIN_AZS = 2
MAX_AZS_LIMIT = 4  # MaxAZs parameter range
PUBLIC_SUBNET_CIDR_MASK = 28
PRIVATE_SUBNET_CIDR_MASK = 24
DB_SUBNET_CIDR_MASK = 28
MIN_CIDR_MASK = 16
MAX_CIDR_MASK = 28
NAT_GATEWAYS = 1
BOOLEAN_VALUES = ["true", "false"]

# Load balancer
HTTP_PORT = 80
HTTPS_PORT = 443
DEFAULT_TARGET_GROUP_NAME = "HttpsTargetGroup"
LOAD_BALANCER_DNS_EXPORT = "PUBLoadBalancerDNSName"

# ECS service
DEFAULT_SERVICE_NAME = "amazon-ecs-sample"
TARGET_GROUP_SUFFIX = "tg"
MAX_TARGET_GROUP_NAME_LENGTH = 32  # ELB limit
MAX_SERVICE_NAME_LENGTH = MAX_TARGET_GROUP_NAME_LENGTH - len(TARGET_GROUP_SUFFIX) - 1
DEFAULT_HOST_HEADER = "hello.skcnctf.tk"
DEFAULT_HEALTH_CHECK_PATH = "/"
DEFAULT_HEALTH_CHECK_PORT = 80
DEFAULT_CONTAINER_PORT = 80
DEFAULT_PRIORITY = 100
MIN_RULE_PRIORITY = 1
MAX_RULE_PRIORITY = 50000  # ALB listener rule limit
CONTAINER_MEMORY_LIMIT_MIB = 256
CONTAINER_IMAGE_TAG = "latest"
ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
TASK_EXECUTION_ACTIONS = [
    "ecr:GetAuthorizationToken",
    "ecr:BatchCheckLayerAvailability",
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
]

# CDK context keys
NETWORK_CONTEXT_KEY = "network"
SERVICES_CONTEXT_KEY = "services"
