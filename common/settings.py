"""Composition-time settings.

These are fixed when ``cdk synth`` runs, unlike the CloudFormation parameters
which are resolved at deploy time. Overrides come from CDK context, e.g.::

    cdk synth -c services='[{"service_name": "web", "priority": 110}]'
"""
import ipaddress
import json
from typing import Any, Mapping, Sequence

from attrs import define, field, validators
from aws_cdk import App

import common.constants as constants
from common.exceptions import InvalidSettingsError


def _mask_field(default: int):
    return field(
        default=default,
        validator=[
            validators.instance_of(int),
            validators.ge(constants.MIN_CIDR_MASK),
            validators.le(constants.MAX_CIDR_MASK),
        ],
    )


@define(slots=True, frozen=True)
class NetworkSettings:
    cidr: str = field(
        default=constants.VPC_CIDR,
        validator=validators.matches_re(constants.VPC_CIDR_PATTERN),
    )
    max_azs: int = field(
        default=constants.MAX_AZS,
        validator=[
            validators.instance_of(int),
            validators.ge(constants.MIN_AZS),
            # subnets are only ever spread over the pinned zones
            validators.le(len(constants.AVAILABILITY_ZONES)),
        ],
    )
    public_subnet_mask: int = _mask_field(constants.PUBLIC_SUBNET_CIDR_MASK)
    private_subnet_mask: int = _mask_field(constants.PRIVATE_SUBNET_CIDR_MASK)
    db_subnet_mask: int = _mask_field(constants.DB_SUBNET_CIDR_MASK)
    nat_gateways: int = field(
        default=constants.NAT_GATEWAYS,
        validator=[validators.instance_of(int), validators.ge(1)],
    )

    @property
    def subnet_masks(self) -> dict[str, int]:
        return {
            "Public": self.public_subnet_mask,
            "Private": self.private_subnet_mask,
            "Db": self.db_subnet_mask,
        }

    def __attrs_post_init__(self) -> None:
        network = ipaddress.ip_network(self.cidr, strict=False)
        for tier, mask in self.subnet_masks.items():
            if mask < network.prefixlen:
                raise InvalidSettingsError(
                    f"{tier} subnet mask /{mask} does not fit inside VPC CIDR {self.cidr}"
                )

        # Subnets are carved tier by tier, one per zone, each aligned to its size.
        cursor = int(network.network_address)
        end = cursor + network.num_addresses
        for tier, mask in self.subnet_masks.items():
            size = 2 ** (32 - mask)
            for _ in range(self.max_azs):
                cursor = -(-cursor // size) * size + size
                if cursor > end:
                    raise InvalidSettingsError(
                        f"{tier} subnets /{mask} x {self.max_azs} zones exceed the "
                        f"address space of VPC CIDR {self.cidr}"
                    )


@define(slots=True, frozen=True)
class ServiceSettings:
    construct_id: str = field(
        default=constants.SERVICE_STACK_ID, validator=validators.min_len(1)
    )
    service_name: str = field(
        default=constants.DEFAULT_SERVICE_NAME,
        validator=[
            validators.min_len(1),
            validators.max_len(constants.MAX_SERVICE_NAME_LENGTH),
        ],
    )
    host_headers: tuple[str, ...] = field(
        default=(constants.DEFAULT_HOST_HEADER,),
        converter=lambda value: (value,) if isinstance(value, str) else tuple(value),
        validator=[
            validators.min_len(1),
            validators.deep_iterable(member_validator=validators.instance_of(str)),
        ],
    )
    priority: int = field(
        default=constants.DEFAULT_PRIORITY,
        validator=[
            validators.instance_of(int),
            validators.ge(constants.MIN_RULE_PRIORITY),
            validators.le(constants.MAX_RULE_PRIORITY),
        ],
    )
    health_check_path: str = field(
        default=constants.DEFAULT_HEALTH_CHECK_PATH,
        validator=validators.matches_re(r"^/.*"),
    )
    health_check_port: int = field(
        default=constants.DEFAULT_HEALTH_CHECK_PORT,
        validator=[validators.instance_of(int), validators.ge(1), validators.le(65535)],
    )
    container_port: int = field(
        default=constants.DEFAULT_CONTAINER_PORT,
        validator=[validators.instance_of(int), validators.ge(1), validators.le(65535)],
    )
    memory_limit_mib: int = field(
        default=constants.CONTAINER_MEMORY_LIMIT_MIB,
        validator=[validators.instance_of(int), validators.ge(128)],
    )


def _context_value(app: App, key: str) -> Any:
    value = app.node.try_get_context(key)
    # values passed with -c on the command line arrive as raw strings
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise InvalidSettingsError(f"Context '{key}' is not valid JSON: {exc}") from exc
    return value


def _build(settings_cls, key: str, values: Mapping[str, Any]):
    if not isinstance(values, Mapping):
        raise InvalidSettingsError(f"Context '{key}' entries must be objects, got {values!r}")
    try:
        return settings_cls(**values)
    except (TypeError, ValueError) as exc:
        raise InvalidSettingsError(f"Invalid '{key}' settings {dict(values)!r}: {exc}") from exc


def load_network_settings(app: App) -> NetworkSettings:
    values = _context_value(app, constants.NETWORK_CONTEXT_KEY)
    if values is None:
        return NetworkSettings()
    return _build(NetworkSettings, constants.NETWORK_CONTEXT_KEY, values)


def load_service_settings(app: App) -> Sequence[ServiceSettings]:
    values = _context_value(app, constants.SERVICES_CONTEXT_KEY)
    if values is None:
        return (ServiceSettings(),)
    if not isinstance(values, list) or not values:
        raise InvalidSettingsError(
            f"Context '{constants.SERVICES_CONTEXT_KEY}' must be a non-empty list"
        )
    return tuple(
        _build(ServiceSettings, constants.SERVICES_CONTEXT_KEY, item) for item in values
    )
