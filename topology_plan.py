"""Plan data structures produced by the topology planner.

Everything here is a frozen dataclass built once by
``topology_assembler.assemble_plan`` and never mutated afterwards.  Subnets,
route tables and NAT gateways are identified by ``(tier, ordinal)`` /
``ordinal`` rather than by cloud ids, which only exist after provisioning.

The freeze is shallow: collections of plan objects are tuples, but ``tags``,
``attributes``, ``properties`` and ``destination_options`` are plain dicts so
they can be handed to Pulumi and ``dataclasses.asdict`` as-is.  Treat them as
read-only; callers that need a variant should copy them or use
``dataclasses.replace``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from network_spec import NatStrategy, NetworkAclRule


class IpSource(str, Enum):
    """Where a NAT gateway's Elastic IP comes from."""

    NEW_ELASTIC_IP = "newElasticIp"
    REUSED_ALLOCATION_ID = "reusedAllocationId"


class RouteTarget(str, Enum):
    INTERNET_GATEWAY = "internet-gateway"
    NAT_GATEWAY = "nat-gateway"
    EGRESS_ONLY_GATEWAY = "egress-only-gateway"


@dataclass(frozen=True)
class Route:
    target: RouteTarget
    destination_cidr_block: Optional[str] = None
    destination_ipv6_cidr_block: Optional[str] = None
    nat_gateway_index: Optional[int] = None


@dataclass(frozen=True)
class SubnetPlan:
    tier: str
    ordinal: int
    az: str
    az_index: int
    name: str
    cidr_block: Optional[str]
    ipv6_cidr_block: Optional[str] = None
    # Set when the VPC's IPv6 block is only known after it is created.
    ipv6_prefix: Optional[int] = None
    ipv6_native: bool = False
    tags: dict[str, str] = field(default_factory=dict)
    # Launch settings passed straight through to the subnet resource.
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RouteTablePlan:
    tier: str
    ordinal: int
    az: Optional[str]
    name: str
    members: tuple[int, ...]
    tags: dict[str, str] = field(default_factory=dict)
    routes: tuple[Route, ...] = ()


@dataclass(frozen=True)
class RouteTableAssociation:
    subnet_tier: str
    subnet_ordinal: int
    route_table_tier: str
    route_table_ordinal: int


@dataclass(frozen=True)
class NatPlan:
    ordinal: int
    ip_source: IpSource
    host_subnet_ordinal: int
    name: str = ""
    allocation_id: Optional[str] = None
    public_ip: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)
    eip_tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AclPlan:
    tier: str
    name: str
    members: tuple[int, ...]
    ingress: tuple[NetworkAclRule, ...] = ()
    egress: tuple[NetworkAclRule, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SubnetGroupPlan:
    tier: str
    name: str
    members: tuple[int, ...]
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayPlan:
    """Which VPC-level gateways exist; consulted by the route binder."""

    internet_gateway: bool = False
    egress_only_gateway: bool = False
    igw_tags: dict[str, str] = field(default_factory=dict)
    eigw_tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VpcPlan:
    name: str
    cidr_block: Optional[str]
    secondary_cidr_blocks: tuple[str, ...] = ()
    instance_tenancy: str = "default"
    enable_dns_hostnames: bool = True
    enable_dns_support: bool = True
    enable_network_address_usage_metrics: Optional[bool] = None
    ipv4_ipam_pool_id: Optional[str] = None
    ipv4_netmask_length: Optional[int] = None
    assign_generated_ipv6_cidr_block: Optional[bool] = None
    ipv6_cidr_block: Optional[str] = None
    ipv6_ipam_pool_id: Optional[str] = None
    ipv6_netmask_length: Optional[int] = None
    ipv6_cidr_block_network_border_group: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DhcpOptionsPlan:
    domain_name: Optional[str]
    domain_name_servers: tuple[str, ...]
    ntp_servers: tuple[str, ...] = ()
    netbios_name_servers: tuple[str, ...] = ()
    netbios_node_type: Optional[str] = None
    ipv6_address_preferred_lease_time: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VpnGatewayPlan:
    existing_gateway_id: Optional[str]
    amazon_side_asn: str = "64512"
    availability_zone: Optional[str] = None
    # (tier, route table ordinal) pairs that receive propagated routes.
    propagated_route_tables: tuple[tuple[str, int], ...] = ()
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LogGroupPlan:
    name: str
    retention_in_days: Optional[int] = None
    kms_key_id: Optional[str] = None
    skip_destroy: Optional[bool] = None
    log_group_class: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FlowLogRolePlan:
    assume_role_policy: str
    policy: str
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    policy_name: Optional[str] = None
    policy_name_prefix: Optional[str] = None
    permissions_boundary: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FlowLogPlan:
    log_destination_type: str
    traffic_type: str
    max_aggregation_interval: int
    log_destination: Optional[str] = None
    iam_role_arn: Optional[str] = None
    log_group: Optional[LogGroupPlan] = None
    iam_role: Optional[FlowLogRolePlan] = None
    log_format: Optional[str] = None
    deliver_cross_account_role: Optional[str] = None
    destination_options: Optional[dict[str, Any]] = None
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Plan:
    name: str
    azs: tuple[str, ...]
    vpc: Optional[VpcPlan]
    gateways: GatewayPlan = field(default_factory=GatewayPlan)
    nat_strategy: NatStrategy = NatStrategy.PER_SUBNET
    subnets: tuple[SubnetPlan, ...] = ()
    route_tables: tuple[RouteTablePlan, ...] = ()
    associations: tuple[RouteTableAssociation, ...] = ()
    nat_gateways: tuple[NatPlan, ...] = ()
    acls: tuple[AclPlan, ...] = ()
    subnet_groups: tuple[SubnetGroupPlan, ...] = ()
    dhcp_options: Optional[DhcpOptionsPlan] = None
    vpn_gateway: Optional[VpnGatewayPlan] = None
    flow_log: Optional[FlowLogPlan] = None

    def subnets_for(self, tier: str) -> tuple[SubnetPlan, ...]:
        return tuple(s for s in self.subnets if s.tier == tier)

    def route_tables_for(self, tier: str) -> tuple[RouteTablePlan, ...]:
        return tuple(rt for rt in self.route_tables if rt.tier == tier)

    def tiers(self) -> list[str]:
        """Tiers that have at least one subnet, in planning order."""
        seen: list[str] = []
        for subnet in self.subnets:
            if subnet.tier not in seen:
                seen.append(subnet.tier)
        return seen


# -----------------------------------------------------------------------------
# Backend-facing intents
# -----------------------------------------------------------------------------


class IntentKind(str, Enum):
    VPC = "vpc"
    VPC_CIDR_ASSOCIATION = "vpc_cidr_association"
    DHCP_OPTIONS = "dhcp_options"
    DHCP_OPTIONS_ASSOCIATION = "dhcp_options_association"
    INTERNET_GATEWAY = "internet_gateway"
    EGRESS_ONLY_INTERNET_GATEWAY = "egress_only_internet_gateway"
    ROUTE_TABLE = "route_table"
    ROUTE = "route"
    SUBNET = "subnet"
    ROUTE_TABLE_ASSOCIATION = "route_table_association"
    EIP = "eip"
    NAT_GATEWAY = "nat_gateway"
    DB_SUBNET_GROUP = "db_subnet_group"
    ELASTICACHE_SUBNET_GROUP = "elasticache_subnet_group"
    REDSHIFT_SUBNET_GROUP = "redshift_subnet_group"
    NETWORK_ACL = "network_acl"
    NETWORK_ACL_RULE = "network_acl_rule"
    VPN_GATEWAY = "vpn_gateway"
    VPN_GATEWAY_ATTACHMENT = "vpn_gateway_attachment"
    VPN_GATEWAY_ROUTE_PROPAGATION = "vpn_gateway_route_propagation"
    LOG_GROUP = "log_group"
    IAM_ROLE = "iam_role"
    IAM_ROLE_POLICY = "iam_role_policy"
    FLOW_LOG = "flow_log"


@dataclass(frozen=True)
class Ref:
    """Points a resource property at an attribute of an earlier intent."""

    key: str
    attribute: str = "id"
    # When set, the referenced value is an IPv6 parent CIDR to derive from.
    ipv6_prefix: Optional[int] = None


RefValue = Union[Ref, tuple[Ref, ...]]


@dataclass(frozen=True)
class ResourceIntent:
    kind: IntentKind
    key: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    refs: Mapping[str, RefValue] = field(default_factory=dict)

    def depends_on(self) -> list[str]:
        keys: list[str] = []
        for value in self.refs.values():
            for ref in value if isinstance(value, tuple) else (value,):
                if ref.key not in keys:
                    keys.append(ref.key)
        return keys
