"""Assemble a complete topology plan and the ordered resource intents.

``assemble_plan`` is the only entry point most callers need: it turns a
``NetworkSpec`` into a frozen ``Plan`` without touching any cloud API.
``build_intents`` flattens that plan into the creation order a provisioning
backend must follow, with every ``Ref`` pointing at an earlier intent.
"""

import logging
from dataclasses import replace
from typing import Any, Optional

from acl_binder import bind_acl
from flow_log_policies import (
    create_flow_log_assume_role_policy,
    create_flow_log_cloudwatch_policy,
)
from nat_allocator import plan_nat
from network_helpers import canonicalize_ipv4_cidr, merge_tags
from network_spec import SUBNET_GROUP_TIERS, TIER_NAMES, NetworkSpec, RouteTableStrategy
from planning_errors import ConfigurationError
from route_binder import bind_routes
from tier_planner import plan_tier, resolve_route_table_strategy, tier_defaults
from topology_plan import (
    AclPlan,
    DhcpOptionsPlan,
    FlowLogPlan,
    FlowLogRolePlan,
    GatewayPlan,
    IntentKind,
    IpSource,
    LogGroupPlan,
    NatPlan,
    Plan,
    Ref,
    ResourceIntent,
    Route,
    RouteTableAssociation,
    RouteTablePlan,
    RouteTarget,
    SubnetGroupPlan,
    SubnetPlan,
    VpcPlan,
    VpnGatewayPlan,
)

logger = logging.getLogger(__name__)

CLOUD_WATCH_LOGS = "cloud-watch-logs"

SUBNET_GROUP_KINDS = {
    "database": IntentKind.DB_SUBNET_GROUP,
    "elasticache": IntentKind.ELASTICACHE_SUBNET_GROUP,
    "redshift": IntentKind.REDSHIFT_SUBNET_GROUP,
}

SHARED_ROUTE_TABLE_TIERS = ("database", "elasticache", "redshift", "outpost")

# (tier, VpnGatewaySpec flag) pairs, in propagation order.
VGW_PROPAGATION_FLAGS = (
    ("public", "propagate_public_route_tables_vgw"),
    ("private", "propagate_private_route_tables_vgw"),
    ("intra", "propagate_intra_route_tables_vgw"),
)


# -----------------------------------------------------------------------------
# Plan assembly
# -----------------------------------------------------------------------------


def _plan_vpc(spec: NetworkSpec) -> VpcPlan:
    return VpcPlan(
        name=spec.name,
        cidr_block=canonicalize_ipv4_cidr(spec.cidr) if spec.cidr else None,
        secondary_cidr_blocks=tuple(canonicalize_ipv4_cidr(c) for c in spec.secondary_cidr_blocks),
        instance_tenancy=spec.instance_tenancy,
        enable_dns_hostnames=spec.enable_dns_hostnames,
        enable_dns_support=spec.enable_dns_support,
        enable_network_address_usage_metrics=spec.enable_network_address_usage_metrics,
        ipv4_ipam_pool_id=spec.ipv4_ipam_pool_id,
        ipv4_netmask_length=spec.ipv4_netmask_length,
        assign_generated_ipv6_cidr_block=True if spec.enable_ipv6 and not spec.use_ipam_pool else None,
        ipv6_cidr_block=spec.ipv6_cidr,
        ipv6_ipam_pool_id=spec.ipv6_ipam_pool_id,
        ipv6_netmask_length=spec.ipv6_netmask_length,
        ipv6_cidr_block_network_border_group=spec.ipv6_cidr_block_network_border_group,
        tags=merge_tags({"Name": spec.name}, spec.tags, spec.vpc_tags),
    )


def _plan_gateways(spec: NetworkSpec) -> GatewayPlan:
    eigw = spec.enable_ipv6 and spec.create_egress_only_igw
    return GatewayPlan(
        internet_gateway=spec.create_igw,
        egress_only_gateway=eigw,
        igw_tags=merge_tags({"Name": spec.name}, spec.tags, spec.igw_tags) if spec.create_igw else {},
        eigw_tags=merge_tags({"Name": spec.name}, spec.tags) if eigw else {},
    )


def _shared_route_table_tier(tier_name: str, spec: NetworkSpec) -> str:
    if tier_name not in SHARED_ROUTE_TABLE_TIERS:
        raise ConfigurationError(
            f"{tier_name} subnets need their own route tables; route_table_strategy 'shared' "
            f"is only valid for: {', '.join(SHARED_ROUTE_TABLE_TIERS)}"
        )
    # Tiers without their own tables ride on the private tables; a public
    # redshift tier rides on the public ones instead.
    if tier_name == "redshift" and spec.tier(tier_name).enable_public:
        return "public"
    return "private"


def _first_member_az_index(table: RouteTablePlan, subnets: list[SubnetPlan]) -> int:
    by_ordinal = {s.ordinal: s for s in subnets if s.tier == table.tier}
    return by_ordinal[table.members[0]].az_index if table.members else 0


def _bind_all_routes(
    spec: NetworkSpec,
    tables: list[RouteTablePlan],
    subnets: list[SubnetPlan],
    nat_plans: list[NatPlan],
    gateways: GatewayPlan,
) -> list[RouteTablePlan]:
    bound: list[RouteTablePlan] = []
    for table in tables:
        tier = spec.tier(table.tier)
        defaults = tier_defaults(table.tier)
        routes = bind_routes(
            table,
            spec.nat_gateway.strategy,
            nat_plans,
            gateways,
            first_member_az_index=_first_member_az_index(table, subnets),
            wants_internet_gateway_route=(
                defaults.internet_gateway_route or tier.create_internet_gateway_route
            ),
            create_nat_gateway_route=tier.create_nat_gateway_route,
            nat_route_default=defaults.nat_gateway_route,
            wants_egress_only_route=defaults.egress_only_route,
            enable_ipv6=spec.enable_ipv6,
            nat_destination_cidr=spec.nat_gateway.destination_cidr_block,
        )
        bound.append(replace(table, routes=tuple(routes)))
    return bound


def _plan_associations(
    spec: NetworkSpec, subnets: list[SubnetPlan], tables: list[RouteTablePlan]
) -> list[RouteTableAssociation]:
    associations: list[RouteTableAssociation] = []
    for tier_name in TIER_NAMES:
        tier_subnets = [s for s in subnets if s.tier == tier_name]
        if not tier_subnets:
            continue

        if resolve_route_table_strategy(tier_name, spec.tier(tier_name)) is RouteTableStrategy.SHARED:
            target_tier = _shared_route_table_tier(tier_name, spec)
        else:
            target_tier = tier_name
        target_tables = [t for t in tables if t.tier == target_tier]
        if not target_tables:
            logger.debug(f"{tier_name} subnets have no route table to associate with")
            continue

        for subnet in tier_subnets:
            table = target_tables[subnet.ordinal % len(target_tables)]
            associations.append(
                RouteTableAssociation(
                    subnet_tier=tier_name,
                    subnet_ordinal=subnet.ordinal,
                    route_table_tier=target_tier,
                    route_table_ordinal=table.ordinal,
                )
            )
    return associations


def _plan_subnet_groups(spec: NetworkSpec, subnets: list[SubnetPlan]) -> list[SubnetGroupPlan]:
    groups: list[SubnetGroupPlan] = []
    for tier_name in SUBNET_GROUP_TIERS:
        tier = spec.tier(tier_name)
        members = tuple(s.ordinal for s in subnets if s.tier == tier_name)
        if not members or not tier.create_subnet_group:
            continue
        group_name = tier.subnet_group_name or f"{spec.name}-{tier_name}"
        groups.append(
            SubnetGroupPlan(
                tier=tier_name,
                name=group_name,
                members=members,
                tags=merge_tags({"Name": group_name}, spec.tags, tier.subnet_group_tags),
            )
        )
    return groups


def _plan_dhcp_options(spec: NetworkSpec) -> Optional[DhcpOptionsPlan]:
    dhcp = spec.dhcp_options
    if not dhcp.enable:
        return None
    lease_time = dhcp.ipv6_address_preferred_lease_time
    return DhcpOptionsPlan(
        domain_name=dhcp.domain_name,
        domain_name_servers=tuple(dhcp.domain_name_servers) or ("AmazonProvidedDNS",),
        ntp_servers=tuple(dhcp.ntp_servers),
        netbios_name_servers=tuple(dhcp.netbios_name_servers),
        netbios_node_type=dhcp.netbios_node_type,
        ipv6_address_preferred_lease_time=str(lease_time) if lease_time is not None else None,
        tags=merge_tags({"Name": spec.name}, spec.tags, dhcp.tags),
    )


def _plan_vpn_gateway(spec: NetworkSpec, tables: list[RouteTablePlan]) -> Optional[VpnGatewayPlan]:
    vpn = spec.vpn_gateway
    if not vpn.enable:
        return None
    propagated: list[tuple[str, int]] = []
    for tier_name, flag in VGW_PROPAGATION_FLAGS:
        if getattr(vpn, flag):
            propagated.extend((tier_name, t.ordinal) for t in tables if t.tier == tier_name)
    return VpnGatewayPlan(
        existing_gateway_id=vpn.vpn_gateway_id,
        amazon_side_asn=vpn.amazon_side_asn,
        availability_zone=vpn.availability_zone,
        propagated_route_tables=tuple(propagated),
        tags=merge_tags({"Name": spec.name}, spec.tags, vpn.tags),
    )


def _name_or_prefix(explicit: Optional[str], default: str, use_prefix: bool) -> tuple[Optional[str], Optional[str]]:
    if use_prefix:
        return None, explicit or f"{default}-"
    return explicit or default, None


def _plan_flow_log(spec: NetworkSpec) -> Optional[FlowLogPlan]:
    flow_log = spec.flow_log
    if not flow_log.enable:
        return None
    cloud_watch = flow_log.cloud_watch
    to_cloud_watch = flow_log.destination_type == CLOUD_WATCH_LOGS

    log_group = None
    if to_cloud_watch and cloud_watch.create_log_group:
        log_group = LogGroupPlan(
            name=f"{cloud_watch.log_group_name_prefix}{spec.name}{cloud_watch.log_group_name_suffix}",
            retention_in_days=cloud_watch.retention_in_days,
            kms_key_id=cloud_watch.kms_key_id,
            skip_destroy=cloud_watch.skip_destroy,
            log_group_class=cloud_watch.log_group_class,
            tags=merge_tags(spec.tags),
        )
    elif not flow_log.destination_arn:
        raise ConfigurationError(
            "flow_log needs a destination: set destination_arn or cloud_watch.create_log_group"
        )

    iam_role = None
    if to_cloud_watch and cloud_watch.create_iam_role:
        role_name, role_name_prefix = _name_or_prefix(
            flow_log.iam_role_name,
            f"{spec.name}-vpc-flow-log-role",
            flow_log.iam_role_use_name_prefix,
        )
        policy_name, policy_name_prefix = _name_or_prefix(
            flow_log.iam_policy_name,
            f"{spec.name}-vpc-flow-log-to-cloudwatch",
            flow_log.iam_policy_use_name_prefix,
        )
        iam_role = FlowLogRolePlan(
            assume_role_policy=create_flow_log_assume_role_policy(cloud_watch.iam_role_conditions),
            policy=create_flow_log_cloudwatch_policy(),
            name=role_name,
            name_prefix=role_name_prefix,
            policy_name=policy_name,
            policy_name_prefix=policy_name_prefix,
            permissions_boundary=flow_log.permissions_boundary,
            tags=merge_tags(spec.tags),
        )
    elif to_cloud_watch and not cloud_watch.iam_role_arn:
        raise ConfigurationError(
            "flow_log to CloudWatch Logs needs an IAM role: set cloud_watch.iam_role_arn "
            "or cloud_watch.create_iam_role"
        )

    destination_options = {
        key: value
        for key, value in (
            ("file_format", flow_log.file_format),
            ("hive_compatible_partitions", flow_log.hive_compatible_partitions),
            ("per_hour_partition", flow_log.per_hour_partition),
        )
        if value is not None
    }

    return FlowLogPlan(
        log_destination_type=flow_log.destination_type,
        traffic_type=flow_log.traffic_type,
        max_aggregation_interval=flow_log.max_aggregation_interval,
        log_destination=None if log_group else flow_log.destination_arn,
        iam_role_arn=None if iam_role else cloud_watch.iam_role_arn,
        log_group=log_group,
        iam_role=iam_role,
        log_format=flow_log.log_format,
        deliver_cross_account_role=flow_log.deliver_cross_account_role,
        destination_options=destination_options or None,
        tags=merge_tags({"Name": spec.name}, spec.tags, flow_log.tags),
    )


def assemble_plan(spec: NetworkSpec) -> Plan:
    """Resolve ``spec`` into a complete, immutable plan.

    Tiers are planned in a fixed order, NAT gateways once for the whole VPC,
    and routes only after NAT gateways are known.  Any configuration error
    aborts the whole plan.
    """
    azs = tuple(spec.azs)
    if not spec.create_vpc:
        logger.info(f"create_vpc is off for '{spec.name}'; nothing to plan")
        return Plan(name=spec.name, azs=azs, vpc=None)

    vpc = _plan_vpc(spec)
    gateways = _plan_gateways(spec)
    parent_ipv4_cidrs = tuple(c for c in (vpc.cidr_block, *vpc.secondary_cidr_blocks) if c)
    parent_ipv6_cidr = spec.ipv6_cidr if spec.enable_ipv6 else None

    subnets: list[SubnetPlan] = []
    tables: list[RouteTablePlan] = []
    for tier_name in TIER_NAMES:
        tier_subnets, tier_tables = plan_tier(
            tier_name,
            spec.tier(tier_name),
            azs,
            name=spec.name,
            global_tags=spec.tags,
            parent_ipv4_cidrs=parent_ipv4_cidrs,
            parent_ipv6_cidr=parent_ipv6_cidr,
            enable_ipv6=spec.enable_ipv6,
        )
        subnets.extend(tier_subnets)
        tables.extend(tier_tables)

    public_count = sum(1 for s in subnets if s.tier == "public")
    private_count = sum(1 for s in subnets if s.tier == "private")
    nat = spec.nat_gateway
    nat_plans: list[NatPlan] = []
    if nat.enable:
        if public_count == 0 or private_count == 0:
            raise ConfigurationError("NAT gateways require both public and private subnets")
        nat_plans = plan_nat(
            nat.strategy,
            len(azs),
            public_count,
            private_count,
            nat.external_ips,
            name=spec.name,
            tags=spec.tags,
            gateway_tags=nat.tags,
            eip_tags=nat.eip_tags,
        )

    tables = _bind_all_routes(spec, tables, subnets, nat_plans, gateways)

    acls: list[AclPlan] = []
    for tier_name in TIER_NAMES:
        acl = bind_acl(
            tier_name,
            spec.tier(tier_name),
            [s.ordinal for s in subnets if s.tier == tier_name],
            name=spec.name,
            global_tags=spec.tags,
        )
        if acl is not None:
            acls.append(acl)

    plan = Plan(
        name=spec.name,
        azs=azs,
        vpc=vpc,
        gateways=gateways,
        nat_strategy=nat.strategy,
        subnets=tuple(subnets),
        route_tables=tuple(tables),
        associations=tuple(_plan_associations(spec, subnets, tables)),
        nat_gateways=tuple(nat_plans),
        acls=tuple(acls),
        subnet_groups=tuple(_plan_subnet_groups(spec, subnets)),
        dhcp_options=_plan_dhcp_options(spec),
        vpn_gateway=_plan_vpn_gateway(spec, tables),
        flow_log=_plan_flow_log(spec),
    )
    logger.info(
        f"Planned VPC '{spec.name}': {len(plan.subnets)} subnet(s) in "
        f"{len(plan.tiers())} tier(s), {len(plan.route_tables)} route table(s), "
        f"{len(plan.nat_gateways)} NAT gateway(s)"
    )
    return plan


# -----------------------------------------------------------------------------
# Intent flattening
# -----------------------------------------------------------------------------


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def route_table_key(tier: str, ordinal: int) -> str:
    return f"{tier}-rt-{ordinal}"


def subnet_key(tier: str, ordinal: int) -> str:
    return f"{tier}-{ordinal}"


def _vpc_intents(plan: Plan) -> list[ResourceIntent]:
    vpc = plan.vpc
    intents = [
        ResourceIntent(
            IntentKind.VPC,
            "vpc",
            _compact(
                {
                    "cidr_block": vpc.cidr_block,
                    "instance_tenancy": vpc.instance_tenancy,
                    "enable_dns_hostnames": vpc.enable_dns_hostnames,
                    "enable_dns_support": vpc.enable_dns_support,
                    "enable_network_address_usage_metrics": vpc.enable_network_address_usage_metrics,
                    "ipv4_ipam_pool_id": vpc.ipv4_ipam_pool_id,
                    "ipv4_netmask_length": vpc.ipv4_netmask_length,
                    "assign_generated_ipv6_cidr_block": vpc.assign_generated_ipv6_cidr_block,
                    "ipv6_cidr_block": vpc.ipv6_cidr_block,
                    "ipv6_ipam_pool_id": vpc.ipv6_ipam_pool_id,
                    "ipv6_netmask_length": vpc.ipv6_netmask_length,
                    "ipv6_cidr_block_network_border_group": vpc.ipv6_cidr_block_network_border_group,
                    "tags": vpc.tags,
                }
            ),
        )
    ]
    for i, cidr in enumerate(vpc.secondary_cidr_blocks):
        intents.append(
            ResourceIntent(
                IntentKind.VPC_CIDR_ASSOCIATION,
                f"secondary-cidr-{i}",
                {"cidr_block": cidr},
                {"vpc_id": Ref("vpc")},
            )
        )
    return intents


def _dhcp_intents(plan: Plan) -> list[ResourceIntent]:
    dhcp = plan.dhcp_options
    if dhcp is None:
        return []
    return [
        ResourceIntent(
            IntentKind.DHCP_OPTIONS,
            "dhcp",
            _compact(
                {
                    "domain_name": dhcp.domain_name,
                    "domain_name_servers": list(dhcp.domain_name_servers),
                    "ntp_servers": list(dhcp.ntp_servers) or None,
                    "netbios_name_servers": list(dhcp.netbios_name_servers) or None,
                    "netbios_node_type": dhcp.netbios_node_type,
                    "ipv6_address_preferred_lease_time": dhcp.ipv6_address_preferred_lease_time,
                    "tags": dhcp.tags,
                }
            ),
        ),
        ResourceIntent(
            IntentKind.DHCP_OPTIONS_ASSOCIATION,
            "dhcp-assoc",
            refs={"vpc_id": Ref("vpc"), "dhcp_options_id": Ref("dhcp")},
        ),
    ]


def _gateway_intents(plan: Plan) -> list[ResourceIntent]:
    intents = []
    if plan.gateways.internet_gateway:
        intents.append(
            ResourceIntent(
                IntentKind.INTERNET_GATEWAY,
                "igw",
                {"tags": plan.gateways.igw_tags},
                {"vpc_id": Ref("vpc")},
            )
        )
    if plan.gateways.egress_only_gateway:
        intents.append(
            ResourceIntent(
                IntentKind.EGRESS_ONLY_INTERNET_GATEWAY,
                "eigw",
                {"tags": plan.gateways.eigw_tags},
                {"vpc_id": Ref("vpc")},
            )
        )
    return intents


def _gateway_route_intent(table: RouteTablePlan, route: Route) -> Optional[ResourceIntent]:
    rt_ref = Ref(route_table_key(table.tier, table.ordinal))
    if route.target is RouteTarget.INTERNET_GATEWAY:
        if route.destination_ipv6_cidr_block:
            key = f"{table.tier}-route-igw-ipv6-{table.ordinal}"
            properties = {"destination_ipv6_cidr_block": route.destination_ipv6_cidr_block}
        else:
            key = f"{table.tier}-route-igw-{table.ordinal}"
            properties = {"destination_cidr_block": route.destination_cidr_block}
        return ResourceIntent(
            IntentKind.ROUTE, key, properties, {"route_table_id": rt_ref, "gateway_id": Ref("igw")}
        )
    if route.target is RouteTarget.EGRESS_ONLY_GATEWAY:
        return ResourceIntent(
            IntentKind.ROUTE,
            f"{table.tier}-route-eigw-{table.ordinal}",
            {"destination_ipv6_cidr_block": route.destination_ipv6_cidr_block},
            {"route_table_id": rt_ref, "egress_only_gateway_id": Ref("eigw")},
        )
    return None


def _subnet_intent(subnet: SubnetPlan) -> ResourceIntent:
    properties = _compact(
        {
            "cidr_block": subnet.cidr_block,
            "availability_zone": subnet.az,
            "ipv6_cidr_block": subnet.ipv6_cidr_block,
            "ipv6_native": True if subnet.ipv6_native else None,
            "tags": subnet.tags,
            **subnet.attributes,
        }
    )
    refs: dict[str, Any] = {"vpc_id": Ref("vpc")}
    if subnet.ipv6_prefix is not None:
        refs["ipv6_cidr_block"] = Ref("vpc", "ipv6_cidr_block", ipv6_prefix=subnet.ipv6_prefix)
    return ResourceIntent(IntentKind.SUBNET, subnet_key(subnet.tier, subnet.ordinal), properties, refs)


def _nat_intents(plan: Plan) -> list[ResourceIntent]:
    intents = []
    for nat in plan.nat_gateways:
        if nat.ip_source is IpSource.NEW_ELASTIC_IP:
            intents.append(
                ResourceIntent(
                    IntentKind.EIP,
                    f"nat-eip-{nat.ordinal}",
                    {"domain": "vpc", "tags": nat.eip_tags},
                )
            )
    for nat in plan.nat_gateways:
        refs: dict[str, Any] = {"subnet_id": Ref(subnet_key("public", nat.host_subnet_ordinal))}
        properties: dict[str, Any] = {"tags": nat.tags}
        if nat.ip_source is IpSource.NEW_ELASTIC_IP:
            refs["allocation_id"] = Ref(f"nat-eip-{nat.ordinal}", "allocation_id")
        else:
            properties["allocation_id"] = nat.allocation_id
        intents.append(ResourceIntent(IntentKind.NAT_GATEWAY, f"natgw-{nat.ordinal}", properties, refs))

    for table in plan.route_tables:
        for route in table.routes:
            if route.target is RouteTarget.NAT_GATEWAY:
                intents.append(
                    ResourceIntent(
                        IntentKind.ROUTE,
                        f"{table.tier}-route-natgw-{table.ordinal}",
                        {"destination_cidr_block": route.destination_cidr_block},
                        {
                            "route_table_id": Ref(route_table_key(table.tier, table.ordinal)),
                            "nat_gateway_id": Ref(f"natgw-{route.nat_gateway_index}"),
                        },
                    )
                )
    return intents


def _acl_intents(acl: AclPlan) -> list[ResourceIntent]:
    acl_key = f"{acl.tier}-nacl"
    intents = [
        ResourceIntent(
            IntentKind.NETWORK_ACL,
            acl_key,
            {"tags": acl.tags},
            {
                "vpc_id": Ref("vpc"),
                "subnet_ids": tuple(Ref(subnet_key(acl.tier, i)) for i in acl.members),
            },
        )
    ]
    for direction, rules, egress in (("ingress", acl.ingress, False), ("egress", acl.egress, True)):
        for i, rule in enumerate(rules):
            intents.append(
                ResourceIntent(
                    IntentKind.NETWORK_ACL_RULE,
                    f"{acl_key}-{direction}-{i}",
                    _compact(
                        {
                            "rule_number": rule.rule_number,
                            "egress": egress,
                            "protocol": rule.protocol,
                            "rule_action": rule.rule_action,
                            "cidr_block": rule.cidr_block,
                            "ipv6_cidr_block": rule.ipv6_cidr_block,
                            "from_port": rule.from_port,
                            "to_port": rule.to_port,
                        }
                    ),
                    {"network_acl_id": Ref(acl_key)},
                )
            )
    return intents


def _vpn_intents(plan: Plan) -> list[ResourceIntent]:
    vpn = plan.vpn_gateway
    if vpn is None:
        return []
    if vpn.existing_gateway_id:
        intents = [
            ResourceIntent(
                IntentKind.VPN_GATEWAY_ATTACHMENT,
                "vpn-attachment",
                {"vpn_gateway_id": vpn.existing_gateway_id},
                {"vpc_id": Ref("vpc")},
            )
        ]
        # Propagation waits for the attachment through its vpn_gateway_id output.
        gateway_ref = Ref("vpn-attachment", "vpn_gateway_id")
    else:
        intents = [
            ResourceIntent(
                IntentKind.VPN_GATEWAY,
                "vpn",
                _compact(
                    {
                        "amazon_side_asn": vpn.amazon_side_asn,
                        "availability_zone": vpn.availability_zone,
                        "tags": vpn.tags,
                    }
                ),
                {"vpc_id": Ref("vpc")},
            )
        ]
        gateway_ref = Ref("vpn")

    for tier, ordinal in vpn.propagated_route_tables:
        intents.append(
            ResourceIntent(
                IntentKind.VPN_GATEWAY_ROUTE_PROPAGATION,
                f"vpn-{tier}-rt-{ordinal}",
                refs={
                    "vpn_gateway_id": gateway_ref,
                    "route_table_id": Ref(route_table_key(tier, ordinal)),
                },
            )
        )
    return intents


def _flow_log_intents(plan: Plan) -> list[ResourceIntent]:
    flow_log = plan.flow_log
    if flow_log is None:
        return []

    intents = []
    refs: dict[str, Any] = {"vpc_id": Ref("vpc")}
    if flow_log.log_group is not None:
        group = flow_log.log_group
        intents.append(
            ResourceIntent(
                IntentKind.LOG_GROUP,
                "flow-log-group",
                _compact(
                    {
                        "name": group.name,
                        "retention_in_days": group.retention_in_days,
                        "kms_key_id": group.kms_key_id,
                        "skip_destroy": group.skip_destroy,
                        "log_group_class": group.log_group_class,
                        "tags": group.tags,
                    }
                ),
            )
        )
        refs["log_destination"] = Ref("flow-log-group", "arn")

    if flow_log.iam_role is not None:
        role = flow_log.iam_role
        intents.append(
            ResourceIntent(
                IntentKind.IAM_ROLE,
                "flow-log-role",
                _compact(
                    {
                        "name": role.name,
                        "name_prefix": role.name_prefix,
                        "assume_role_policy": role.assume_role_policy,
                        "permissions_boundary": role.permissions_boundary,
                        "tags": role.tags,
                    }
                ),
            )
        )
        intents.append(
            ResourceIntent(
                IntentKind.IAM_ROLE_POLICY,
                "flow-log-policy",
                _compact(
                    {
                        "name": role.policy_name,
                        "name_prefix": role.policy_name_prefix,
                        "policy": role.policy,
                    }
                ),
                {"role": Ref("flow-log-role")},
            )
        )
        refs["iam_role_arn"] = Ref("flow-log-role", "arn")

    intents.append(
        ResourceIntent(
            IntentKind.FLOW_LOG,
            "flow-log",
            _compact(
                {
                    "log_destination_type": flow_log.log_destination_type,
                    "traffic_type": flow_log.traffic_type,
                    "max_aggregation_interval": flow_log.max_aggregation_interval,
                    "log_destination": flow_log.log_destination,
                    "iam_role_arn": flow_log.iam_role_arn,
                    "log_format": flow_log.log_format,
                    "deliver_cross_account_role": flow_log.deliver_cross_account_role,
                    "destination_options": flow_log.destination_options,
                    "tags": flow_log.tags,
                }
            ),
            refs,
        )
    )
    return intents


def build_intents(plan: Plan) -> list[ResourceIntent]:
    """Flatten ``plan`` into resource intents in provisioning order.

    VPC, DHCP options, gateways, route tables, gateway routes, subnets,
    route table associations, NAT resources (and their routes), subnet
    groups, network ACLs, VPN gateway, flow logs.
    """
    if plan.vpc is None:
        return []

    intents: list[ResourceIntent] = []
    intents.extend(_vpc_intents(plan))
    intents.extend(_dhcp_intents(plan))
    intents.extend(_gateway_intents(plan))

    for table in plan.route_tables:
        intents.append(
            ResourceIntent(
                IntentKind.ROUTE_TABLE,
                route_table_key(table.tier, table.ordinal),
                {"tags": table.tags},
                {"vpc_id": Ref("vpc")},
            )
        )
    for table in plan.route_tables:
        for route in table.routes:
            intent = _gateway_route_intent(table, route)
            if intent is not None:
                intents.append(intent)

    intents.extend(_subnet_intent(subnet) for subnet in plan.subnets)

    for association in plan.associations:
        intents.append(
            ResourceIntent(
                IntentKind.ROUTE_TABLE_ASSOCIATION,
                f"{association.subnet_tier}-rta-{association.subnet_ordinal}",
                refs={
                    "subnet_id": Ref(subnet_key(association.subnet_tier, association.subnet_ordinal)),
                    "route_table_id": Ref(
                        route_table_key(association.route_table_tier, association.route_table_ordinal)
                    ),
                },
            )
        )

    intents.extend(_nat_intents(plan))

    for group in plan.subnet_groups:
        intents.append(
            ResourceIntent(
                SUBNET_GROUP_KINDS[group.tier],
                f"{group.tier}-subnet-group",
                {"name": group.name, "tags": group.tags},
                {"subnet_ids": tuple(Ref(subnet_key(group.tier, i)) for i in group.members)},
            )
        )

    for acl in plan.acls:
        intents.extend(_acl_intents(acl))

    intents.extend(_vpn_intents(plan))
    intents.extend(_flow_log_intents(plan))
    return intents
