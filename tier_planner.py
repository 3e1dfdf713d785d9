"""Expand one tier's CIDR list into subnet and route table plans."""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from network_helpers import az_at, canonicalize_ipv4_cidr, derive_ipv6_cidr, merge_tags
from network_spec import RouteTableStrategy, TierSpec
from planning_errors import ConfigurationError
from topology_plan import RouteTablePlan, SubnetPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierDefaults:
    suffix: str
    route_table_strategy: RouteTableStrategy
    # TierSpec flag that switches the tier to ``dedicated_strategy``.
    dedicated_flag: Optional[str] = None
    dedicated_strategy: Optional[RouteTableStrategy] = None
    internet_gateway_route: bool = False
    nat_gateway_route: bool = False
    egress_only_route: bool = False


TIER_DEFAULTS: dict[str, TierDefaults] = {
    "public": TierDefaults(
        "public",
        RouteTableStrategy.SINGLE,
        dedicated_flag="create_multiple_route_tables",
        dedicated_strategy=RouteTableStrategy.PER_SUBNET,
        internet_gateway_route=True,
    ),
    "private": TierDefaults(
        "private",
        RouteTableStrategy.PER_AZ,
        nat_gateway_route=True,
        egress_only_route=True,
    ),
    "database": TierDefaults(
        "db",
        RouteTableStrategy.SHARED,
        dedicated_flag="create_route_table",
        dedicated_strategy=RouteTableStrategy.PER_SUBNET,
        egress_only_route=True,
    ),
    "elasticache": TierDefaults(
        "elasticache",
        RouteTableStrategy.SHARED,
        dedicated_flag="create_route_table",
        dedicated_strategy=RouteTableStrategy.SINGLE,
    ),
    "redshift": TierDefaults(
        "redshift",
        RouteTableStrategy.SHARED,
        dedicated_flag="create_route_table",
        dedicated_strategy=RouteTableStrategy.SINGLE,
    ),
    "intra": TierDefaults(
        "intra",
        RouteTableStrategy.SINGLE,
        dedicated_flag="create_multiple_route_tables",
        dedicated_strategy=RouteTableStrategy.PER_SUBNET,
    ),
    "outpost": TierDefaults("outpost", RouteTableStrategy.SHARED),
}


def tier_defaults(tier_name: str) -> TierDefaults:
    try:
        return TIER_DEFAULTS[tier_name]
    except KeyError as e:
        raise ConfigurationError(f"Unknown tier '{tier_name}'") from e


def tier_suffix(tier_name: str, tier: TierSpec) -> str:
    return tier.suffix or tier_defaults(tier_name).suffix


def resolve_route_table_strategy(tier_name: str, tier: TierSpec) -> RouteTableStrategy:
    """Pick the tier's route table strategy.

    An explicit ``route_table_strategy`` wins; otherwise the tier's
    ``create_route_table`` / ``create_multiple_route_tables`` flag selects the
    dedicated strategy, falling back to the tier default.
    """
    if tier.route_table_strategy is not None:
        return tier.route_table_strategy
    defaults = tier_defaults(tier_name)
    if defaults.dedicated_flag and getattr(tier, defaults.dedicated_flag):
        return defaults.dedicated_strategy or defaults.route_table_strategy
    return defaults.route_table_strategy


def route_table_count(strategy: RouteTableStrategy, subnet_count: int) -> int:
    if subnet_count == 0 or strategy is RouteTableStrategy.SHARED:
        return 0
    if strategy is RouteTableStrategy.SINGLE:
        return 1
    # perAz and perSubnet both give each subnet ordinal its own table, even
    # when AZs repeat.
    return subnet_count


def _ipv6_prefix_at(tier: TierSpec, ordinal: int) -> Optional[int]:
    if ordinal < len(tier.ipv6_prefixes):
        return tier.ipv6_prefixes[ordinal]
    return None


def _subnet_attributes(tier_name: str, tier: TierSpec, enable_ipv6: bool) -> dict[str, Any]:
    native = enable_ipv6 and tier.ipv6_native
    attributes: dict[str, Any] = {
        "map_public_ip_on_launch": tier.map_public_ip_on_launch,
        "assign_ipv6_address_on_creation": True if native else tier.assign_ipv6_address_on_creation,
        "enable_dns64": enable_ipv6 and tier.enable_dns64,
        "enable_resource_name_dns_aaaa_record_on_launch": (
            enable_ipv6 and tier.enable_resource_name_dns_aaaa_record_on_launch
        ),
        "enable_resource_name_dns_a_record_on_launch": (
            not tier.ipv6_native and tier.enable_resource_name_dns_a_record_on_launch
        ),
    }
    if tier.private_dns_hostname_type_on_launch:
        attributes["private_dns_hostname_type_on_launch"] = tier.private_dns_hostname_type_on_launch
    if tier_name == "outpost":
        if tier.outpost_arn:
            attributes["outpost_arn"] = tier.outpost_arn
        if tier.customer_owned_ipv4_pool:
            attributes["customer_owned_ipv4_pool"] = tier.customer_owned_ipv4_pool
        if tier.map_customer_owned_ip_on_launch is not None:
            attributes["map_customer_owned_ip_on_launch"] = tier.map_customer_owned_ip_on_launch
    return attributes


def _warn_outside_vpc(tier_name: str, ordinal: int, cidr: str, parents: Sequence[str]) -> None:
    subnet = ipaddress.ip_network(cidr)
    for parent in parents:
        if subnet.subnet_of(ipaddress.ip_network(parent, strict=False)):
            return
    logger.warning(
        f"{tier_name} subnet {ordinal} ({cidr}) is outside the VPC CIDR block(s): "
        f"{', '.join(parents)}"
    )


def plan_subnets(
    tier_name: str,
    tier: TierSpec,
    azs: Sequence[str],
    *,
    name: str,
    global_tags: Optional[Mapping[str, str]] = None,
    parent_ipv4_cidrs: Sequence[str] = (),
    parent_ipv6_cidr: Optional[str] = None,
    enable_ipv6: bool = False,
) -> list[SubnetPlan]:
    if not tier.cidr_blocks:
        return []
    if not azs:
        raise ConfigurationError(
            f"{tier_name} subnets are configured but no availability zones were given"
        )

    suffix = tier_suffix(tier_name, tier)
    attributes = _subnet_attributes(tier_name, tier, enable_ipv6)
    subnets: list[SubnetPlan] = []

    for i, raw_cidr in enumerate(tier.cidr_blocks):
        az = az_at(azs, i)
        if tier_name == "outpost" and tier.outpost_az:
            az = tier.outpost_az

        explicit_name = tier.names[i] if i < len(tier.names) else ""
        subnet_name = explicit_name or f"{name}-{suffix}-{az}"
        tags = merge_tags({"Name": subnet_name}, global_tags, tier.tags, tier.tags_per_az.get(az))

        ipv6_cidr_block = None
        deferred_prefix = None
        prefix = _ipv6_prefix_at(tier, i) if enable_ipv6 else None
        if prefix is not None:
            if parent_ipv6_cidr:
                ipv6_cidr_block = derive_ipv6_cidr(parent_ipv6_cidr, prefix)
            else:
                deferred_prefix = prefix

        # IPv6-native subnets never carry an IPv4 block, even without a prefix.
        cidr_block = None
        if not tier.ipv6_native:
            cidr_block = canonicalize_ipv4_cidr(raw_cidr)
            if parent_ipv4_cidrs:
                _warn_outside_vpc(tier_name, i, cidr_block, parent_ipv4_cidrs)

        subnets.append(
            SubnetPlan(
                tier=tier_name,
                ordinal=i,
                az=az,
                az_index=i % len(azs),
                name=subnet_name,
                cidr_block=cidr_block,
                ipv6_cidr_block=ipv6_cidr_block,
                ipv6_prefix=deferred_prefix,
                ipv6_native=tier.ipv6_native,
                tags=tags,
                attributes=dict(attributes),
            )
        )
    return subnets


def plan_route_tables(
    tier_name: str,
    tier: TierSpec,
    azs: Sequence[str],
    subnet_count: int,
    *,
    name: str,
    global_tags: Optional[Mapping[str, str]] = None,
) -> list[RouteTablePlan]:
    strategy = resolve_route_table_strategy(tier_name, tier)
    count = route_table_count(strategy, subnet_count)
    suffix = tier_suffix(tier_name, tier)

    tables: list[RouteTablePlan] = []
    for t in range(count):
        if strategy is RouteTableStrategy.SINGLE:
            az = None
            table_name = f"{name}-{suffix}"
        else:
            az = az_at(azs, t)
            table_name = f"{name}-{suffix}-{az}"
        members = tuple(i for i in range(subnet_count) if i % count == t)
        tables.append(
            RouteTablePlan(
                tier=tier_name,
                ordinal=t,
                az=az,
                name=table_name,
                members=members,
                tags=merge_tags({"Name": table_name}, global_tags, tier.route_table_tags),
            )
        )
    return tables


def plan_tier(
    tier_name: str,
    tier: TierSpec,
    azs: Sequence[str],
    *,
    name: str,
    global_tags: Optional[Mapping[str, str]] = None,
    parent_ipv4_cidrs: Sequence[str] = (),
    parent_ipv6_cidr: Optional[str] = None,
    enable_ipv6: bool = False,
) -> tuple[list[SubnetPlan], list[RouteTablePlan]]:
    """Plan the subnets and route tables of one tier.

    A tier with no CIDR blocks is skipped and yields ``([], [])``.  Route
    tables come back without routes; the route binder fills those in once
    NAT gateways are known.
    """
    subnets = plan_subnets(
        tier_name,
        tier,
        azs,
        name=name,
        global_tags=global_tags,
        parent_ipv4_cidrs=parent_ipv4_cidrs,
        parent_ipv6_cidr=parent_ipv6_cidr,
        enable_ipv6=enable_ipv6,
    )
    if not subnets:
        return [], []

    tables = plan_route_tables(
        tier_name, tier, azs, len(subnets), name=name, global_tags=global_tags
    )
    logger.debug(f"Planned {len(subnets)} {tier_name} subnet(s) and {len(tables)} route table(s)")
    return subnets, tables
