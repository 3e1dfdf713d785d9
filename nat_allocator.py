"""NAT gateway count, placement and Elastic IP selection.

Everything here is a pure function of the NAT strategy and subnet counts, so
the same spec always yields the same gateways in the same public subnets.
"""

from typing import Mapping, Optional

from network_helpers import merge_tags
from network_spec import ExternalNatIps, NatStrategy
from planning_errors import ConfigurationError
from topology_plan import IpSource, NatPlan


def nat_gateway_count(
    strategy: NatStrategy, az_count: int, public_subnet_count: int, private_subnet_count: int
) -> int:
    if strategy is NatStrategy.ONE_PER_AZ and az_count == 0:
        raise ConfigurationError("NAT strategy 'onePerAz' requires at least one availability zone")
    if public_subnet_count == 0 or private_subnet_count == 0:
        return 0
    if strategy is NatStrategy.ONE_PER_AZ:
        return az_count
    if strategy is NatStrategy.SINGLE:
        return 1
    return private_subnet_count


def host_subnet_ordinal(
    strategy: NatStrategy, index: int, az_count: int, public_subnet_count: int
) -> int:
    """Public subnet ordinal that hosts NAT gateway ``index``.

    ``onePerAz`` walks the public subnets directly.  Every other strategy
    advances one public subnet per ``az_count`` gateways, which spreads
    unevenly when the public subnet count is not a multiple of the AZ count.
    """
    if strategy is NatStrategy.ONE_PER_AZ:
        return index % public_subnet_count
    if az_count == 0:
        raise ConfigurationError("NAT gateway placement requires at least one availability zone")
    return (index // az_count) % public_subnet_count


def plan_nat(
    strategy: NatStrategy,
    az_count: int,
    public_subnet_count: int,
    private_subnet_count: int,
    external_ips: Optional[ExternalNatIps] = None,
    *,
    name: str = "",
    tags: Optional[Mapping[str, str]] = None,
    gateway_tags: Optional[Mapping[str, str]] = None,
    eip_tags: Optional[Mapping[str, str]] = None,
) -> list[NatPlan]:
    count = nat_gateway_count(strategy, az_count, public_subnet_count, private_subnet_count)
    external_ips = external_ips or ExternalNatIps()
    reuse = external_ips.reuse_eips and bool(external_ips.allocation_ids)

    plans: list[NatPlan] = []
    for i in range(count):
        nat_name = f"{name}-nat-{i}" if name else f"nat-{i}"
        if reuse:
            allocation_id = external_ips.allocation_ids[i % len(external_ips.allocation_ids)]
            public_ip = external_ips.public_ips[i] if i < len(external_ips.public_ips) else None
            ip_source = IpSource.REUSED_ALLOCATION_ID
        else:
            allocation_id = None
            public_ip = None
            ip_source = IpSource.NEW_ELASTIC_IP

        plans.append(
            NatPlan(
                ordinal=i,
                ip_source=ip_source,
                host_subnet_ordinal=host_subnet_ordinal(strategy, i, az_count, public_subnet_count),
                name=nat_name,
                allocation_id=allocation_id,
                public_ip=public_ip,
                tags=merge_tags({"Name": nat_name}, tags, gateway_tags),
                eip_tags=merge_tags({"Name": nat_name}, tags, eip_tags) if not reuse else {},
            )
        )
    return plans
