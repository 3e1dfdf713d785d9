"""Compute the ordered routes of a single route table."""

from typing import Optional, Sequence

from network_spec import NatStrategy
from planning_errors import ConfigurationError
from topology_plan import GatewayPlan, NatPlan, Route, RouteTablePlan, RouteTarget

IPV4_DEFAULT_ROUTE = "0.0.0.0/0"
IPV6_DEFAULT_ROUTE = "::/0"


def nat_gateway_index(
    strategy: NatStrategy, table_ordinal: int, first_member_az_index: int, nat_count: int
) -> int:
    if strategy is NatStrategy.ONE_PER_AZ:
        return first_member_az_index % nat_count
    if strategy is NatStrategy.SINGLE:
        return 0
    return table_ordinal % nat_count


def bind_routes(
    table: RouteTablePlan,
    strategy: NatStrategy,
    nat_plans: Sequence[NatPlan],
    gateways: GatewayPlan,
    *,
    first_member_az_index: int = 0,
    wants_internet_gateway_route: bool = False,
    create_nat_gateway_route: Optional[bool] = None,
    nat_route_default: bool = False,
    wants_egress_only_route: bool = False,
    enable_ipv6: bool = False,
    nat_destination_cidr: str = IPV4_DEFAULT_ROUTE,
) -> list[Route]:
    """Return the table's routes in a fixed order.

    1. internet gateway ``0.0.0.0/0``
    2. internet gateway ``::/0`` (IPv6 only)
    3. NAT gateway default route
    4. egress-only internet gateway ``::/0`` unless step 2 already added one

    ``create_nat_gateway_route`` is tri-state: ``None`` falls back to
    ``nat_route_default`` and quietly skips when no NAT gateways exist, while
    an explicit ``True`` without NAT gateways is a configuration error.
    """
    routes: list[Route] = []

    igw_ipv6 = False
    if wants_internet_gateway_route and gateways.internet_gateway:
        routes.append(
            Route(target=RouteTarget.INTERNET_GATEWAY, destination_cidr_block=IPV4_DEFAULT_ROUTE)
        )
        if enable_ipv6:
            routes.append(
                Route(
                    target=RouteTarget.INTERNET_GATEWAY,
                    destination_ipv6_cidr_block=IPV6_DEFAULT_ROUTE,
                )
            )
            igw_ipv6 = True

    wants_nat = nat_route_default if create_nat_gateway_route is None else create_nat_gateway_route
    if create_nat_gateway_route and not nat_plans:
        raise ConfigurationError(
            f"Route table '{table.name}' requests a NAT gateway route but no NAT gateways are planned"
        )
    if wants_nat and nat_plans:
        index = nat_gateway_index(strategy, table.ordinal, first_member_az_index, len(nat_plans))
        routes.append(
            Route(
                target=RouteTarget.NAT_GATEWAY,
                destination_cidr_block=nat_destination_cidr,
                nat_gateway_index=index,
            )
        )

    if wants_egress_only_route and enable_ipv6 and gateways.egress_only_gateway and not igw_ipv6:
        routes.append(
            Route(
                target=RouteTarget.EGRESS_ONLY_GATEWAY,
                destination_ipv6_cidr_block=IPV6_DEFAULT_ROUTE,
            )
        )
    return routes
