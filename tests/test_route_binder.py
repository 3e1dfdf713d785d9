import pytest

from nat_allocator import plan_nat
from network_spec import NatStrategy
from planning_errors import ConfigurationError
from route_binder import bind_routes, nat_gateway_index
from topology_plan import GatewayPlan, Route, RouteTablePlan, RouteTarget

BOTH_GATEWAYS = GatewayPlan(internet_gateway=True, egress_only_gateway=True)


def _table(ordinal: int = 0) -> RouteTablePlan:
    return RouteTablePlan(tier="private", ordinal=ordinal, az=None, name="demo-private", members=(ordinal,))


class TestNatIndex:
    def test_one_per_az_uses_first_member_az(self) -> None:
        assert nat_gateway_index(NatStrategy.ONE_PER_AZ, 4, first_member_az_index=1, nat_count=3) == 1
        assert nat_gateway_index(NatStrategy.ONE_PER_AZ, 0, first_member_az_index=5, nat_count=3) == 2

    def test_single_always_zero(self) -> None:
        assert nat_gateway_index(NatStrategy.SINGLE, 7, 2, 1) == 0

    def test_per_subnet_uses_table_ordinal(self) -> None:
        assert nat_gateway_index(NatStrategy.PER_SUBNET, 5, 0, 4) == 1


class TestBindRoutes:
    def test_public_table_gets_igw_routes_first(self) -> None:
        routes = bind_routes(
            _table(),
            NatStrategy.SINGLE,
            [],
            BOTH_GATEWAYS,
            wants_internet_gateway_route=True,
            wants_egress_only_route=True,
            enable_ipv6=True,
        )

        # The IGW already carries ::/0, so no egress-only route is added.
        assert routes == [
            Route(RouteTarget.INTERNET_GATEWAY, destination_cidr_block="0.0.0.0/0"),
            Route(RouteTarget.INTERNET_GATEWAY, destination_ipv6_cidr_block="::/0"),
        ]

    def test_no_igw_routes_without_gateway(self) -> None:
        routes = bind_routes(
            _table(), NatStrategy.SINGLE, [], GatewayPlan(), wants_internet_gateway_route=True
        )
        assert routes == []

    def test_private_table_order_nat_then_eigw(self) -> None:
        nat_plans = plan_nat(NatStrategy.PER_SUBNET, 3, 3, 3)
        routes = bind_routes(
            _table(2),
            NatStrategy.PER_SUBNET,
            nat_plans,
            BOTH_GATEWAYS,
            nat_route_default=True,
            wants_egress_only_route=True,
            enable_ipv6=True,
        )

        assert [r.target for r in routes] == [
            RouteTarget.NAT_GATEWAY,
            RouteTarget.EGRESS_ONLY_GATEWAY,
        ]
        assert routes[0].nat_gateway_index == 2
        assert routes[0].destination_cidr_block == "0.0.0.0/0"
        assert routes[1].destination_ipv6_cidr_block == "::/0"

    def test_nat_destination_override(self) -> None:
        routes = bind_routes(
            _table(),
            NatStrategy.SINGLE,
            plan_nat(NatStrategy.SINGLE, 1, 1, 1),
            GatewayPlan(),
            nat_route_default=True,
            nat_destination_cidr="192.168.0.0/16",
        )
        assert routes[0].destination_cidr_block == "192.168.0.0/16"

    def test_explicit_false_suppresses_default_nat_route(self) -> None:
        routes = bind_routes(
            _table(),
            NatStrategy.SINGLE,
            plan_nat(NatStrategy.SINGLE, 1, 1, 1),
            GatewayPlan(),
            create_nat_gateway_route=False,
            nat_route_default=True,
        )
        assert routes == []

    def test_default_without_nat_skips_silently(self) -> None:
        routes = bind_routes(_table(), NatStrategy.SINGLE, [], GatewayPlan(), nat_route_default=True)
        assert routes == []

    def test_explicit_nat_route_without_nat_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="no NAT gateways are planned"):
            bind_routes(_table(), NatStrategy.SINGLE, [], GatewayPlan(), create_nat_gateway_route=True)

    def test_explicit_nat_route_on_tier_without_default(self) -> None:
        routes = bind_routes(
            _table(),
            NatStrategy.SINGLE,
            plan_nat(NatStrategy.SINGLE, 1, 1, 1),
            GatewayPlan(),
            create_nat_gateway_route=True,
        )
        assert [r.target for r in routes] == [RouteTarget.NAT_GATEWAY]

    def test_no_egress_only_route_without_ipv6(self) -> None:
        routes = bind_routes(
            _table(), NatStrategy.SINGLE, [], BOTH_GATEWAYS, wants_egress_only_route=True
        )
        assert routes == []

    def test_emission_is_deterministic(self) -> None:
        nat_plans = plan_nat(NatStrategy.ONE_PER_AZ, 3, 3, 3)
        kwargs = dict(
            first_member_az_index=1,
            wants_internet_gateway_route=False,
            nat_route_default=True,
            wants_egress_only_route=True,
            enable_ipv6=True,
        )
        first = bind_routes(_table(1), NatStrategy.ONE_PER_AZ, nat_plans, BOTH_GATEWAYS, **kwargs)
        second = bind_routes(_table(1), NatStrategy.ONE_PER_AZ, nat_plans, BOTH_GATEWAYS, **kwargs)
        assert first == second
        assert first[0].nat_gateway_index == 1
