"""Human-readable and JSON renderings of a topology plan."""

import os
from dataclasses import asdict
from enum import Enum
from functools import lru_cache
from typing import Any

import jinja2

from topology_plan import Plan, Route, RouteTarget

PLAN_SUMMARY_TEMPLATE = "plan-summary.txt.j2"


@lru_cache(maxsize=1)
def _template_environment() -> jinja2.Environment:
    template_dir = os.path.join(os.path.dirname(__file__), "templates")
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(template_dir),
        undefined=jinja2.StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def describe_route(route: Route) -> str:
    destination = route.destination_cidr_block or route.destination_ipv6_cidr_block
    if route.target is RouteTarget.NAT_GATEWAY:
        return f"{destination} -> nat-gateway[{route.nat_gateway_index}]"
    return f"{destination} -> {route.target.value}"


def _summary_context(plan: Plan) -> dict[str, Any]:
    tiers = []
    for tier in plan.tiers():
        subnets = [
            {
                "ordinal": s.ordinal,
                "name": s.name,
                "az": s.az,
                "cidr_block": s.cidr_block or "-",
                "ipv6": s.ipv6_cidr_block
                or (f"<vpc ipv6>:{s.ipv6_prefix}" if s.ipv6_prefix is not None else "-"),
            }
            for s in plan.subnets_for(tier)
        ]
        route_tables = [
            {
                "ordinal": rt.ordinal,
                "name": rt.name,
                "members": ", ".join(str(m) for m in rt.members),
                "routes": [describe_route(r) for r in rt.routes],
            }
            for rt in plan.route_tables_for(tier)
        ]
        shared = sorted(
            {
                a.route_table_tier
                for a in plan.associations
                if a.subnet_tier == tier and a.route_table_tier != tier
            }
        )
        tiers.append(
            {"name": tier, "subnets": subnets, "route_tables": route_tables, "shares": shared}
        )

    return {
        "plan": plan,
        "tiers": tiers,
        "nat_gateways": [
            {
                "ordinal": nat.ordinal,
                "name": nat.name,
                "source": nat.ip_source.value,
                "allocation": nat.allocation_id or "new",
                "host": nat.host_subnet_ordinal,
            }
            for nat in plan.nat_gateways
        ],
        "acls": [
            {
                "tier": acl.tier,
                "name": acl.name,
                "ingress": len(acl.ingress),
                "egress": len(acl.egress),
            }
            for acl in plan.acls
        ],
    }


def render_plan_summary(plan: Plan) -> str:
    """Render the plan as a short text report, one block per tier."""
    template = _template_environment().get_template(PLAN_SUMMARY_TEMPLATE)
    return template.render(_summary_context(plan))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def plan_to_dict(plan: Plan) -> dict[str, Any]:
    return _jsonable(asdict(plan))
