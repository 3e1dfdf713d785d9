"""Dedicated network ACLs, one per tier at most."""

from typing import Mapping, Optional, Sequence

from network_helpers import merge_tags
from network_spec import TierSpec
from tier_planner import tier_suffix
from topology_plan import AclPlan


def bind_acl(
    tier_name: str,
    tier: TierSpec,
    subnet_ordinals: Sequence[int],
    *,
    name: str,
    global_tags: Optional[Mapping[str, str]] = None,
) -> Optional[AclPlan]:
    """Return the tier's dedicated ACL, or ``None`` when it has none.

    The ACL always covers every subnet of the tier.  Rules keep the order
    and rule numbers they were configured with.
    """
    acl = tier.network_acl
    if not acl.dedicated or not subnet_ordinals:
        return None

    acl_name = f"{name}-{tier_suffix(tier_name, tier)}"
    return AclPlan(
        tier=tier_name,
        name=acl_name,
        members=tuple(subnet_ordinals),
        ingress=tuple(acl.inbound_rules),
        egress=tuple(acl.outbound_rules),
        tags=merge_tags({"Name": acl_name}, global_tags, acl.tags),
    )
