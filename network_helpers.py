"""Utility helpers for AZ placement and subnet CIDR calculations.

This module contains pure-Python routines used while planning a tiered VPC:
picking the availability zone for a subnet ordinal and deriving per-subnet
IPv6 CIDRs from the VPC's IPv6 block.  The functions are kept free of Pulumi
imports (``ipv6_cidr_output`` only calls ``.apply`` on whatever it is given)
so they can be tested and exercised without a Pulumi runtime.

``canonicalize_ipv4_cidr`` mirrors AWS ``CreateVpc``/``CreateSubnet``
behaviour: host bits provided in the configuration are silently zeroed
rather than raising an error.
"""

import ipaddress
from typing import Any, Mapping, Optional, Sequence

from planning_errors import ConfigurationError, InvalidCidrError

DEFAULT_IPV6_SUFFIX = "::/64"

# Bits reserved for the per-subnet tag when deriving an IPv6 subnet (/56 -> /64).
IPV6_SUBNET_BITS = 8


def canonicalize_ipv4_cidr(cidr: str) -> str:
    # Intentionally mirrors AWS CreateVpc/CreateSubnet behavior, which canonicalizes
    # host bits in CIDR input instead of rejecting it.
    try:
        network = ipaddress.ip_network(cidr, strict=False)
    except ValueError as e:
        raise InvalidCidrError(f"Invalid IPv4 CIDR block '{cidr}': {e}") from e
    if network.version != 4:
        raise InvalidCidrError(f"Expected an IPv4 CIDR block, got: {cidr}")
    return str(network)


def az_at(azs: Sequence[str], ordinal: int) -> str:
    """Return the availability zone for ``ordinal``, wrapping around ``azs``.

    Example: ``azs=["a", "b", "c"]`` maps ordinals 0..5 to a, b, c, a, b, c.
    """
    if not azs:
        raise ConfigurationError("At least one availability zone is required")
    if ordinal < 0:
        raise ConfigurationError(f"Ordinal must be non-negative, got {ordinal}")
    return azs[ordinal % len(azs)]


def derive_ipv6_cidr(
    parent_cidr: str, sub_prefix_tag: int, append_suffix: str = DEFAULT_IPV6_SUFFIX
) -> str:
    """Derive a subnet IPv6 CIDR from the VPC block and a per-subnet tag.

    The transform is purely textual: ``base/len`` becomes
    ``base/{len + 8}:{tag}{append_suffix}``.  For example
    ``derive_ipv6_cidr("2001:db8::/56", 7)`` returns ``"2001:db8::/64:7::/64"``.
    Nothing checks that the result is bitwise contained in the parent block.
    """
    if "/" not in parent_cidr:
        raise InvalidCidrError(
            f"IPv6 CIDR '{parent_cidr}' must be in '<base>/<prefix>' format"
        )
    if sub_prefix_tag < 0:
        raise InvalidCidrError(
            f"IPv6 subnet prefix tag must be non-negative, got {sub_prefix_tag}"
        )

    base, prefix_len = parent_cidr.rsplit("/", 1)
    try:
        new_prefix_len = int(prefix_len) + IPV6_SUBNET_BITS
    except ValueError as e:
        raise InvalidCidrError(
            f"IPv6 CIDR '{parent_cidr}' has a non-numeric prefix length"
        ) from e
    return f"{base}/{new_prefix_len}:{sub_prefix_tag}{append_suffix}"


def derive_ipv6_cidr_from_optional(
    parent_cidr: Optional[str], sub_prefix_tag: int
) -> Optional[str]:
    # The VPC may not have an IPv6 block (yet); no block means no subnet CIDR.
    if not parent_cidr:
        return None
    return derive_ipv6_cidr(parent_cidr, sub_prefix_tag)


def ipv6_cidr_output(parent_cidr_output: Any, sub_prefix_tag: int) -> Any:
    """Wrap ``derive_ipv6_cidr`` around the Amazon-assigned VPC IPv6 block,
    which is only known once the VPC exists."""
    return parent_cidr_output.apply(
        lambda cidr: derive_ipv6_cidr_from_optional(cidr, sub_prefix_tag)
    )


def merge_tags(*layers: Optional[Mapping[str, str]]) -> dict[str, str]:
    # Later layers win on key collision.
    merged: dict[str, str] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged
