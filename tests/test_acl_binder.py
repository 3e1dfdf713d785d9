from acl_binder import bind_acl
from network_spec import NetworkAclRule, NetworkAclSpec, TierSpec

RULES_IN = (
    NetworkAclRule(200, "deny", "tcp", 22, 22, cidr_block="0.0.0.0/0"),
    NetworkAclRule(100, "allow", "-1", cidr_block="10.0.0.0/16"),
)
RULES_OUT = (NetworkAclRule(100, "allow", "-1", ipv6_cidr_block="::/0"),)


def _tier(dedicated: bool) -> TierSpec:
    return TierSpec(
        cidr_blocks=("10.0.21.0/24", "10.0.22.0/24", "10.0.23.0/24"),
        network_acl=NetworkAclSpec(
            dedicated=dedicated,
            inbound_rules=RULES_IN,
            outbound_rules=RULES_OUT,
            tags={"Acl": "db"},
        ),
    )


def test_no_acl_unless_dedicated() -> None:
    assert bind_acl("database", _tier(False), [0, 1, 2], name="demo") is None


def test_no_acl_for_empty_tier() -> None:
    assert bind_acl("database", _tier(True), [], name="demo") is None


def test_dedicated_acl_covers_whole_tier() -> None:
    acl = bind_acl("database", _tier(True), [0, 1, 2], name="demo")

    assert acl is not None
    assert acl.members == (0, 1, 2)


def test_rules_keep_order_and_numbers() -> None:
    acl = bind_acl("database", _tier(True), [0, 1, 2], name="demo")

    assert acl.ingress == RULES_IN
    assert [r.rule_number for r in acl.ingress] == [200, 100]
    assert acl.egress == RULES_OUT


def test_name_and_tags() -> None:
    acl = bind_acl("database", _tier(True), [0], name="demo", global_tags={"Env": "dev", "Acl": "x"})

    assert acl.name == "demo-db"
    assert acl.tags == {"Name": "demo-db", "Env": "dev", "Acl": "db"}
