"""TieredVpc tests against the Pulumi mock runtime."""

import pulumi

from network_spec import network_spec_from_config
from topology_assembler import assemble_plan, build_intents

VPC_IPV6_BLOCK = "2600:1f14:abcd:1200::/56"


class TieredVpcMocks(pulumi.runtime.Mocks):
    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        outputs.setdefault("arn", f"arn:aws:mock:us-east-1:123456789012:{args.name}")
        if args.typ == "aws:ec2/vpc:Vpc":
            outputs["ipv6CidrBlock"] = VPC_IPV6_BLOCK
        if args.typ == "aws:ec2/eip:Eip":
            outputs["publicIp"] = "203.0.113.7"
            outputs["allocationId"] = f"eipalloc-{args.name}"
        return [f"{args.name}_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}


pulumi.runtime.set_mocks(TieredVpcMocks(), preview=False)

from provisioner import TieredVpc  # noqa: E402


def _plan(**overrides):
    raw = {
        "name": "demo",
        "azs": ["us-east-1a", "us-east-1b"],
        "public_subnets": {"cidr_blocks": ["10.0.101.0/24", "10.0.102.0/24"]},
        "private_subnets": {"cidr_blocks": ["10.0.1.0/24", "10.0.2.0/24"]},
        "database_subnets": {"cidr_blocks": ["10.0.21.0/24", "10.0.22.0/24"]},
        "nat_gateway": {"enable": True, "single": True},
    }
    raw.update(overrides)
    return assemble_plan(network_spec_from_config(raw))


@pulumi.runtime.test
def test_creates_one_resource_per_intent():
    plan = _plan()
    vpc = TieredVpc("count", plan)

    assert set(vpc.resources) == {intent.key for intent in build_intents(plan)}
    assert isinstance(vpc.resources["database-subnet-group"], pulumi.CustomResource)


@pulumi.runtime.test
def test_exports_subnet_and_route_table_ids():
    vpc = TieredVpc("ids", _plan())

    def check(args):
        public_ids, private_ids, database_ids, private_tables, vpc_id = args
        assert public_ids == ["ids-public-0_id", "ids-public-1_id"]
        assert private_ids == ["ids-private-0_id", "ids-private-1_id"]
        assert database_ids == ["ids-database-0_id", "ids-database-1_id"]
        assert private_tables == ["ids-private-rt-0_id", "ids-private-rt-1_id"]
        assert vpc_id == "ids-vpc_id"

    assert "database" not in vpc.route_table_ids
    return pulumi.Output.all(
        vpc.subnet_ids["public"],
        vpc.subnet_ids["private"],
        vpc.subnet_ids["database"],
        vpc.route_table_ids["private"],
        vpc.vpc_id,
    ).apply(check)


@pulumi.runtime.test
def test_nat_gateway_uses_new_eip_in_public_subnet():
    vpc = TieredVpc("nat", _plan())
    nat = vpc.resources["natgw-0"]

    def check(args):
        allocation_id, subnet_id, public_ips, route_nat_id = args
        assert allocation_id == "eipalloc-nat-nat-eip-0"
        assert subnet_id == "nat-public-0_id"
        assert public_ips == ["203.0.113.7"]
        assert route_nat_id == "nat-natgw-0_id"

    return pulumi.Output.all(
        nat.allocation_id,
        nat.subnet_id,
        vpc.nat_public_ips,
        vpc.resources["private-route-natgw-1"].nat_gateway_id,
    ).apply(check)


@pulumi.runtime.test
def test_reused_allocation_ids_are_passed_through():
    plan = _plan(
        nat_gateway={
            "enable": True,
            "single": True,
            "reuse_eips": True,
            "external_nat_ip_ids": ["eipalloc-existing"],
            "external_nat_ips": ["198.51.100.4"],
        }
    )
    vpc = TieredVpc("reuse", plan)

    assert "nat-eip-0" not in vpc.resources

    def check(args):
        allocation_id, public_ips = args
        assert allocation_id == "eipalloc-existing"
        assert public_ips == ["198.51.100.4"]

    return pulumi.Output.all(vpc.resources["natgw-0"].allocation_id, vpc.nat_public_ips).apply(check)


@pulumi.runtime.test
def test_deferred_ipv6_cidr_is_derived_from_vpc_block():
    plan = _plan(
        enable_ipv6=True,
        private_subnets={"cidr_blocks": ["10.0.1.0/24", "10.0.2.0/24"], "ipv6_prefixes": [1, 2]},
    )
    vpc = TieredVpc("ipv6", plan)

    def check(args):
        first, second = args
        assert first == "2600:1f14:abcd:1200::/64:1::/64"
        assert second == "2600:1f14:abcd:1200::/64:2::/64"

    return pulumi.Output.all(
        vpc.resources["private-0"].ipv6_cidr_block,
        vpc.resources["private-1"].ipv6_cidr_block,
    ).apply(check)


@pulumi.runtime.test
def test_subnet_group_names_and_tags():
    vpc = TieredVpc("groups", _plan())

    def check(args):
        name, tags = args
        assert name == "demo-database"
        assert tags == {"Name": "demo-database"}

    group = vpc.resources["database-subnet-group"]
    return pulumi.Output.all(vpc.subnet_group_names["database"], group.tags).apply(check)


@pulumi.runtime.test
def test_flow_log_wires_log_group_and_role():
    plan = _plan(
        flow_log={
            "enable": True,
            "cloud_watch": {"create_log_group": True, "create_iam_role": True},
        }
    )
    vpc = TieredVpc("flows", plan)
    flow_log = vpc.resources["flow-log"]

    def check(args):
        destination, role_arn, vpc_id, group_name = args
        assert destination == "arn:aws:mock:us-east-1:123456789012:flows-flow-log-group"
        assert role_arn == "arn:aws:mock:us-east-1:123456789012:flows-flow-log-role"
        assert vpc_id == "flows-vpc_id"
        assert group_name == "/aws/vpc-flow-log/demo"

    return pulumi.Output.all(
        flow_log.log_destination,
        flow_log.iam_role_arn,
        flow_log.vpc_id,
        vpc.resources["flow-log-group"].name,
    ).apply(check)


@pulumi.runtime.test
def test_existing_vpn_gateway_id_is_exported():
    plan = _plan(vpn_gateway={"enable": True, "vpn_gateway_id": "vgw-0abc"})
    vpc = TieredVpc("vpn", plan)

    def check(vpn_gateway_id):
        assert vpn_gateway_id == "vgw-0abc"

    return vpc.vpn_gateway_id.apply(check)


@pulumi.runtime.test
def test_disabled_vpc_creates_nothing():
    vpc = TieredVpc("off", _plan(create_vpc=False))

    assert vpc.resources == {}
    assert vpc.vpc_id is None
    assert vpc.subnet_ids == {}
