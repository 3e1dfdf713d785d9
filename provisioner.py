"""Pulumi backend that provisions a planned VPC topology."""

import logging
from typing import Any, Callable, Optional

import pulumi
import pulumi_aws as aws

from network_helpers import ipv6_cidr_output
from topology_assembler import build_intents, route_table_key, subnet_key
from topology_plan import IntentKind, IpSource, NatPlan, Plan, Ref, ResourceIntent

logger = logging.getLogger(__name__)

RESOURCE_FACTORIES: dict[IntentKind, Callable[..., pulumi.CustomResource]] = {
    IntentKind.VPC: aws.ec2.Vpc,
    IntentKind.VPC_CIDR_ASSOCIATION: aws.ec2.VpcIpv4CidrBlockAssociation,
    IntentKind.DHCP_OPTIONS: aws.ec2.VpcDhcpOptions,
    IntentKind.DHCP_OPTIONS_ASSOCIATION: aws.ec2.VpcDhcpOptionsAssociation,
    IntentKind.INTERNET_GATEWAY: aws.ec2.InternetGateway,
    IntentKind.EGRESS_ONLY_INTERNET_GATEWAY: aws.ec2.EgressOnlyInternetGateway,
    IntentKind.ROUTE_TABLE: aws.ec2.RouteTable,
    IntentKind.ROUTE: aws.ec2.Route,
    IntentKind.SUBNET: aws.ec2.Subnet,
    IntentKind.ROUTE_TABLE_ASSOCIATION: aws.ec2.RouteTableAssociation,
    IntentKind.EIP: aws.ec2.Eip,
    IntentKind.NAT_GATEWAY: aws.ec2.NatGateway,
    IntentKind.DB_SUBNET_GROUP: aws.rds.SubnetGroup,
    IntentKind.ELASTICACHE_SUBNET_GROUP: aws.elasticache.SubnetGroup,
    IntentKind.REDSHIFT_SUBNET_GROUP: aws.redshift.SubnetGroup,
    IntentKind.NETWORK_ACL: aws.ec2.NetworkAcl,
    IntentKind.NETWORK_ACL_RULE: aws.ec2.NetworkAclRule,
    IntentKind.VPN_GATEWAY: aws.ec2.VpnGateway,
    IntentKind.VPN_GATEWAY_ATTACHMENT: aws.ec2.VpnGatewayAttachment,
    IntentKind.VPN_GATEWAY_ROUTE_PROPAGATION: aws.ec2.VpnGatewayRoutePropagation,
    IntentKind.LOG_GROUP: aws.cloudwatch.LogGroup,
    IntentKind.IAM_ROLE: aws.iam.Role,
    IntentKind.IAM_ROLE_POLICY: aws.iam.RolePolicy,
    IntentKind.FLOW_LOG: aws.ec2.FlowLog,
}


def _flow_log_args(kwargs: dict[str, Any]) -> dict[str, Any]:
    options = kwargs.pop("destination_options", None)
    if options:
        kwargs["destination_options"] = aws.ec2.FlowLogDestinationOptionsArgs(**options)
    return kwargs


ARGUMENT_ADAPTERS: dict[IntentKind, Callable[[dict[str, Any]], dict[str, Any]]] = {
    IntentKind.FLOW_LOG: _flow_log_args,
}


class TieredVpc(pulumi.ComponentResource):
    """Multi-tier VPC built from a pre-computed ``Plan``.

    Resources are created in ``build_intents`` order so every reference
    resolves to a resource that already exists in this component.
    """

    def __init__(
        self,
        name: str,
        plan: Plan,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("vpc-topology:index:TieredVpc", name, None, opts)

        self.plan = plan
        self.resources: dict[str, pulumi.CustomResource] = {}
        child_opts = pulumi.ResourceOptions(parent=self)

        intents = build_intents(plan)
        for intent in intents:
            self.resources[intent.key] = self._create(name, intent, child_opts)
        logger.info(f"Registered {len(intents)} resource(s) for VPC '{plan.name}'")

        vpc = self.resources.get("vpc")
        self.vpc_id = vpc.id if vpc else None
        self.vpc_arn = vpc.arn if vpc else None
        self.vpc_cidr_block = vpc.cidr_block if vpc else None
        self.vpc_ipv6_cidr_block = vpc.ipv6_cidr_block if vpc else None

        igw = self.resources.get("igw")
        self.igw_id = igw.id if igw else None
        eigw = self.resources.get("eigw")
        self.egress_only_igw_id = eigw.id if eigw else None
        dhcp = self.resources.get("dhcp")
        self.dhcp_options_id = dhcp.id if dhcp else None

        self.subnet_ids: dict[str, pulumi.Output] = {}
        self.route_table_ids: dict[str, pulumi.Output] = {}
        for tier in plan.tiers():
            self.subnet_ids[tier] = pulumi.Output.all(
                *[self.resources[subnet_key(tier, s.ordinal)].id for s in plan.subnets_for(tier)]
            )
            tables = plan.route_tables_for(tier)
            if tables:
                self.route_table_ids[tier] = pulumi.Output.all(
                    *[self.resources[route_table_key(tier, rt.ordinal)].id for rt in tables]
                )

        self.nat_gateway_ids = pulumi.Output.all(
            *[self.resources[f"natgw-{nat.ordinal}"].id for nat in plan.nat_gateways]
        )
        self.nat_public_ips = pulumi.Output.all(*[self._nat_public_ip(nat) for nat in plan.nat_gateways])

        self.subnet_group_names = {
            group.tier: self.resources[f"{group.tier}-subnet-group"].name
            for group in plan.subnet_groups
        }

        self.vpn_gateway_id = None
        if plan.vpn_gateway is not None and plan.vpc is not None:
            if plan.vpn_gateway.existing_gateway_id:
                self.vpn_gateway_id = pulumi.Output.from_input(plan.vpn_gateway.existing_gateway_id)
            else:
                self.vpn_gateway_id = self.resources["vpn"].id

        flow_log = self.resources.get("flow-log")
        self.flow_log_id = flow_log.id if flow_log else None

        self.register_outputs(
            {
                "vpc_id": self.vpc_id,
                "vpc_arn": self.vpc_arn,
                "igw_id": self.igw_id,
                "subnet_ids": self.subnet_ids,
                "route_table_ids": self.route_table_ids,
                "nat_gateway_ids": self.nat_gateway_ids,
                "nat_public_ips": self.nat_public_ips,
                "subnet_group_names": self.subnet_group_names,
                "vpn_gateway_id": self.vpn_gateway_id,
                "flow_log_id": self.flow_log_id,
            }
        )

    def _resolve(self, ref: Ref) -> Any:
        try:
            resource = self.resources[ref.key]
        except KeyError as e:
            raise ValueError(f"Reference to '{ref.key}' before it was created") from e
        value = getattr(resource, ref.attribute)
        if ref.ipv6_prefix is not None:
            return ipv6_cidr_output(value, ref.ipv6_prefix)
        return value

    def _create(
        self, name: str, intent: ResourceIntent, opts: pulumi.ResourceOptions
    ) -> pulumi.CustomResource:
        kwargs: dict[str, Any] = dict(intent.properties)
        for arg, ref in intent.refs.items():
            if isinstance(ref, tuple):
                kwargs[arg] = [self._resolve(r) for r in ref]
            else:
                kwargs[arg] = self._resolve(ref)

        adapter = ARGUMENT_ADAPTERS.get(intent.kind)
        if adapter:
            kwargs = adapter(kwargs)

        factory = RESOURCE_FACTORIES[intent.kind]
        return factory(f"{name}-{intent.key}", opts=opts, **kwargs)

    def _nat_public_ip(self, nat: NatPlan) -> Any:
        if nat.ip_source is IpSource.NEW_ELASTIC_IP:
            return self.resources[f"nat-eip-{nat.ordinal}"].public_ip
        # Reused allocations only expose an IP when one was configured.
        return nat.public_ip
