"""Multi-tier VPC topology stack.

This stack provisions one VPC and everything hanging off it:
  - Subnet tiers (public, private, database, elasticache, redshift, intra, outpost)
  - Route tables and routes to the internet / NAT / egress-only gateways
  - NAT gateways with new or reused Elastic IPs
  - Dedicated network ACLs, DB / cache / Redshift subnet groups
  - Optional DHCP options, VPN gateway and VPC flow logs

The whole topology is planned up front from the ``network`` config object;
Pulumi only sees the resulting resources.
"""

import pulumi

from network_spec import network_spec_from_config
from plan_report import render_plan_summary
from provisioner import TieredVpc
from topology_assembler import assemble_plan

config = pulumi.Config()

# set via: pulumi config set --path network.azs[0] us-east-1a --stack dev
# (or pulumi config set-all --json / edit Pulumi.<stack>.yaml for the full object)
network_config = config.require_object("network")
# set via: pulumi config set name demo --stack dev
network_name = config.get("name") or pulumi.get_stack()

spec = network_spec_from_config(network_config, name=network_name)
plan = assemble_plan(spec)

vpc = TieredVpc(network_name, plan)

pulumi.export("vpc_id", vpc.vpc_id)
pulumi.export("vpc_arn", vpc.vpc_arn)
pulumi.export("vpc_cidr_block", vpc.vpc_cidr_block)
pulumi.export("igw_id", vpc.igw_id)
pulumi.export("subnet_ids", vpc.subnet_ids)
pulumi.export("route_table_ids", vpc.route_table_ids)
pulumi.export("nat_gateway_ids", vpc.nat_gateway_ids)
pulumi.export("nat_public_ips", vpc.nat_public_ips)
pulumi.export("subnet_group_names", vpc.subnet_group_names)
pulumi.export("vpn_gateway_id", vpc.vpn_gateway_id)
pulumi.export("flow_log_id", vpc.flow_log_id)
pulumi.export("plan_summary", render_plan_summary(plan))
