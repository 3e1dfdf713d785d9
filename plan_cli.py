#!/usr/bin/env python3
"""Preview a VPC topology plan from a JSON network spec.

Usage:
    vpc-plan --spec samples/three-tier.json
    vpc-plan --spec network.json --format json

The spec file uses the same shape as the ``network`` stack config value.
Nothing is provisioned; the planner runs offline.
"""

import json
import logging
import sys
from typing import Optional, Sequence

from network_spec import network_spec_from_config
from plan_report import plan_to_dict, render_plan_summary
from topology_assembler import assemble_plan, build_intents

logger = logging.getLogger(__name__)


def load_spec_file(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            raw = json.load(handle)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return raw


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the plan preview CLI."""
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Preview a multi-tier VPC topology plan")
    parser.add_argument("--spec", required=True, help="Path to a JSON network spec")
    parser.add_argument(
        "--name",
        default=None,
        help="Override the network name from the spec file",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    args = parser.parse_args(argv)

    try:
        spec = network_spec_from_config(load_spec_file(args.spec), name=args.name)
        plan = assemble_plan(spec)
    except (OSError, ValueError) as e:
        logger.error(f"Planning failed: {e}")
        return 1

    if args.format == "json":
        document = plan_to_dict(plan)
        document["intents"] = [
            {"kind": intent.kind.value, "key": intent.key, "depends_on": intent.depends_on()}
            for intent in build_intents(plan)
        ]
        print(json.dumps(document, indent=2))
    else:
        print(render_plan_summary(plan), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
