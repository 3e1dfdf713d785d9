"""Tests for the vpc-plan preview CLI."""

import json
import os
from pathlib import Path

import pytest

from plan_cli import load_spec_file, main

SAMPLE_SPEC = os.path.join(os.path.dirname(__file__), "..", "samples", "three-tier.json")


def test_text_output_for_sample(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--spec", SAMPLE_SPEC]) == 0

    out = capsys.readouterr().out
    assert out.startswith("VPC plan: demo")
    assert "[database] 2 subnet(s)" in out
    assert "NAT strategy: onePerAz" in out


def test_json_output_includes_intents(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--spec", SAMPLE_SPEC, "--format", "json"]) == 0

    document = json.loads(capsys.readouterr().out)
    assert len(document["nat_gateways"]) == 3
    assert document["intents"][0] == {"kind": "vpc", "key": "vpc", "depends_on": []}
    keys = [intent["key"] for intent in document["intents"]]
    assert "database-nacl-ingress-0" in keys
    assert "database-subnet-group" in keys


def test_name_override(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--spec", SAMPLE_SPEC, "--name", "other"]) == 0
    assert capsys.readouterr().out.startswith("VPC plan: other")


def test_invalid_spec_returns_1(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    spec_file = tmp_path / "bad.json"
    spec_file.write_text(json.dumps({"name": "demo", "public_subnets": {"cidrs": []}}))

    assert main(["--spec", str(spec_file)]) == 1
    assert "Planning failed: Unknown public_subnets setting(s): cidrs" in caplog.text


def test_missing_file_returns_1(tmp_path: Path) -> None:
    assert main(["--spec", str(tmp_path / "absent.json")]) == 1


def test_load_spec_file_rejects_non_object(tmp_path: Path) -> None:
    spec_file = tmp_path / "list.json"
    spec_file.write_text("[]")

    with pytest.raises(ValueError, match="must contain a JSON object"):
        load_spec_file(str(spec_file))


def test_load_spec_file_rejects_bad_json(tmp_path: Path) -> None:
    spec_file = tmp_path / "broken.json"
    spec_file.write_text("{")

    with pytest.raises(ValueError, match="is not valid JSON"):
        load_spec_file(str(spec_file))
