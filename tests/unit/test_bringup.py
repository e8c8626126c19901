"""Tests for environment bring-up."""

from __future__ import annotations

import json
from datetime import datetime
from unittest.mock import Mock

from botocore.exceptions import WaiterError

from labenv.bringup import EnvironmentBringUp, prepare_variables
from labenv.config import Config
from labenv.tagging import TFVARS_FILENAME
from labenv.terraform.runner import TerraformResult


def _ok(returncode: int = 0) -> TerraformResult:
    return TerraformResult(command=["terraform"], returncode=returncode, output="")


def _config(tmp_path, **overrides) -> Config:
    config = Config(terraform_dir=str(tmp_path), environment="dev", region="us-east-1", aws_profile="lab")
    config.update(overrides)
    return config


class TestPrepareVariables:
    """Test suite for prepare_variables."""

    def test_writes_tags_and_variables(self, tmp_path) -> None:
        config = _config(tmp_path, owner="alice", ttl_hours=8)

        prepare_variables(config, extra_tags={"CostCenter": "42"}, now=datetime(2026, 10, 19, 12, 0, 0))

        data = json.loads((tmp_path / TFVARS_FILENAME).read_text())
        assert data["environment"] == "dev"
        assert data["region"] == "us-east-1"
        assert data["default_tags"]["Owner"] == "alice"
        assert data["default_tags"]["ExpiresAt"] == "2026-10-19T20:00:00Z"
        assert data["default_tags"]["CostCenter"] == "42"


class TestEnvironmentBringUp:
    """Test suite for EnvironmentBringUp.run."""

    def test_staged_applies_then_full_apply(self, tmp_path) -> None:
        """Test init, each staged target, full apply, cluster wait and kubeconfig run in order."""
        order = Mock()
        order.init.return_value = _ok()
        order.apply.return_value = _ok()
        order.kubeconfig.return_value = 0
        runner = Mock(init=order.init, apply=order.apply)
        config = _config(tmp_path, staged_targets=["module.vpc", "module.eks"])

        code = EnvironmentBringUp(config, runner, wait_for_cluster=order.wait, kubeconfig=order.kubeconfig).run()

        assert code == 0
        assert [c[0] for c in order.mock_calls] == ["init", "apply", "apply", "apply", "wait", "kubeconfig"]
        assert order.apply.call_args_list[0].kwargs == {"target": "module.vpc"}
        assert order.apply.call_args_list[1].kwargs == {"target": "module.eks"}
        assert order.apply.call_args_list[2].kwargs == {}
        order.wait.assert_called_once_with("dev-eks", "us-east-1", "lab")
        order.kubeconfig.assert_called_once_with("dev-eks", "us-east-1", "lab")

    def test_stops_on_first_failure(self, tmp_path) -> None:
        runner = Mock()
        runner.init.return_value = _ok()
        runner.apply.side_effect = [_ok(), _ok(3)]
        wait = Mock()

        code = EnvironmentBringUp(_config(tmp_path), runner, wait_for_cluster=wait, kubeconfig=Mock()).run()

        assert code == 3
        assert runner.apply.call_count == 2
        wait.assert_not_called()

    def test_init_failure(self, tmp_path) -> None:
        runner = Mock()
        runner.init.return_value = _ok(1)

        code = EnvironmentBringUp(_config(tmp_path), runner, wait_for_cluster=Mock(), kubeconfig=Mock()).run()

        assert code == 1
        runner.apply.assert_not_called()

    def test_cluster_never_active(self, tmp_path) -> None:
        runner = Mock()
        runner.init.return_value = _ok()
        runner.apply.return_value = _ok()
        wait = Mock(side_effect=WaiterError("ClusterActive", "Max attempts exceeded", {}))
        kubeconfig = Mock()

        code = EnvironmentBringUp(_config(tmp_path), runner, wait_for_cluster=wait, kubeconfig=kubeconfig).run()

        assert code == 1
        kubeconfig.assert_not_called()

    def test_kubeconfig_status_returned(self, tmp_path) -> None:
        runner = Mock()
        runner.init.return_value = _ok()
        runner.apply.return_value = _ok()

        code = EnvironmentBringUp(
            _config(tmp_path), runner, wait_for_cluster=Mock(), kubeconfig=Mock(return_value=127)
        ).run()

        assert code == 127
