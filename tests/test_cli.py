"""
Tests for the command line entrypoint: flag parsing, mode selection and exit codes.
"""

import logging
import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from conftest import FakeRegistry, FakeWorkload
from ecr_reaper import cli
from ecr_reaper.classifier import ImageRecord
from ecr_reaper.error_utils import ActionableError, ErrorCategory

ENV_VARS = ("AWS_REGION", "STALE_DAYS", "SCAN_MODE", "K8S_NAMESPACE", "LOG_LEVEL", "CONFIG_FILE")


@pytest.fixture(autouse=True)
def clean_env(mocker, tmp_path):
    """Isolate from the developer's environment and any config.yaml in the cwd"""
    mocker.patch.dict(os.environ, {}, clear=False)
    for name in ENV_VARS:
        os.environ.pop(name, None)
    os.environ["CONFIG_FILE"] = str(tmp_path / "missing.yaml")
    mocker.patch("ecr_reaper.cli.set_log_level")


@pytest.fixture
def fake_registry(mocker):
    registry = FakeRegistry({
        "app": [
            ImageRecord(digest="sha256:never", repository="app", size_bytes=1073741824),
            ImageRecord(digest="sha256:old", repository="app", size_bytes=536870912,
                        last_pulled=datetime(2000, 1, 1, tzinfo=timezone.utc)),
        ],
    })
    mock_cls = mocker.patch("ecr_reaper.cli.EcrRegistryClient", return_value=registry)
    return registry, mock_cls


class TestParseArguments:
    """Tests for parse_arguments()"""

    def test_defaults_are_unset(self):
        args = cli.parse_arguments([])
        assert args.days is None
        assert args.region is None
        assert args.mode is None

    def test_single_dash_flags(self):
        args = cli.parse_arguments(["-days", "30", "-region", "eu-west-1", "-mode", "k8s"])
        assert args.days == 30
        assert args.region == "eu-west-1"
        assert args.mode == "k8s"

    def test_double_dash_aliases(self):
        args = cli.parse_arguments(["--days", "7", "--region", "us-west-2", "--mode", "ecr"])
        assert (args.days, args.region, args.mode) == (7, "us-west-2", "ecr")

    def test_region_help_mentions_environment(self, capsys):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["--help"])
        assert "AWS_REGION" in capsys.readouterr().out

    def test_invalid_mode_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.parse_arguments(["-mode", "gke"])
        assert exc_info.value.code == 2

    @pytest.mark.parametrize("value", ["-3", "ten", "1.5"])
    def test_invalid_days_exits(self, value):
        with pytest.raises(SystemExit) as exc_info:
            cli.parse_arguments([f"-days={value}"])
        assert exc_info.value.code == 2


class TestMain:
    """Tests for main()"""

    def test_ecr_mode_reports_totals(self, fake_registry, caplog):
        registry, mock_cls = fake_registry

        with caplog.at_level(logging.INFO):
            exit_code = cli.main(["-days", "30", "-region", "eu-west-1"])

        assert exit_code == 0
        mock_cls.assert_called_once_with(region="eu-west-1")
        messages = [r.getMessage() for r in caplog.records]
        assert "Total size of images never pulled: 1.00 GB" in messages
        assert "Total size of images older than 30 days: 0.50 GB" in messages

    def test_huge_days_reports_nothing_stale(self, fake_registry, caplog):
        with caplog.at_level(logging.INFO):
            exit_code = cli.main(["-days", "1000000"])

        assert exit_code == 0
        messages = [r.getMessage() for r in caplog.records]
        assert "Total size of images never pulled: 1.00 GB" in messages
        assert "Total size of images older than 1000000 days: 0.00 GB" in messages

    def test_region_from_environment_when_flag_unset(self, fake_registry, mocker):
        _, mock_cls = fake_registry
        os.environ["AWS_REGION"] = "ap-south-1"

        assert cli.main([]) == 0
        mock_cls.assert_called_once_with(region="ap-south-1")

    def test_default_flags(self, fake_registry, mocker):
        _, mock_cls = fake_registry
        mock_scanner_cls = mocker.patch("ecr_reaper.cli.StaleImageScanner")
        mocker.patch("ecr_reaper.cli.log_summary")

        assert cli.main([]) == 0

        mock_cls.assert_called_once_with(region="us-east-1")
        _, kwargs = mock_scanner_cls.call_args
        assert kwargs["days"] == 365
        assert kwargs["workload"] is None

    def test_k8s_mode_uses_workload_client(self, fake_registry, mocker, make_pod, caplog):
        workload = FakeWorkload([make_pod("acct.dkr.ecr.us-east-1.amazonaws.com/app@sha256:never")])
        mock_workload_cls = mocker.patch("ecr_reaper.cli.KubernetesWorkloadClient", return_value=workload)

        with caplog.at_level(logging.INFO):
            exit_code = cli.main(["-mode", "k8s", "--namespace", "prod"])

        assert exit_code == 0
        mock_workload_cls.assert_called_once_with(namespace="prod")
        messages = [r.getMessage() for r in caplog.records]
        assert "Total size of images never pulled: 0.00 GB" in messages

    def test_ecr_mode_never_touches_kubernetes(self, fake_registry, mocker):
        mock_workload_cls = mocker.patch("ecr_reaper.cli.KubernetesWorkloadClient")

        cli.main(["-mode", "ecr"])

        mock_workload_cls.assert_not_called()

    def test_registry_error_exits_non_zero(self, mocker, caplog):
        error = ActionableError("ECR operation failed: describe repositories", ErrorCategory.AUTHENTICATION)
        registry = MagicMock()
        registry.list_repositories.side_effect = error
        mocker.patch("ecr_reaper.cli.EcrRegistryClient", return_value=registry)

        with caplog.at_level(logging.ERROR):
            exit_code = cli.main([])

        assert exit_code == 1
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert any("describe repositories" in r.getMessage() for r in errors)

    def test_session_failure_exits_non_zero(self, mocker):
        mocker.patch(
            "ecr_reaper.cli.EcrRegistryClient",
            side_effect=ActionableError("ECR operation failed: create AWS session in us-east-1"),
        )
        assert cli.main([]) == 1

    def test_cluster_config_failure_exits_non_zero(self, fake_registry, mocker):
        mocker.patch(
            "ecr_reaper.cli.KubernetesWorkloadClient",
            side_effect=ActionableError("Failed to load Kubernetes configuration", ErrorCategory.CONFIGURATION),
        )
        registry, _ = fake_registry
        spy = mocker.spy(registry, "list_repositories")

        assert cli.main(["-mode", "k8s"]) == 1
        spy.assert_not_called()

    def test_invalid_config_exits_non_zero(self, tmp_path, caplog):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("scan:\n  mode: swarm\n")

        with caplog.at_level(logging.ERROR):
            exit_code = cli.main(["--config", str(config_path)])

        assert exit_code == 1
        assert any("Invalid mode: swarm" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("content", ["aws:\n", "scan: 5\n"])
    def test_non_mapping_config_section_exits_non_zero(self, tmp_path, caplog, content):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(content)

        with caplog.at_level(logging.ERROR):
            exit_code = cli.main(["--config", str(config_path)])

        assert exit_code == 1
        assert any("must be a mapping" in r.getMessage() for r in caplog.records)

    def test_unexpected_error_exits_non_zero(self, mocker):
        registry = MagicMock()
        registry.list_repositories.side_effect = RuntimeError("boom")
        mocker.patch("ecr_reaper.cli.EcrRegistryClient", return_value=registry)

        assert cli.main([]) == 1

    def test_output_file_writes_report(self, fake_registry, tmp_path):
        base = tmp_path / "reports" / "stale"

        assert cli.main(["--output-file", str(base)]) == 0

        assert (tmp_path / "reports" / "stale.txt").exists()
        assert (tmp_path / "reports" / "stale.json").exists()

    def test_flags_override_config_file(self, fake_registry, tmp_path, mocker):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("scan:\n  days: 90\naws:\n  region: eu-west-1\n")
        mock_scanner_cls = mocker.patch("ecr_reaper.cli.StaleImageScanner")
        mocker.patch("ecr_reaper.cli.log_summary")
        _, mock_registry_cls = fake_registry

        assert cli.main(["--config", str(config_path), "-days", "10"]) == 0

        assert mock_scanner_cls.call_args.kwargs["days"] == 10
        mock_registry_cls.assert_called_once_with(region="eu-west-1")
