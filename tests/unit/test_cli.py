"""Tests for the click-based CLI."""

import json
import logging
import os
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from spacebridge.cli.commands import cli, handle_exception
from spacebridge.core.config import load_settings
from spacebridge.core.manifest import Manifest, save_manifest
from spacebridge.exceptions import (
    AggregateFailure,
    APIError,
    ConfigurationError,
    ResolutionError,
)
from spacebridge.models import Space

SOURCE_ENV = {
    "SOURCE_SPACELIFT_URL": "https://old.app.spacelift.io",
    "SOURCE_SPACELIFT_KEY_ID": "key",
    "SOURCE_SPACELIFT_SECRET_KEY": "secret",
}
DESTINATION_ENV = {
    "DESTINATION_SPACELIFT_URL": "https://new.app.spacelift.io",
    "DESTINATION_SPACELIFT_KEY_ID": "key2",
    "DESTINATION_SPACELIFT_SECRET_KEY": "secret2",
}


def _settings(destination=False):
    env = dict(SOURCE_ENV)
    if destination:
        env.update(DESTINATION_ENV)
    return load_settings(environ=env)


def _wire_stack(name, access=True, managed=True, disabled=False, space="prod"):
    return {
        "id": f"id-{name}",
        "name": name,
        "space": space,
        "managesStateFile": managed,
        "isDisabled": disabled,
        "vendorConfig": {
            "__typename": "StackConfigVendorTerraform",
            "externalStateAccessEnabled": access,
        },
    }


def _make_adapter(stacks=None, url="https://old.app.spacelift.io"):
    adapter = MagicMock()
    adapter.url = url
    adapter.list_spaces.return_value = [
        {"id": "root", "name": "root"},
        {"id": "prod", "name": "prod", "parentSpace": "root"},
        {"id": "dev", "name": "dev", "parentSpace": "root"},
    ]
    adapter.list_stacks.return_value = stacks if stacks is not None else [
        _wire_stack("vpc"),
        _wire_stack("closed", access=False),
        _wire_stack("sandbox", space="dev"),
    ]
    adapter.list_contexts.return_value = [
        {
            "id": "ctx",
            "name": "ctx",
            "space": "prod",
            "config": [{"id": "TOKEN", "type": "ENVIRONMENT_VARIABLE", "writeOnly": True}],
        }
    ]
    adapter.list_policies.return_value = []
    adapter.list_aws_integrations.return_value = []
    adapter.list_azure_integrations.return_value = []
    return adapter


class TestCLIGroup:
    """Tests for the CLI group structure."""

    def test_cli_has_all_subcommands(self):
        assert set(cli.commands.keys()) == {
            "discover",
            "export",
            "generate",
            "state",
            "stacks",
        }

    def test_version_flag(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "spacebridge" in result.output

    def test_short_help_flag(self):
        result = CliRunner().invoke(cli, ["-h"])
        assert result.exit_code == 0
        assert "generate" in result.output

    def test_state_help_lists_subcommands(self):
        result = CliRunner().invoke(cli, ["state", "--help"])
        assert result.exit_code == 0
        for name in ("plan", "enable-access", "migrate"):
            assert name in result.output

    def test_common_options_on_every_command(self):
        result = CliRunner().invoke(cli, ["state", "migrate", "--help"])
        for opt in ("--env-file", "--verbose", "--debug_api", "--dry-run", "--space"):
            assert opt in result.output


# ---------------------------------------------------------------------------
# discover / export
# ---------------------------------------------------------------------------


class TestDiscoverCommands:
    def test_discover_spaces(self):
        with patch("spacebridge.cli.discover_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.discover_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["discover", "spaces"])

        assert result.exit_code == 0
        assert "Spaces (3)" in result.output
        assert "├── dev" in result.output
        assert "└── prod" in result.output

    def test_discover_all(self):
        with patch("spacebridge.cli.discover_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.discover_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["discover", "all"])

        assert result.exit_code == 0
        assert "Stacks (3)" in result.output
        assert "ctx: TOKEN" in result.output
        assert "Discovery summary" in result.output

    def test_missing_credentials_exit_nonzero(self):
        with patch(
            "spacebridge.cli.discover_cmd.load_settings",
            return_value=load_settings(environ={}),
        ):
            result = CliRunner().invoke(cli, ["discover", "stacks"])

        assert result.exit_code == 1


class TestExportCommand:
    def test_export_writes_manifest(self, tmp_path):
        output = tmp_path / "manifest.json"
        with patch("spacebridge.cli.export_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.export_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["export", "-o", str(output)])

        assert result.exit_code == 0
        assert "Manifest exported to:" in result.output
        data = json.loads(output.read_text())
        assert data["sourceUrl"] == "https://old.app.spacelift.io"
        assert len(data["stacks"]) == 3

    def test_export_scoped_to_space(self, tmp_path):
        output = tmp_path / "manifest.json"
        with patch("spacebridge.cli.export_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.export_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["export", "-o", str(output), "-s", "dev"])

        assert result.exit_code == 0
        data = json.loads(output.read_text())
        assert [s["name"] for s in data["stacks"]] == ["sandbox"]

    def test_unknown_space(self, tmp_path):
        with patch("spacebridge.cli.export_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.export_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(
                cli, ["export", "-o", str(tmp_path / "m.json"), "-s", "staging"]
            )

        assert result.exit_code == 1
        assert not (tmp_path / "m.json").exists()


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerateCommand:
    def test_generate_from_manifest_file(self, sample_manifest, tmp_path):
        manifest_path = save_manifest(sample_manifest, tmp_path / "manifest.json")
        out = tmp_path / "generated"
        with patch(
            "spacebridge.cli.generate_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.generate_cmd.connect") as mock_connect:
            result = CliRunner().invoke(
                cli, ["generate", "-m", str(manifest_path), "-o", str(out), "--disabled"]
            )

        assert result.exit_code == 0, result.output
        mock_connect.assert_not_called()
        assert (out / "main.tf").exists()
        assert "https://new.app.spacelift.io" in (out / "provider.tf").read_text()
        assert "Safe migration mode enabled" in result.output
        assert "1 secret values require manual entry" in result.output

    def test_generate_with_vcs_config(self, sample_manifest, tmp_path):
        manifest_path = save_manifest(sample_manifest, tmp_path / "manifest.json")
        config_path = tmp_path / "migration.yaml"
        config_path.write_text(
            "destination:\n  vcs:\n    gitlab:\n      id: gl\n      namespace: platform\n"
        )
        out = tmp_path / "generated"
        with patch("spacebridge.cli.generate_cmd.load_settings", return_value=_settings()):
            result = CliRunner().invoke(
                cli,
                ["generate", "-m", str(manifest_path), "-o", str(out), "-c", str(config_path)],
            )

        assert result.exit_code == 0, result.output
        assert 'namespace = "platform"' in (out / "main.tf").read_text()

    def test_generate_empty_space_fails(self, tmp_path):
        manifest = Manifest(
            spaces=(
                Space(id="root", name="root"),
                Space(id="empty", name="empty", parent_space="root"),
            ),
        )
        manifest_path = save_manifest(manifest, tmp_path / "manifest.json")
        with patch("spacebridge.cli.generate_cmd.load_settings", return_value=_settings()):
            result = CliRunner().invoke(
                cli,
                ["generate", "-m", str(manifest_path), "-o", str(tmp_path / "g"), "-s", "empty"],
            )

        assert result.exit_code == 1
        assert not (tmp_path / "g").exists()

    def test_generate_discovers_when_no_manifest(self, tmp_path):
        with patch("spacebridge.cli.generate_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.generate_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["generate", "-o", str(tmp_path / "g")])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "g" / "variables.tf").exists()

    def test_missing_manifest_file(self, tmp_path):
        with patch("spacebridge.cli.generate_cmd.load_settings", return_value=_settings()):
            result = CliRunner().invoke(cli, ["generate", "-m", str(tmp_path / "nope.json")])

        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# state
# ---------------------------------------------------------------------------


class TestStateCommands:
    def test_plan_without_destination(self):
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=_make_adapter()
        ) as mock_connect:
            result = CliRunner().invoke(cli, ["state", "plan"])

        assert result.exit_code == 0, result.output
        assert mock_connect.call_count == 1
        assert "READY TO MIGRATE (2 stacks)" in result.output
        assert "External State Access Disabled (1 stacks)" in result.output

    def test_plan_with_destination(self):
        source = _make_adapter()
        destination = _make_adapter(stacks=[_wire_stack("vpc")])
        with patch(
            "spacebridge.cli.state_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.state_cmd.connect", side_effect=[source, destination]):
            result = CliRunner().invoke(cli, ["state", "plan"])

        assert result.exit_code == 0, result.output
        assert "READY TO MIGRATE (1 stacks)" in result.output
        assert "Not In Destination (1 stacks)" in result.output

    def test_migrate_requires_destination(self, tmp_path):
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect"
        ) as mock_connect:
            result = CliRunner().invoke(
                cli, ["state", "migrate", "--report-dir", str(tmp_path / "reports")]
            )

        assert result.exit_code == 1
        mock_connect.assert_not_called()
        assert not (tmp_path / "reports").exists()

    def test_migrate_dry_run(self, tmp_path):
        source = _make_adapter()
        destination = _make_adapter(stacks=[_wire_stack("vpc")])
        with patch(
            "spacebridge.cli.state_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.state_cmd.connect", side_effect=[source, destination]):
            result = CliRunner().invoke(
                cli,
                ["state", "migrate", "--dry-run", "--report-dir", str(tmp_path)],
            )

        assert result.exit_code == 0, result.output
        assert "DRY RUN - No changes made" in result.output
        source.get_state_download_url.assert_not_called()
        destination.get_state_upload_url.assert_not_called()
        destination.lock_stack.assert_not_called()
        destination.import_managed_state.assert_not_called()
        (run_dir,) = os.listdir(tmp_path)
        assert os.path.exists(tmp_path / run_dir / "state_migration_report.yaml")
        assert "Output directory" in (tmp_path / run_dir / "migration.log").read_text()

    def test_migrate_failure_exits_nonzero(self, tmp_path):
        source = _make_adapter()
        source.get_state_download_url.side_effect = APIError("GraphQL error: denied")
        destination = _make_adapter(stacks=[_wire_stack("vpc")])
        with patch(
            "spacebridge.cli.state_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.state_cmd.connect", side_effect=[source, destination]):
            result = CliRunner().invoke(
                cli, ["state", "migrate", "--report-dir", str(tmp_path), "-v"]
            )

        assert result.exit_code == 1
        assert "Migration complete: 0 succeeded, 1 failed" in result.output
        destination.lock_stack.assert_not_called()

    def test_migrate_scoped_to_space(self, tmp_path):
        names = ["vpc", "root-admin", "sandbox"]
        source = _make_adapter(
            stacks=[
                _wire_stack("vpc"),
                _wire_stack("root-admin", space="root"),
                _wire_stack("sandbox", space="dev"),
            ]
        )
        destination = _make_adapter(stacks=[_wire_stack(name) for name in names])
        with patch(
            "spacebridge.cli.state_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.state_cmd.connect", side_effect=[source, destination]):
            result = CliRunner().invoke(
                cli,
                ["state", "migrate", "--dry-run", "-s", "prod", "--report-dir", str(tmp_path)],
            )

        assert result.exit_code == 0, result.output
        assert "READY TO MIGRATE (1 stacks)" in result.output
        assert "• vpc" in result.output
        assert "root-admin" not in result.output
        assert "sandbox" not in result.output
        destination.lock_stack.assert_not_called()

    def test_plan_scoped_to_parent_space_excludes_children(self):
        source = _make_adapter(
            stacks=[_wire_stack("vpc"), _wire_stack("root-admin", space="root")]
        )
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=source
        ):
            result = CliRunner().invoke(cli, ["state", "plan", "-s", "root"])

        assert result.exit_code == 0, result.output
        assert "READY TO MIGRATE (1 stacks)" in result.output
        assert "• root-admin" in result.output
        assert "vpc" not in result.output

    def test_plan_unknown_space(self):
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=_make_adapter()
        ):
            result = CliRunner().invoke(cli, ["state", "plan", "-s", "staging"])

        assert result.exit_code == 1

    def test_enable_access_scoped_to_space(self):
        source = _make_adapter(
            stacks=[
                _wire_stack("closed", access=False),
                _wire_stack("root-closed", access=False, space="root"),
            ]
        )
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=source
        ):
            result = CliRunner().invoke(cli, ["state", "enable-access", "-s", "prod"])

        assert result.exit_code == 0, result.output
        (stack,) = source.enable_external_state_access.call_args.args
        assert stack.name == "closed"
        assert source.enable_external_state_access.call_count == 1

    def test_enable_access(self):
        source = _make_adapter()
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=source
        ):
            result = CliRunner().invoke(cli, ["state", "enable-access"])

        assert result.exit_code == 0, result.output
        source.enable_external_state_access.assert_called_once()
        (stack,) = source.enable_external_state_access.call_args.args
        assert stack.name == "closed"
        assert "Results: 1 enabled, 0 failed" in result.output

    def test_enable_access_nothing_to_do(self):
        source = _make_adapter(stacks=[_wire_stack("vpc")])
        with patch("spacebridge.cli.state_cmd.load_settings", return_value=_settings()), patch(
            "spacebridge.cli.state_cmd.connect", return_value=source
        ):
            result = CliRunner().invoke(cli, ["state", "enable-access"])

        assert result.exit_code == 0
        assert "already have external access enabled" in result.output
        source.enable_external_state_access.assert_not_called()


# ---------------------------------------------------------------------------
# stacks
# ---------------------------------------------------------------------------


class TestStacksEnable:
    def test_enables_disabled_stacks(self):
        destination = _make_adapter(
            stacks=[_wire_stack("vpc", disabled=True), _wire_stack("dns")]
        )
        with patch(
            "spacebridge.cli.stacks_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.stacks_cmd.connect", return_value=destination):
            result = CliRunner().invoke(cli, ["stacks", "enable"])

        assert result.exit_code == 0, result.output
        destination.enable_stack.assert_called_once()
        assert "Found 1 disabled stacks" in result.output

    def test_partial_failure_exits_nonzero(self):
        destination = _make_adapter(
            stacks=[_wire_stack("a", disabled=True), _wire_stack("b", disabled=True)]
        )
        destination.enable_stack.side_effect = [None, APIError("denied")]
        with patch(
            "spacebridge.cli.stacks_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.stacks_cmd.connect", return_value=destination):
            result = CliRunner().invoke(cli, ["stacks", "enable"])

        assert result.exit_code == 1
        assert destination.enable_stack.call_count == 2

    def test_dry_run(self):
        destination = _make_adapter(stacks=[_wire_stack("vpc", disabled=True)])
        with patch(
            "spacebridge.cli.stacks_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.stacks_cmd.connect", return_value=destination):
            result = CliRunner().invoke(cli, ["stacks", "enable", "--dry-run"])

        assert result.exit_code == 0
        destination.enable_stack.assert_not_called()

    def test_scoped_to_space(self):
        destination = _make_adapter(
            stacks=[
                _wire_stack("vpc", disabled=True),
                _wire_stack("root-admin", disabled=True, space="root"),
                _wire_stack("sandbox", disabled=True, space="dev"),
            ]
        )
        with patch(
            "spacebridge.cli.stacks_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.stacks_cmd.connect", return_value=destination):
            result = CliRunner().invoke(cli, ["stacks", "enable", "-s", "prod"])

        assert result.exit_code == 0, result.output
        assert "Found 1 disabled stacks" in result.output
        (stack,) = destination.enable_stack.call_args.args
        assert stack.name == "vpc"
        assert destination.enable_stack.call_count == 1

    def test_no_disabled_stacks(self):
        destination = _make_adapter(stacks=[_wire_stack("vpc")])
        with patch(
            "spacebridge.cli.stacks_cmd.load_settings", return_value=_settings(destination=True)
        ), patch("spacebridge.cli.stacks_cmd.connect", return_value=destination):
            result = CliRunner().invoke(cli, ["stacks", "enable"])

        assert result.exit_code == 0
        assert "No disabled stacks found" in result.output


# ---------------------------------------------------------------------------
# handle_exception
# ---------------------------------------------------------------------------


class TestHandleException:
    def test_configuration_error_hint(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(ConfigurationError("source configuration error: x"))

        assert "source configuration error: x" in caplog.text
        assert "SOURCE_SPACELIFT_URL" in caplog.text

    def test_auth_error(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(APIError("nope", status_code=401))

        assert "Authentication failed" in caplog.text

    def test_server_error(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(APIError("bad gateway", status_code=502))

        assert "Server error" in caplog.text

    def test_resolution_error_hint(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(ResolutionError("space 'x' not found"))

        assert "discover spaces" in caplog.text

    def test_aggregate_failure(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(AggregateFailure("1 of 2 failed", succeeded=1, failed=1))

        assert "1 of 2 failed" in caplog.text

    def test_keyboard_interrupt(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            handle_exception(KeyboardInterrupt())

        assert "Interrupted by user." in caplog.text

    def test_unexpected_error_logs_traceback(self, caplog):
        with caplog.at_level(logging.INFO, logger="spacebridge"):
            try:
                raise RuntimeError("kaboom")
            except RuntimeError as e:
                handle_exception(e)

        record = caplog.records[-1]
        assert "kaboom" in record.getMessage()
        assert record.exc_info[0] is RuntimeError
