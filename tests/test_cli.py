"""Tests for the virtsecret secrets commands."""
import base64

import pytest

from virtsecret.cli.main import main
from virtsecret.secrets.domains.connection import SecretConnection
from virtsecret.secrets.workflows import secret_operations


@pytest.fixture
def cli_conn(monkeypatch, libvirt_conn):
    """Route every CLI connection to the fake libvirt connection."""
    opened = []

    def fake_open(uri=None, readonly=None):
        opened.append((uri, readonly))
        return SecretConnection(libvirt_conn)

    monkeypatch.setattr(secret_operations, "open_connection", fake_open)
    return opened


class TestSecretsCommands:

    def test_count(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "count"])

        assert capsys.readouterr().out.strip() == "1"

    def test_uri_and_readonly_options(self, cli_conn, capsys):
        main(["--uri", "test:///default", "--readonly", "secrets", "count"])

        assert cli_conn == [("test:///default", True)]

    def test_list(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "list"])

        out = capsys.readouterr().out
        assert scenario_uuid in out
        assert "volume" in out
        assert "vol1" in out

    def test_list_quiet(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "list", "-q"])

        assert capsys.readouterr().out.split() == [scenario_uuid]

    def test_list_empty(self, cli_conn, capsys):
        main(["secrets", "list"])

        assert "No secrets defined" in capsys.readouterr().out

    def test_show_by_usage(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "show", "--usage", "volume", "--usage-id", "vol1"])

        out = capsys.readouterr().out
        assert f"UUID:       {scenario_uuid}" in out
        assert "Usage type: volume" in out

    def test_show_xml(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "show", "--uuid", scenario_uuid, "--xml"])

        assert "<volume>vol1</volume>" in capsys.readouterr().out

    def test_show_missing_secret_exits_1(self, cli_conn, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "show", "--uuid", "00000000-0000-0000-0000-000000000000"])

        assert exc_info.value.code == 1
        assert "virSecretLookupByUUID" in capsys.readouterr().err

    def test_invalid_uuid_exits_2(self, cli_conn, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "show", "--uuid", "not-a-uuid"])

        assert exc_info.value.code == 2
        assert "Invalid secret UUID" in capsys.readouterr().err

    def test_invalid_usage_type_exits_2(self, cli_conn):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "get-value", "--usage", "disk", "--usage-id", "x"])

        assert exc_info.value.code == 2

    def test_missing_selector_exits_2(self, cli_conn):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "undefine"])

        assert exc_info.value.code == 2

    def test_uuid_and_usage_together_exits_2(self, cli_conn, scenario_uuid, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "show", "--uuid", scenario_uuid, "--usage", "volume", "--usage-id", "vol1"])

        assert exc_info.value.code == 2
        assert "not both" in capsys.readouterr().err

    def test_get_value_base64(self, cli_conn, scenario_uuid, capsys):
        main(["secrets", "get-value", "--uuid", scenario_uuid, "--base64"])

        assert base64.b64decode(capsys.readouterr().out.strip()) == b"\x01\x02\x03"

    def test_get_value_to_file(self, cli_conn, scenario_uuid, tmp_path):
        output = tmp_path / "value.bin"

        main(["secrets", "get-value", "--uuid", scenario_uuid, "-o", str(output)])

        assert output.read_bytes() == b"\x01\x02\x03"

    def test_set_value_from_file(self, cli_conn, libvirt_conn, scenario_uuid, tmp_path, capsys):
        value_file = tmp_path / "key.bin"
        value_file.write_bytes(b"\x00secret\xff")

        main(["secrets", "set-value", "--uuid", scenario_uuid, "--value-file", str(value_file)])

        assert libvirt_conn.secrets[scenario_uuid]["value"] == b"\x00secret\xff"
        assert "Stored 8 bytes" in capsys.readouterr().out

    def test_set_value_rejects_empty_file(self, cli_conn, scenario_uuid, tmp_path):
        value_file = tmp_path / "empty.bin"
        value_file.write_bytes(b"")

        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "set-value", "--uuid", scenario_uuid, "--value-file", str(value_file)])

        assert exc_info.value.code == 2

    def test_define_from_options(self, cli_conn, libvirt_conn, tmp_path, capsys):
        value_file = tmp_path / "pass.txt"
        value_file.write_bytes(b"hunter2")

        main(["secrets", "define", "--usage", "volume", "--usage-id", "/images/vm.qcow2",
              "--private", "--value-file", str(value_file)])

        uuid = capsys.readouterr().out.strip()
        record = libvirt_conn.secrets[uuid]
        assert record["usage_id"] == "/images/vm.qcow2"
        assert record["value"] == b"hunter2"

    def test_define_from_xml_file(self, cli_conn, libvirt_conn, tmp_path, capsys):
        xml_file = tmp_path / "secret.xml"
        xml_file.write_text(
            "<secret><uuid>66666666-6666-6666-6666-666666666666</uuid>"
            "<usage type='iscsi'><target>libvirtiscsi</target></usage></secret>"
        )

        main(["secrets", "define", "--xml-file", str(xml_file)])

        assert capsys.readouterr().out.strip() == "66666666-6666-6666-6666-666666666666"

    def test_define_invalid_xml_exits_1(self, cli_conn, tmp_path, capsys):
        xml_file = tmp_path / "broken.xml"
        xml_file.write_text("<secret>")

        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "define", "--xml-file", str(xml_file)])

        assert exc_info.value.code == 1
        assert "virSecretDefineXML" in capsys.readouterr().err

    def test_define_volume_without_usage_id_exits_2(self, cli_conn):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets", "define", "--usage", "volume"])

        assert exc_info.value.code == 2

    def test_undefine(self, cli_conn, libvirt_conn, scenario_uuid, capsys):
        main(["secrets", "undefine", "--uuid", scenario_uuid])

        assert libvirt_conn.secrets == {}
        assert "Secret undefined" in capsys.readouterr().out


class TestTopLevel:

    def test_version(self, capsys):
        main(["version"])

        assert capsys.readouterr().out.startswith("virtsecret ")

    def test_no_command_exits_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2

    def test_secrets_without_subcommand_exits_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["secrets"])

        assert exc_info.value.code == 2
