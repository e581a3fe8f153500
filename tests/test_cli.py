"""
tests/test_cli.py

Command-line interface, driven through click's CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from teleport.cli import cli
from teleport.core.crypto import OracleKey
from teleport.core.guid import guid_hash
from teleport.ledger.audit import AuditLog
from teleport.oracle.attestation import decode_signatures
from teleport.sync.store import SyncStatus, SyncStatusRepository

from tests.conftest import RECEIVER_ID, make_guid


@pytest.fixture
def runner():
    return CliRunner()


class TestGuidHash:

    ARGS = [
        "guid", "hash",
        "--source", "OPT-GOE-A",
        "--target", "ETH-GOE-A",
        "--receiver", RECEIVER_ID,
        "--operator", "0x" + "0d" * 20,
        "--amount", str(100 * 10 ** 18),
        "--nonce", "7",
        "--timestamp", "1646234074",
    ]

    def test_prints_guid_hash(self, runner):
        result = runner.invoke(cli, self.ARGS)
        assert result.exit_code == 0, result.output
        assert result.output.strip() == make_guid().hash_hex()

    def test_encoding_flag(self, runner):
        result = runner.invoke(cli, self.ARGS + ["--encoding"])
        lines = result.output.split()
        assert lines[1] == "0x" + make_guid().encode().hex()

    def test_invalid_guid_exits_2(self, runner):
        args = list(self.ARGS)
        args[args.index("--nonce") + 1] = str(2 ** 80)
        result = runner.invoke(cli, args)
        assert result.exit_code == 2
        assert "Error" in result.output


class TestOracle:

    def test_keygen_then_attest(self, runner, tmp_path):
        key_path = tmp_path / "oracle.pem"
        guid_path = tmp_path / "guid.json"
        guid = make_guid()
        guid_path.write_text(json.dumps(guid.to_dict()), encoding="utf-8")

        keygen = runner.invoke(cli, ["oracle", "keygen", str(key_path)])
        assert keygen.exit_code == 0, keygen.output
        identity = keygen.output.strip()
        assert identity == OracleKey.from_file(key_path).identity

        attest = runner.invoke(cli, ["oracle", "attest", str(key_path), str(guid_path)])
        assert attest.exit_code == 0, attest.output
        body = json.loads(attest.output)
        assert body["hash"] == guid.hash_hex()
        assert body["oracle"] == identity

        (attestation,) = decode_signatures(bytes.fromhex(body["signatures"][2:]))
        assert attestation.oracle == identity
        assert attestation.verify(guid_hash(guid))

    def test_keygen_refuses_to_overwrite(self, runner, tmp_path):
        key_path = tmp_path / "oracle.pem"
        runner.invoke(cli, ["oracle", "keygen", str(key_path)])
        before = key_path.read_bytes()

        result = runner.invoke(cli, ["oracle", "keygen", str(key_path)])
        assert result.exit_code == 2
        assert key_path.read_bytes() == before

        forced = runner.invoke(cli, ["oracle", "keygen", str(key_path), "--force"])
        assert forced.exit_code == 0
        assert key_path.read_bytes() != before

    def test_attest_rejects_bad_guid(self, runner, tmp_path):
        key_path = tmp_path / "oracle.pem"
        OracleKey.generate().save(key_path)
        guid_path = tmp_path / "guid.json"
        guid_path.write_text(json.dumps({"source_domain": "OPT-GOE-A"}), encoding="utf-8")

        result = runner.invoke(cli, ["oracle", "attest", str(key_path), str(guid_path)])
        assert result.exit_code == 2


class TestAuditVerify:

    @pytest.fixture
    def log_path(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = AuditLog(path)
        log.emit("HostLedgerController:ETH-GOE-A", "Lift", {"line": "1", "minted": "1"})
        log.emit("HostLedgerController:ETH-GOE-A", "Cage", {"caller": "0xaa"})
        return path

    def test_valid_log(self, runner, log_path):
        result = runner.invoke(cli, ["audit", "verify", str(log_path)])
        assert result.exit_code == 0
        assert "VALID" in result.output
        assert "2 records" in result.output

    def test_json_output(self, runner, log_path):
        result = runner.invoke(cli, ["audit", "verify", str(log_path), "--format", "json"])
        body = json.loads(result.output)
        assert body["valid"] is True
        assert body["total_records"] == 2

    def test_tampered_log_exits_1(self, runner, log_path):
        lines = log_path.read_text(encoding="utf-8").splitlines()
        row = json.loads(lines[0])
        row["payload"]["minted"] = "1000"
        lines[0] = json.dumps(row)
        log_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

        result = runner.invoke(cli, ["audit", "verify", str(log_path)])
        assert result.exit_code == 1
        assert "INVALID" in result.output

    def test_quiet_prints_nothing(self, runner, log_path):
        result = runner.invoke(cli, ["audit", "verify", str(log_path), "-q"])
        assert result.exit_code == 0
        assert result.output == ""

    def test_missing_file_exits_2(self, runner, tmp_path):
        result = runner.invoke(cli, ["audit", "verify", str(tmp_path / "nope.jsonl")])
        assert result.exit_code == 2

    def test_malformed_file_exits_2(self, runner, tmp_path):
        path = tmp_path / "broken.jsonl"
        path.write_text("{not json\n", encoding="utf-8")
        result = runner.invoke(cli, ["audit", "verify", str(path)])
        assert result.exit_code == 2


class TestSyncStatus:

    @pytest.fixture
    def database_url(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'sync.db'}"
        repo = SyncStatusRepository.from_url(url)
        with repo.transaction() as session:
            repo.upsert(SyncStatus("TeleportInitializedSynchronizer", "OPT-GOE-A", 120), session)
        return url

    def test_json_listing(self, runner, database_url):
        result = runner.invoke(cli, ["sync", "status", "--database-url", database_url, "--format", "json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [
            {"name": "TeleportInitializedSynchronizer", "domain": "OPT-GOE-A", "block": 120},
        ]

    def test_table_listing(self, runner, database_url):
        result = runner.invoke(cli, ["sync", "status", "--database-url", database_url])
        assert "OPT-GOE-A" in result.output
        assert "120" in result.output

    def test_database_url_from_config(self, runner, database_url, tmp_path):
        config = tmp_path / "teleport.yaml"
        config.write_text(f"database_url: {database_url}\n", encoding="utf-8")
        result = runner.invoke(cli, ["sync", "status", "--config", str(config), "--format", "json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)[0]["block"] == 120

    def test_requires_a_database(self, runner):
        result = runner.invoke(cli, ["sync", "status"])
        assert result.exit_code == 2
