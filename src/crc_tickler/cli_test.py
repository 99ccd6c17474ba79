import pytest
from click.testing import CliRunner

from crc_tickler.checksum import compute_checksum, to_signed
from crc_tickler.cli import cli
from crc_tickler.search_space import DEFAULT_ALPHABET
from crc_tickler.utils import append_comment


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def migration(tmp_path):
    path = tmp_path / "V1__init.sql"
    path.write_text("SELECT 1;\n", encoding="utf-8")
    return path


class TestChecksumCommand:
    """Test suite for the checksum command"""

    def test_reports_checksum(self, runner, tmp_path):
        """Test signed, hex and size are printed"""
        path = tmp_path / "check.sql"
        path.write_bytes(b"1234\n56789\n")
        result = runner.invoke(cli, ["checksum", str(path)])
        assert result.exit_code == 0, result.output
        assert "Checksum (Flyway): -873187034" in result.output
        assert "Checksum (hex): 0xCBF43926" in result.output
        assert "File size: 11 bytes" in result.output

    def test_invalid_utf8(self, runner, tmp_path):
        """Test an undecodable file fails cleanly"""
        path = tmp_path / "bad.sql"
        path.write_bytes(b"\xff\xfe")
        result = runner.invoke(cli, ["checksum", str(path)])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output

    def test_missing_file(self, runner, tmp_path):
        """Test a missing file is a usage error"""
        result = runner.invoke(cli, ["checksum", str(tmp_path / "nope.sql")])
        assert result.exit_code == 2


class TestMatchCommand:
    """Test suite for the match command"""

    def test_checksums_already_match(self, runner, migration, tmp_path):
        """Test identical checksums need no comment"""
        source = tmp_path / "V1__init.sql.orig"
        source.write_text("\ufeffSELECT 1;", encoding="utf-8")
        result = runner.invoke(cli, ["match", str(migration), "--source", str(source), "--no-progress"])
        assert result.exit_code == 0, result.output
        assert "All OK! Checksums match!" in result.output
        assert not (tmp_path / "V1__init.sql.old").exists()

    def test_fixes_file_from_source(self, runner, migration, tmp_path):
        """Test a matching comment is appended and the original backed up"""
        source = tmp_path / "source.sql"
        source.write_text("SELECT 1;\n--A\n", encoding="utf-8")
        result = runner.invoke(cli, ["match", str(migration), "-s", str(source), "-w", "4", "--no-progress"])
        assert result.exit_code == 0, result.output
        assert "Found printable comment: '--A'" in result.output
        assert migration.read_text(encoding="utf-8") == "SELECT 1;\n--A\n"
        assert (tmp_path / "V1__init.sql.old").read_text(encoding="utf-8") == "SELECT 1;\n"

    def test_fixes_file_from_signed_target(self, runner, migration, tmp_path):
        """Test a schema-history checksum can be the target"""
        target = to_signed(compute_checksum(append_comment("SELECT 1;\n", "--Q")))
        result = runner.invoke(cli, ["match", str(migration), "--target", str(target), "--no-progress"])
        assert result.exit_code == 0, result.output
        assert compute_checksum(migration.read_text(encoding="utf-8")) == target & 0xFFFFFFFF

    def test_dry_run(self, runner, migration, tmp_path):
        """Test dry run reports the comment without writing"""
        target = compute_checksum(append_comment("SELECT 1;\n", "--z"))
        result = runner.invoke(cli, ["match", str(migration), "-t", hex(target), "--dry-run", "--no-progress"])
        assert result.exit_code == 0, result.output
        assert "'--z'" in result.output
        assert migration.read_text(encoding="utf-8") == "SELECT 1;\n"
        assert not (tmp_path / "V1__init.sql.old").exists()

    def test_progress_ui(self, runner, migration):
        """Test the live progress path finds the comment too"""
        target = compute_checksum(append_comment("SELECT 1;\n", "--%"))
        result = runner.invoke(cli, ["match", str(migration), "-t", str(target), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "'--%'" in result.output

    def test_not_found(self, runner, migration):
        """Test an unreachable target within max length fails"""
        reachable = {compute_checksum(append_comment("SELECT 1;\n", "--" + c)) for c in DEFAULT_ALPHABET}
        target = next(v for v in range(1 << 32) if v not in reachable)
        result = runner.invoke(cli, ["match", str(migration), "-t", str(target), "-m", "1", "--no-progress"])
        assert result.exit_code == 1
        assert "Could not find printable comment" in result.output
        assert migration.read_text(encoding="utf-8") == "SELECT 1;\n"

    def test_existing_backup(self, runner, migration, tmp_path):
        """Test an existing backup stops the write"""
        (tmp_path / "V1__init.sql.old").write_text("keep\n", encoding="utf-8")
        target = compute_checksum(append_comment("SELECT 1;\n", "--A"))
        result = runner.invoke(cli, ["match", str(migration), "-t", str(target), "--no-progress"])
        assert result.exit_code == 1
        assert "Backup already exists" in result.output
        assert migration.read_text(encoding="utf-8") == "SELECT 1;\n"

    def test_source_or_target_required(self, runner, migration):
        """Test one of --source and --target must be given"""
        result = runner.invoke(cli, ["match", str(migration)])
        assert result.exit_code == 2

    def test_source_and_target_exclusive(self, runner, migration, tmp_path):
        """Test --source and --target cannot be combined"""
        other = tmp_path / "V2__other.sql"
        other.write_text("SELECT 2;", encoding="utf-8")
        result = runner.invoke(cli, ["match", str(migration), "-s", str(other), "-t", "1"])
        assert result.exit_code == 2

    def test_bad_target(self, runner, migration):
        """Test a malformed target is a usage error"""
        result = runner.invoke(cli, ["match", str(migration), "--target", "not-a-number"])
        assert result.exit_code == 2
        assert "Invalid checksum" in result.output

    @pytest.mark.parametrize("option", [["-m", "9"], ["-m", "0"], ["-w", "0"]])
    def test_option_ranges(self, runner, migration, option):
        """Test out-of-range search options are refused"""
        result = runner.invoke(cli, ["match", str(migration), "-t", "1", *option])
        assert result.exit_code == 2
