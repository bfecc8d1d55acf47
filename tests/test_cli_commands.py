"""Tests for CLI subcommands."""

import argparse

import yaml

from schemabrew.main import _cmd_init, cli_main


def test_cmd_init_creates_structure(tmp_path):
    """schemabrew init should create the config file and a first migration."""
    args = argparse.Namespace(dir=str(tmp_path), package="inventory")
    _cmd_init(args)

    config = yaml.safe_load((tmp_path / "schemabrew.yaml").read_text())
    assert config["migrations"]["dir"] == "migrations"
    assert config["generate"]["package"] == "inventory"
    assert config["generate"]["output"] == "inventory/migrations_data.py"

    first = (tmp_path / "migrations" / "0001_initial.sql").read_text()
    assert "-- package: inventory" in first
    assert "-- migrate: up" in first
    assert "-- migrate: down" in first


def test_cmd_init_doesnt_overwrite(tmp_path):
    """schemabrew init should not overwrite existing files."""
    (tmp_path / "schemabrew.yaml").write_text("existing: content")
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0005_custom.sql").write_text("SELECT 1;")

    _cmd_init(argparse.Namespace(dir=str(tmp_path), package=None))

    assert (tmp_path / "schemabrew.yaml").read_text() == "existing: content"
    assert not (migrations / "0001_initial.sql").exists()


def test_cmd_init_default_package(tmp_path):
    """schemabrew init without --package should use the directory name."""
    project = tmp_path / "orders"
    project.mkdir()
    _cmd_init(argparse.Namespace(dir=str(project), package=None))
    assert "-- package: orders" in (project / "migrations" / "0001_initial.sql").read_text()


def test_generate_from_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main(["init", "--package", "inventory"]) == 0
    assert cli_main(["generate"]) == 0

    out = tmp_path / "inventory" / "migrations_data.py"
    assert out.exists()
    assert "REVISION_1 = bytes([" in out.read_text()
    assert "Wrote" in capsys.readouterr().out


def test_generate_flags_override_config(tmp_path, monkeypatch, migrations_dir):
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "custom" / "embedded.py"
    code = cli_main(["generate", "--dir", str(migrations_dir), "-o", str(out), "-p", "custom_pkg"])
    assert code == 0
    assert "PACKAGE = 'custom_pkg'" in out.read_text()


def test_generate_requires_output(tmp_path, monkeypatch, migrations_dir, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main(["generate", "--dir", str(migrations_dir)]) == 1
    assert "No output path" in capsys.readouterr().err


def test_list(tmp_path, monkeypatch, migrations_dir, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main(["list", "--dir", str(migrations_dir)]) == 0
    out = capsys.readouterr().out
    assert "0001_create_users.sql" in out
    assert "accounts" in out
    assert "0010_index_posts.sql" in out


def test_migrate_and_rollback(tmp_path, monkeypatch, migrations_dir, capsys):
    monkeypatch.chdir(tmp_path)
    db = str(tmp_path / "app.db")

    assert cli_main(["migrate", "--dir", str(migrations_dir), "--db", db]) == 0
    assert "Applied 3 migration(s)" in capsys.readouterr().out

    assert cli_main(["migrate", "--dir", str(migrations_dir), "--db", db]) == 0
    assert "Nothing to do." in capsys.readouterr().out

    assert cli_main(["rollback", "--dir", str(migrations_dir), "--db", db, "--to", "1"]) == 0
    assert "Rolled back 2 migration(s)" in capsys.readouterr().out

    assert cli_main(["rollback", "--dir", str(migrations_dir), "--db", db]) == 0
    out = capsys.readouterr().out
    assert "Rolled back 1 migration(s)" in out
    assert "0001_create_users.sql" in out


def test_migrate_requires_db(tmp_path, monkeypatch, migrations_dir, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main(["migrate", "--dir", str(migrations_dir)]) == 1
    assert "No database" in capsys.readouterr().err


def test_missing_migrations_reports_error(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main(["list"]) == 1
    assert "error:" in capsys.readouterr().err


def test_no_command_prints_help(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert cli_main([]) == 1
    assert "usage:" in capsys.readouterr().out
