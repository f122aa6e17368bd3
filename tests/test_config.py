"""Tests for pgcontrol.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from pgcontrol.config import ControllerConfig, deep_merge, find_config_file

SAMPLE_CONFIG = {
    "server": {
        "pgdata": "/var/lib/postgresql/13/main",
        "pg_ctl": "/usr/lib/postgresql/13/bin/pg_ctl",
        "port": 5433,
        "listen_addresses": "localhost",
    },
    "replication": {
        "host": "10.0.0.5",
        "port": 5433,
        "user": "repl",
        "slot_name": "slot1",
    },
}

SAMPLE_TOML = """\
[server]
pgdata = "/var/lib/postgresql/13/main"
pg_ctl = "/usr/lib/postgresql/13/bin/pg_ctl"
port = 5433

[replication]
host = "10.0.0.5"
user = "repl"
slot_name = "slot1"
"""


# ---------------------------------------------------------------------------
# deep_merge
# ---------------------------------------------------------------------------


class TestDeepMerge:
    def test_basic(self):
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"c": 99, "e": 5}}
        result = deep_merge(base, override)
        assert result == {"a": 1, "b": {"c": 99, "d": 3, "e": 5}}

    def test_does_not_mutate_inputs(self):
        base = {"server": {"port": 5432}}
        override = {"server": {"pgdata": "/data"}}
        deep_merge(base, override)
        assert base == {"server": {"port": 5432}}
        assert override == {"server": {"pgdata": "/data"}}

    def test_override_dict_with_scalar(self):
        """Override replaces a dict with a scalar when types differ."""
        result = deep_merge({"a": {"nested": 1}}, {"a": "scalar"})
        assert result["a"] == "scalar"

    def test_nested_tables_not_shared_when_merged(self):
        base = {"replication": {"host": "primary", "port": 5432}}
        result = deep_merge(base, {"replication": {"password": "secret"}})

        result["replication"]["port"] = 6000
        assert base["replication"] == {"host": "primary", "port": 5432}
        assert result["replication"]["password"] == "secret"

    def test_empty_sides(self):
        assert deep_merge({}, {"a": 1}) == {"a": 1}
        assert deep_merge({"a": 1}, {}) == {"a": 1}


# ---------------------------------------------------------------------------
# find_config_file
# ---------------------------------------------------------------------------


class TestFindConfigFile:
    def test_found_in_parent(self, tmp_path):
        config_file = tmp_path / ".pgcontrol.toml"
        config_file.write_text(SAMPLE_TOML)
        subdir = tmp_path / "a" / "b"
        subdir.mkdir(parents=True)
        assert find_config_file(subdir) == config_file

    def test_found_in_start_dir(self, tmp_path):
        config_file = tmp_path / ".pgcontrol.toml"
        config_file.write_text(SAMPLE_TOML)
        assert find_config_file(tmp_path) == config_file

    def test_not_found(self, tmp_path):
        assert find_config_file(tmp_path) is None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_from_dict(self):
        config = ControllerConfig.from_dict(SAMPLE_CONFIG)
        assert config.server["port"] == 5433
        assert config.replication["slot_name"] == "slot1"
        assert config.path is None

    def test_empty_dict(self):
        config = ControllerConfig.from_dict({})
        assert config.server == {}
        assert config.replication == {}

    def test_load_from_file(self, tmp_path):
        (tmp_path / ".pgcontrol.toml").write_text(SAMPLE_TOML)

        config = ControllerConfig.load(tmp_path)

        assert config.server["pgdata"] == "/var/lib/postgresql/13/main"
        assert config.path == tmp_path / ".pgcontrol.toml"

    def test_load_not_found_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match=".pgcontrol.toml"):
            ControllerConfig.load(tmp_path)

    def test_local_override(self, tmp_path):
        (tmp_path / ".pgcontrol.toml").write_text(SAMPLE_TOML)
        (tmp_path / ".pgcontrol.local.toml").write_text(
            '[replication]\npassword = "secret"\nhost = "10.0.0.9"\n'
        )

        config = ControllerConfig.load(tmp_path)

        assert config.replication["password"] == "secret"
        assert config.replication["host"] == "10.0.0.9"
        assert config.replication["user"] == "repl"  # preserved
        assert config.server["port"] == 5433

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / ".pgcontrol.toml"
        path.write_text("[server\n")
        with pytest.raises(ValueError):
            ControllerConfig.from_file(path)


# ---------------------------------------------------------------------------
# ServerSetup / ReplicationSource construction
# ---------------------------------------------------------------------------


class TestServerSetup:
    def test_from_config(self):
        setup = ControllerConfig.from_dict(SAMPLE_CONFIG).server_setup()
        assert setup.pgdata == Path("/var/lib/postgresql/13/main")
        assert setup.pg_ctl == Path("/usr/lib/postgresql/13/bin/pg_ctl")
        assert setup.port == 5433
        assert setup.listen_addresses == "localhost"
        assert setup.config_file == Path("/var/lib/postgresql/13/main/postgresql.conf")

    def test_defaults(self):
        setup = ControllerConfig().server_setup()
        assert setup.pgdata is None
        assert setup.pg_ctl is None
        assert setup.port == 5432
        assert setup.listen_addresses == "*"

    def test_overrides_win(self):
        setup = ControllerConfig.from_dict(SAMPLE_CONFIG).server_setup(
            pgdata="/tmp/pgdata", port=6000
        )
        assert setup.pgdata == Path("/tmp/pgdata")
        assert setup.port == 6000

    def test_none_overrides_ignored(self):
        setup = ControllerConfig.from_dict(SAMPLE_CONFIG).server_setup(
            pgdata=None, port=None
        )
        assert setup.port == 5433

    def test_config_file_requires_pgdata(self):
        with pytest.raises(ValueError, match="pgdata"):
            ControllerConfig().server_setup().config_file


class TestReplicationSource:
    def test_from_config(self):
        source = ControllerConfig.from_dict(SAMPLE_CONFIG).replication_source()
        assert source.host == "10.0.0.5"
        assert source.port == 5433
        assert source.user_name == "repl"
        assert source.slot_name == "slot1"
        assert source.password is None
        assert source.maximum_backup_rate == "100M"

    def test_overrides(self):
        source = ControllerConfig.from_dict(SAMPLE_CONFIG).replication_source(
            password="pw", maximum_backup_rate="1G", host=None
        )
        assert source.password == "pw"
        assert source.maximum_backup_rate == "1G"
        assert source.host == "10.0.0.5"

    def test_default_port(self):
        config = ControllerConfig.from_dict(
            {"replication": {"host": "h", "user": "u", "slot_name": "s"}}
        )
        assert config.replication_source().port == 5432

    def test_missing_keys_raise(self):
        config = ControllerConfig.from_dict({"replication": {"host": "h"}})
        with pytest.raises(KeyError, match="user, slot_name"):
            config.replication_source()

    def test_overrides_fill_missing(self):
        source = ControllerConfig().replication_source(host="h", user="u", slot_name="s")
        assert source.host == "h"
