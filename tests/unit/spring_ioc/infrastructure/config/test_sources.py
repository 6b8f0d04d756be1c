"""Unit tests for command-line, environment and file property sources."""

import pytest

from spring_ioc.application.properties import Properties
from spring_ioc.infrastructure.config.sources import (
    apply_env_overrides,
    config_files,
    env_name,
    load_command_line,
    load_config_files,
    load_environment,
    read_banner,
)


class TestCommandLine:
    """Test cases for command-line arguments."""

    def test_argument_forms(self):
        """Test ``-k v``, ``--k=v`` and bare flags."""
        layer = load_command_line(["-server.port", "9090", "--name=demo", "--debug", "-verbose"])

        assert layer.get("server.port") == "9090"
        assert layer.get("name") == "demo"
        assert layer.get("debug") == ""
        assert layer.get("verbose") == ""

    def test_positional_arguments_ignored(self):
        """Test that arguments without a dash are skipped."""
        layer = load_command_line(["run", "--", "-", "-a", "1", "extra"])

        assert layer.keys() == ["a"]
        assert layer.source == "command-line"

    def test_invalid_keys_ignored(self):
        """Test that malformed keys do not abort loading."""
        layer = load_command_line(["-a[x]", "1", "-b", "2"])

        assert layer.keys() == ["b"]


class TestEnvironment:
    """Test cases for environment variables."""

    def test_prefixed_variables(self):
        """Test that ``GS_`` variables map to dotted keys."""
        layer = load_environment({"GS_SERVER_PORT": "9090", "GS_RECORD_MODE": "on"})

        assert layer.get("server.port") == "9090"
        assert not layer.has("record")

    def test_include_and_exclude_patterns(self):
        """Test the include and exclude variable filters."""
        environ = {
            "INCLUDE_ENV_PATTERNS": "^APP_",
            "EXCLUDE_ENV_PATTERNS": "SECRET",
            "APP_NAME": "demo",
            "APP_SECRET": "x",
            "HOME": "/root",
        }

        layer = load_environment(environ)

        assert layer.keys() == ["APP_NAME"]

    def test_declared_keys_overridden(self):
        """Test that ``FOO_BAR`` overrides a declared ``foo.bar``."""
        layer = load_environment({"SERVER_PORT": "7070"}, declared_keys=["server.port"])

        assert layer.get("server.port") == "7070"

    def test_apply_env_overrides_keeps_existing(self):
        """Test that overrides do not replace keys already in the layer."""
        layer = Properties("environment")
        layer.set("server.port", "1")

        apply_env_overrides(layer, {"SERVER_PORT": "2", "DB_URL": "x"}, ["server.port", "db.url"])

        assert layer.get("server.port") == "1"
        assert layer.get("db.url") == "x"

    @pytest.mark.parametrize(
        "key, expected",
        [("server.port", "SERVER_PORT"), ("server.hosts[0]", "SERVER_HOSTS_0"), ("my-app.name", "MY_APP_NAME")],
    )
    def test_env_name(self, key, expected):
        """Test the variable name for a key."""
        assert env_name(key) == expected


class TestConfigFiles:
    """Test cases for configuration files."""

    def test_profile_files(self, tmp_path):
        """Test default and profile file names."""
        (tmp_path / "application.yaml").write_text("a: 1\n", encoding="utf-8")
        (tmp_path / "application-dev.yaml").write_text("a: 2\n", encoding="utf-8")

        assert config_files([str(tmp_path)], [".yaml"]) == [tmp_path / "application.yaml"]
        assert config_files([str(tmp_path)], [".yaml"], "dev") == [tmp_path / "application-dev.yaml"]
        assert load_config_files([str(tmp_path)], [".yaml"], "dev").get("a") == "2"

    def test_later_extensions_override(self, tmp_path):
        """Test that later extensions override earlier ones."""
        (tmp_path / "application.properties").write_text("a=props\nb=props\n", encoding="utf-8")
        (tmp_path / "application.yaml").write_text("a: yaml\n", encoding="utf-8")

        layer = load_config_files([str(tmp_path)], [".properties", ".yaml"])

        assert layer.get("a") == "yaml"
        assert layer.get("b") == "props"
        assert layer.source == "application"

    def test_first_location_wins(self, tmp_path):
        """Test that for one extension the first location wins."""
        first, second = tmp_path / "first", tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "application.yaml").write_text("a: first\n", encoding="utf-8")
        (second / "application.yaml").write_text("a: second\nb: second\n", encoding="utf-8")

        layer = load_config_files([str(first), str(second)], [".yaml"])

        assert layer.get("a") == "first"
        assert layer.get("b") == "second"

    def test_missing_files(self, tmp_path):
        """Test that missing files give an empty layer."""
        assert len(load_config_files([str(tmp_path / "nowhere")], [".yaml"])) == 0

    def test_read_banner(self, tmp_path):
        """Test that the first banner found is returned."""
        (tmp_path / "banner.txt").write_text("HELLO\n", encoding="utf-8")

        assert read_banner([str(tmp_path / "nowhere"), str(tmp_path)]) == "HELLO\n"
        assert read_banner([str(tmp_path / "nowhere")]) is None
