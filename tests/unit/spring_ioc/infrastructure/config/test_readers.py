"""Unit tests for configuration file readers."""

import pytest

from spring_ioc.infrastructure.config.readers import (
    ConfigReadError,
    read_file,
    read_properties,
    register_reader,
    supported_extensions,
)


class TestReadProperties:
    """Test cases for the properties format."""

    def test_separators_and_comments(self):
        """Test ``=``, ``:`` and whitespace separators and comment lines."""
        text = "# comment\n! also a comment\na=1\nb: 2\nc 3\n\nd = spaced value  \n"

        assert read_properties(text) == {"a": "1", "b": "2", "c": "3", "d": "spaced value"}

    def test_continuation_lines(self):
        """Test that a trailing backslash continues the value."""
        text = "hosts=a,\\\n    b,\\\n    c\n"

        assert read_properties(text) == {"hosts": "a,b,c"}

    def test_escapes(self):
        """Test escaped separators in keys and escapes in values."""
        text = "odd\\=key=tab\\there\nlast=ends\\\\\n"

        assert read_properties(text) == {"odd=key": "tab\there", "last": "ends\\"}

    def test_indexed_keys(self):
        """Test that indexed keys are kept as written."""
        assert read_properties("hosts[0]=a\nhosts[1]=b") == {"hosts[0]": "a", "hosts[1]": "b"}


class TestReadFile:
    """Test cases for reading files by extension."""

    def test_yaml(self, tmp_path):
        """Test YAML files."""
        path = tmp_path / "application.yaml"
        path.write_text("server:\n  port: 8080\n  hosts: [a, b]\n", encoding="utf-8")

        assert read_file(path) == {"server": {"port": 8080, "hosts": ["a", "b"]}}

    def test_empty_yaml(self, tmp_path):
        """Test that an empty YAML file is an empty mapping."""
        path = tmp_path / "application.yml"
        path.write_text("", encoding="utf-8")

        assert read_file(path) == {}

    def test_toml(self, tmp_path):
        """Test TOML files."""
        path = tmp_path / "application.toml"
        path.write_text('[server]\nport = 8080\nname = "demo"\n', encoding="utf-8")

        assert read_file(path) == {"server": {"port": 8080, "name": "demo"}}

    def test_json(self, tmp_path):
        """Test JSON files."""
        path = tmp_path / "application.json"
        path.write_text('{"server": {"port": 8080}}', encoding="utf-8")

        assert read_file(path) == {"server": {"port": 8080}}

    def test_properties_file(self, tmp_path):
        """Test properties files."""
        path = tmp_path / "application.properties"
        path.write_text("server.port=8080\n", encoding="utf-8")

        assert read_file(path) == {"server.port": "8080"}

    def test_parse_error(self, tmp_path):
        """Test that malformed content raises ConfigReadError."""
        path = tmp_path / "application.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigReadError) as exc_info:
            read_file(path)
        assert exc_info.value.path == path

    def test_non_mapping_top_level(self, tmp_path):
        """Test that a list document is rejected."""
        path = tmp_path / "application.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigReadError, match="mapping"):
            read_file(path)

    def test_unsupported_extension(self, tmp_path):
        """Test files without a reader."""
        path = tmp_path / "application.xml"
        path.write_text("<a/>", encoding="utf-8")

        with pytest.raises(ConfigReadError, match="unsupported"):
            read_file(path)

    def test_register_reader(self, tmp_path):
        """Test a custom reader."""
        register_reader(".kv", lambda text: dict(line.split("|") for line in text.splitlines()))
        path = tmp_path / "application.kv"
        path.write_text("a|1\n", encoding="utf-8")

        assert ".kv" in supported_extensions()
        assert read_file(path) == {"a": "1"}
