"""Unit tests for the App bootstrap."""

import io
import os
import threading
from datetime import timedelta

import pytest

from spring_ioc.domain import AppEvent, AppRunner, ContainerState, IoCError, RunnerFailedError
from spring_ioc.infrastructure.boot import DEFAULT_BANNER, App, AppSettings


def make_app(tmp_path, argv=(), environ=None):
    """Build an App reading configuration from tmp_path only."""
    return App(
        argv=["--spring.config.locations=" + str(tmp_path), *argv],
        environ=environ or {},
        out=io.StringIO(),
    )


class Recorder(AppRunner, AppEvent):
    def __init__(self):
        self.calls = []

    def run(self, ctx):
        self.calls.append("run")

    def on_start(self, ctx):
        self.calls.append("start")

    def on_stop(self, ctx):
        self.calls.append("stop")


class TestPrepare:
    """Test cases for property layers and settings."""

    def test_default_settings(self, tmp_path):
        """Test the settings of an unconfigured application."""
        settings = make_app(tmp_path).prepare()

        assert isinstance(settings, AppSettings)
        assert settings.name == ""
        assert settings.profiles == []
        assert settings.config_locations == [str(tmp_path)]
        assert settings.banner_visible
        assert settings.shutdown_grace is None

    def test_layer_precedence(self, tmp_path):
        """Test command line over environment over files over defaults."""
        (tmp_path / "application.properties").write_text("a=file\nb=file\nc=file\nd=file\n", encoding="utf-8")
        app = make_app(tmp_path, argv=["-a", "cmd"], environ={"GS_A": "env", "GS_B": "env"})
        app.set_property("c", "default")
        app.set_property("e", "default")

        app.prepare()
        store = app.container.properties()

        assert store.get("a") == "cmd"
        assert store.get("b") == "env"
        assert store.get("c") == "file"
        assert store.get("e") == "default"

    def test_profile_files(self, tmp_path):
        """Test that each active profile loads its own files over the defaults."""
        (tmp_path / "application.yaml").write_text("a: default\nb: default\n", encoding="utf-8")
        (tmp_path / "application-dev.yaml").write_text("a: dev\n", encoding="utf-8")
        (tmp_path / "application-local.yaml").write_text("b: local\n", encoding="utf-8")

        app = make_app(tmp_path, argv=["--spring.profiles.active=dev,local"])
        settings = app.prepare()
        store = app.container.properties()

        assert settings.profiles == ["dev", "local"]
        assert store.get("a") == "dev"
        assert store.get("b") == "local"

    def test_profile_from_file(self, tmp_path):
        """Test that a profile activated in the default file is honoured."""
        (tmp_path / "application.yaml").write_text("spring:\n  profiles:\n    active: dev\n", encoding="utf-8")
        (tmp_path / "application-dev.yaml").write_text("a: dev\n", encoding="utf-8")

        app = make_app(tmp_path)
        settings = app.prepare()

        assert settings.profile == "dev"
        assert app.container.properties().get("a") == "dev"

    def test_environment_overrides_file_keys(self, tmp_path):
        """Test that ``SERVER_PORT`` overrides ``server.port`` from a file."""
        (tmp_path / "application.yaml").write_text("server:\n  port: 80\n", encoding="utf-8")

        app = make_app(tmp_path, environ={"SERVER_PORT": "9090"})
        app.prepare()

        assert app.container.properties().get("server.port") == "9090"

    def test_settings_from_properties(self, tmp_path):
        """Test typed reserved settings."""
        (tmp_path / "application.properties").write_text(
            "spring.application.name=demo\nspring.shutdown.grace=2s\nspring.banner.visible=false\n",
            encoding="utf-8",
        )

        settings = make_app(tmp_path).prepare()

        assert settings.name == "demo"
        assert settings.shutdown_grace == timedelta(seconds=2)
        assert not settings.banner_visible


class TestStartStop:
    """Test cases for the application lifecycle."""

    def test_runners_and_events(self, tmp_path):
        """Test runner, start and stop notifications."""
        recorder = Recorder()
        app = make_app(tmp_path)
        app.object(recorder)

        app.start()
        app.stop()

        assert recorder.calls == ["run", "start", "stop"]
        assert app.container.state == ContainerState.CLOSED

    def test_banner(self, tmp_path):
        """Test the default banner and a custom banner file."""
        app = make_app(tmp_path)
        app.start()
        app.stop()
        assert app._out.getvalue() == DEFAULT_BANNER

        (tmp_path / "banner.txt").write_text("CUSTOM", encoding="utf-8")
        custom = make_app(tmp_path)
        custom.start()
        custom.stop()
        assert custom._out.getvalue() == "CUSTOM\n"

    def test_banner_hidden(self, tmp_path):
        """Test that the banner can be switched off."""
        app = make_app(tmp_path, argv=["--spring.banner.visible=false"])
        app.start()
        app.stop()

        assert app._out.getvalue() == ""

    def test_pid_file(self, tmp_path):
        """Test that the pid file exists while the application runs."""
        pid_file = tmp_path / "app.pid"
        app = make_app(tmp_path, argv=["--spring.pid.file=" + str(pid_file)])

        app.start()
        assert pid_file.read_text(encoding="utf-8") == str(os.getpid())
        app.stop()

        assert not pid_file.exists()

    def test_runner_failure_closes_container(self, tmp_path):
        """Test that a failing runner aborts the start."""
        destroyed = []

        class Failing(AppRunner):
            def run(self, ctx):
                raise ValueError("runner broke")

        app = make_app(tmp_path)
        app.object(Failing())
        app.object("resource").destroy(lambda bean: destroyed.append(bean))

        with pytest.raises(RunnerFailedError, match="runner broke"):
            app.start()

        assert destroyed == ["resource"]
        assert app.container.state == ContainerState.CLOSED

    def test_start_twice(self, tmp_path):
        """Test that an application starts only once."""
        app = make_app(tmp_path)
        app.start()

        with pytest.raises(IoCError):
            app.start()
        app.stop()

    def test_stop_event_failure_is_logged(self, tmp_path, caplog):
        """Test that a failing stop event does not prevent closing."""

        class Broken(AppEvent):
            def on_start(self, ctx):
                pass

            def on_stop(self, ctx):
                raise RuntimeError("stop failed")

        app = make_app(tmp_path)
        app.object(Broken())
        app.start()
        app.stop()

        assert app.container.state == ContainerState.CLOSED
        assert "stop failed" in caplog.text

    def test_run_until_shutdown(self, tmp_path):
        """Test that run blocks until shutdown is requested from another thread."""
        recorder = Recorder()
        app = make_app(tmp_path)
        app.object(recorder)
        timer = threading.Timer(0.1, app.shutdown, args=("test",))

        timer.start()
        app.run()

        assert app.exiting
        assert recorder.calls == ["run", "start", "stop"]

    def test_main_exit_codes(self, tmp_path):
        """Test that main returns 1 on container errors and 0 otherwise."""

        class Failing(AppRunner):
            def run(self, ctx):
                raise ValueError("runner broke")

        failing = make_app(tmp_path)
        failing.object(Failing())
        assert failing.main() == 1

        ok = make_app(tmp_path)
        ok.object(Recorder())
        threading.Timer(0.1, ok.shutdown).start()
        assert ok.main() == 0
