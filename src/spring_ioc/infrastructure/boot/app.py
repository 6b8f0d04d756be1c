import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TextIO

from spring_ioc.application.container import Container
from spring_ioc.application.converters import split_comma
from spring_ioc.application.properties import LayerPriority, PropertyStore
from spring_ioc.domain import AppEvent, AppRunner, BeanDefinition, IoCError, RunnerFailedError
from spring_ioc.infrastructure.boot.settings import AppSettings
from spring_ioc.infrastructure.config.sources import (
    apply_env_overrides,
    load_command_line,
    load_config_files,
    load_environment,
    read_banner,
)

logger = logging.getLogger(__name__)

DEFAULT_BANNER = r"""
                 _                    _
  ___ _ __  _ __(_)_ __   __ _       (_) ___   ___
 / __| '_ \| '__| | '_ \ / _` |_____ | |/ _ \ / __|
 \__ \ |_) | |  | | | | | (_| |_____|| | (_) | (__
 |___/ .__/|_|  |_|_| |_|\__, |      |_|\___/ \___|
     |_|                 |___/
"""


class App:
    """Application bootstrap around a :class:`Container`.

    :meth:`run` loads the property layers, prints the banner, writes the pid
    file, refreshes the container, calls every :class:`AppRunner`, notifies
    every :class:`AppEvent`, then blocks until :meth:`shutdown` is called or
    the process receives SIGINT or SIGTERM. Stopping notifies events in
    reverse order and closes the container.

    Property layers, highest priority first: command line, environment,
    profile configuration files, default configuration files, programmatic
    defaults set through :meth:`set_property`.

    Example:
        >>> app = App()
        >>> app.provide(Server, "${server.port:=8080}").destroy("stop")
        >>> app.object(Worker()).export(AppRunner)
        >>> sys.exit(app.main())

    Attributes:
        _argv: Command-line arguments, without the program name.
        _environ: Environment variables.
        _container: The managed container.
        _exit: Set when the application should stop.
        _events: Event beans notified on start, in construction order.
    """

    def __init__(
        self,
        argv: Optional[Sequence[str]] = None,
        environ: Optional[Mapping[str, str]] = None,
        container: Optional[Container] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        """Initialize the application.

        Args:
            argv: Command-line arguments; defaults to ``sys.argv[1:]``.
            environ: Environment variables; defaults to ``os.environ``.
            container: Container to manage; a new one when omitted.
            out: Stream the banner is written to; defaults to stdout.
        """
        self._argv = list(sys.argv[1:] if argv is None else argv)
        self._environ: Dict[str, str] = dict(os.environ if environ is None else environ)
        self._container = container if container is not None else Container()
        self._out = out
        self._exit = threading.Event()
        self._settings: Optional[AppSettings] = None
        self._events: List[AppEvent] = []
        self._started = False
        self._stopped = False

    # registration delegates

    def object(self, value: Any) -> BeanDefinition:
        """Register a ready-made object, see :meth:`Container.object`."""
        return self._container.object(value)

    def provide(self, factory: Callable[..., Any], *args: Any) -> BeanDefinition:
        """Register a factory, see :meth:`Container.provide`."""
        return self._container.provide(factory, *args)

    def method(self, receiver: Any, method_name: str, *args: Any) -> BeanDefinition:
        """Register a factory method of another bean, see :meth:`Container.method`."""
        return self._container.method(receiver, method_name, *args)

    def set_property(self, key: str, value: Any) -> None:
        """Set a default property on the container."""
        self._container.set_property(key, value)

    @property
    def container(self) -> Container:
        return self._container

    @property
    def settings(self) -> Optional[AppSettings]:
        """Settings bound by :meth:`prepare`, or None before it ran."""
        return self._settings

    # bootstrap

    def prepare(self) -> AppSettings:
        """Load the command-line, environment and file layers and bind :class:`AppSettings`.

        Raises:
            ConfigReadError: If a configuration file cannot be parsed.
            TypeMismatchError: If a reserved property has the wrong type.
        """
        store: PropertyStore = self._container.properties()
        store.add_layer(load_command_line(self._argv), LayerPriority.COMMAND_LINE)
        environment = store.add_layer(load_environment(self._environ, store.keys()), LayerPriority.ENVIRONMENT)

        settings = store.bind(AppSettings)
        defaults = load_config_files(settings.config_locations, settings.config_extensions)
        store.add_layer(defaults, LayerPriority.DEFAULT_FILE)

        profiles = split_comma(store.get("spring.profiles.active", "") or "")
        for profile in [p for p in profiles if p]:
            layer = load_config_files(settings.config_locations, settings.config_extensions, profile)
            store.add_layer(layer, LayerPriority.PROFILE_FILE)

        apply_env_overrides(environment, self._environ, store.keys())
        self._settings = store.bind(AppSettings)
        logger.info(
            "Prepared application %r with profiles %s", self._settings.name, self._settings.profiles or "[]"
        )
        return self._settings

    def start(self) -> None:
        """Prepare, refresh the container, call runners and notify start events.

        Raises:
            RunnerFailedError: If a runner raises; the container is closed first.
            IoCError: Any configuration or refresh error.
        """
        if self._started:
            raise IoCError("Application already started")
        self._started = True
        settings = self.prepare()
        if settings.banner_visible:
            self._print_banner(settings)
        if settings.pid_file:
            Path(settings.pid_file).write_text(str(os.getpid()), encoding="utf-8")

        ctx = self._container.context
        try:
            self._container.refresh()
            for runner in self._container.collect(AppRunner):
                try:
                    runner.run(ctx)
                except Exception as e:
                    raise RunnerFailedError(runner, e) from e
            self._events = [d.value for d in self._container.beans() if isinstance(d.value, AppEvent)]
            for event in self._events:
                event.on_start(ctx)
        except BaseException:
            logger.error("Application start failed, closing container")
            try:
                self._close()
            except IoCError as e:
                logger.error("Closing after failed start reported errors: %s", e)
            raise
        logger.info("Application started")

    def run(self) -> None:
        """Start, wait for an exit request, then stop."""
        self.start()
        try:
            self._wait()
        finally:
            self.stop()

    def shutdown(self, reason: str = "") -> None:
        """Request the running application to stop; safe from any thread."""
        logger.info("Shutdown requested%s", f": {reason}" if reason else "")
        self._exit.set()

    @property
    def exiting(self) -> bool:
        """Whether shutdown has been requested."""
        return self._exit.is_set()

    def stop(self) -> None:
        """Notify stop events in reverse order and close the container.

        Raises:
            ShutdownError: If destroyers failed or were skipped.
        """
        if self._stopped:
            return
        self._stopped = True
        ctx = self._container.context
        for event in reversed(self._events):
            try:
                event.on_stop(ctx)
            except Exception:
                logger.exception("Stop event %r failed", event)
        self._close()
        logger.info("Application stopped")

    def main(self) -> int:
        """Run the application and return a process exit code."""
        try:
            self.run()
        except IoCError as e:
            logger.error("Application failed: %s", e)
            return 1
        return 0

    def _close(self) -> None:
        grace = self._settings.shutdown_grace if self._settings is not None else None
        try:
            self._container.close(grace.total_seconds() if grace is not None else None)
        finally:
            if self._settings is not None and self._settings.pid_file:
                Path(self._settings.pid_file).unlink(missing_ok=True)

    def _wait(self) -> None:
        previous = self._install_signal_handlers()
        try:
            while not self._exit.wait(0.5):
                continue
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def _install_signal_handlers(self) -> Dict[int, Any]:
        if threading.current_thread() is not threading.main_thread():
            return {}

        def handler(signum: int, frame: Any) -> None:
            self.shutdown(signal.Signals(signum).name)

        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, handler)
        return previous

    def _print_banner(self, settings: AppSettings) -> None:
        banner = read_banner(settings.config_locations) or DEFAULT_BANNER
        out = self._out if self._out is not None else sys.stdout
        out.write(banner if banner.endswith("\n") else banner + "\n")
        out.flush()
