import inspect
import logging
import threading
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar

from spring_ioc.application.app_context import AppContext, BackgroundTask
from spring_ioc.application.directives import argument_directives, field_directives, return_type
from spring_ioc.application.lifecycle_manager import LifecycleManager
from spring_ioc.application.properties import PropertyStore
from spring_ioc.application.resolver import DependencyResolver, sort_for_collection
from spring_ioc.domain import (
    BeanDefinition,
    BeanStatus,
    ConstructionKind,
    ContainerState,
    DirectiveKind,
    IoCError,
    IRegistry,
    NotFoundError,
    TypeMismatchError,
    WireAfterRefreshError,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Container(IRegistry):
    """IoC container holding bean definitions until refresh and beans afterwards.

    Definitions are registered with :meth:`object`, :meth:`provide` and
    :meth:`method`; each returns the definition so options can be chained.
    :meth:`refresh` freezes the properties, decides conditions, wires every
    included bean and seals the container. :meth:`close` tears it down.

    Example:
        >>> container = Container()
        >>> container.set_property("server.port", 8080)
        >>> container.provide(Server, "${server.port}").name("server").destroy("stop")
        >>> container.refresh()
        >>> server = container.get_by_type(Server)
        >>> container.close()

    Attributes:
        _properties: Layered property store, frozen by refresh.
        _definitions: Registered definitions in registration order.
        _context: Cancellation root shared with background tasks.
        _lifecycle: Owner of background tasks and destroyers.
        _resolver: Component deciding, ordering and wiring definitions.
        _state: Container lifecycle state.
    """

    def __init__(self, properties: Optional[PropertyStore] = None) -> None:
        """Initialize an empty container in the registering state.

        Args:
            properties: Property store to use; a new empty store when omitted.
        """
        self._properties = properties if properties is not None else PropertyStore()
        self._definitions: List[BeanDefinition] = []
        self._context = AppContext(self._properties, self)
        self._lifecycle = LifecycleManager(self._context)
        self._resolver = DependencyResolver(self._properties, self._lifecycle)
        self._state = ContainerState.REGISTERING
        self._lock = threading.RLock()
        self._construction_order: List[BeanDefinition] = []

    # registration

    def register(self, definition: BeanDefinition) -> BeanDefinition:
        """Add a prepared definition.

        Raises:
            WireAfterRefreshError: If refresh already started.
        """
        with self._lock:
            self._check_registering()
            definition.registration_index = len(self._definitions)
            if not definition.file:
                definition.file, definition.line = _caller()
            self._definitions.append(definition)
        logger.debug("Registered %s", definition)
        return definition

    def object(self, value: Any) -> BeanDefinition:
        """Register a preconstructed value.

        Raises:
            TypeMismatchError: If the value is None.
        """
        if value is None:
            raise TypeMismatchError("Cannot register None as a bean")
        return self.register(BeanDefinition(kind=ConstructionKind.OBJECT, declared_type=type(value), value=value))

    def provide(self, factory: Callable[..., Any], *args: Any) -> BeanDefinition:
        """Register a class or factory function whose arguments are injected.

        Args:
            factory: A class, or a function annotated with its return type.
            *args: Explicit arguments: ``"${key:=default}"`` property references,
                bean selector tags, types, definitions or :class:`Const` literals.

        Raises:
            TypeMismatchError: If a factory function does not declare its return type.
        """
        declared = return_type(factory)
        if declared is None:
            raise TypeMismatchError(f"Factory {_name(factory)} must declare its return type")
        return self.register(
            BeanDefinition(kind=ConstructionKind.FACTORY, declared_type=declared, factory=factory, args=args)
        )

    def method(self, receiver: Any, method_name: str, *args: Any) -> BeanDefinition:
        """Register the result of calling a method on another bean.

        Args:
            receiver: Definition or type of the receiver bean.
            method_name: Method invoked on the wired receiver.
            *args: Explicit arguments, as for :meth:`provide`.

        Raises:
            NotFoundError: If the receiver type has no such method.
            TypeMismatchError: If the receiver is not a definition or a type, or the
                method does not declare its return type.
        """
        if isinstance(receiver, BeanDefinition):
            receiver_type = receiver.declared_type
        elif inspect.isclass(receiver):
            receiver_type = receiver
        else:
            raise TypeMismatchError(f"Method receiver must be a bean definition or a type, got {receiver!r}")
        fn = getattr(receiver_type, method_name, None)
        if fn is None or not callable(fn):
            raise NotFoundError(f"{_name(receiver_type)}.{method_name}", "receiver has no such method")
        declared = return_type(fn)
        if declared is None:
            raise TypeMismatchError(f"Method {_name(fn)} must declare its return type")
        return self.register(
            BeanDefinition(
                kind=ConstructionKind.METHOD,
                declared_type=declared,
                receiver=receiver,
                method_name=method_name,
                args=args,
            )
        )

    def set_property(self, key: str, value: Any) -> None:
        """Set a programmatic default, the lowest-priority property layer.

        Raises:
            WireAfterRefreshError: If refresh already started.
        """
        with self._lock:
            self._check_registering()
            self._properties.set(key, value)

    def _check_registering(self) -> None:
        if self._state != ContainerState.REGISTERING:
            raise WireAfterRefreshError(f"Container is {self._state}, registration is closed")

    # refresh and close

    def refresh(self) -> None:
        """Decide conditions, then construct, inject and initialize every included bean.

        Raises:
            WireAfterRefreshError: If the container was already refreshed.
            IoCError: Any resolution or construction error; beans wired so far are destroyed.
        """
        with self._lock:
            self._check_registering()
            self.register(BeanDefinition(kind=ConstructionKind.OBJECT, declared_type=Container, value=self))
            self.register(
                BeanDefinition(kind=ConstructionKind.OBJECT, declared_type=AppContext, value=self._context)
            )
            self._state = ContainerState.REFRESHING
            self._properties.freeze()
            logger.info("Refreshing container with %d definitions", len(self._definitions))
            try:
                included = self._resolver.resolve(self._definitions)
                self._construction_order = self._resolver.wire(included)
            except BaseException:
                logger.error("Refresh failed, destroying beans wired so far")
                self._abort()
                raise
            self._state = ContainerState.REFRESHED
            logger.info("Container refreshed with %d beans", len(self._construction_order))

    def _abort(self) -> None:
        self._state = ContainerState.CLOSING
        try:
            self._lifecycle.shutdown()
        except IoCError as e:
            logger.error("Cleanup after failed refresh reported errors: %s", e)
        self._state = ContainerState.CLOSED

    def close(self, grace: Optional[float] = None) -> None:
        """Cancel background tasks and run destroyers in reverse construction order.

        Args:
            grace: Seconds allowed for tasks and destroyers; None waits without limit.

        Raises:
            ShutdownError: If destroyers failed or were skipped.
        """
        with self._lock:
            if self._state in (ContainerState.CLOSING, ContainerState.CLOSED):
                return
            self._state = ContainerState.CLOSING
        try:
            self._lifecycle.shutdown(grace)
        finally:
            for definition in self._construction_order:
                definition.status = BeanStatus.DESTROYED
            self._state = ContainerState.CLOSED

    @property
    def state(self) -> ContainerState:
        """Current lifecycle state of the container."""
        return self._state

    @property
    def context(self) -> AppContext:
        """The application context shared with hooks and background tasks."""
        return self._context

    def go(self, fn: Callable[[AppContext], Any], name: Optional[str] = None) -> BackgroundTask:
        """Run ``fn(ctx)`` on a supervised background task.

        Raises:
            ShutdownInProgressError: If shutdown already began.
        """
        return self._lifecycle.go(fn, name)

    # registry facade

    def _check_refreshed(self) -> None:
        if self._state != ContainerState.REFRESHED:
            raise IoCError(f"Container is {self._state}, lookups need a refreshed container")

    def get_by_name(self, name: str) -> Any:
        """Look up a bean by name.

        Args:
            name: Bean name, or a ``type:name`` tag.

        Returns:
            The wired bean.

        Raises:
            IoCError: If the container is not refreshed.
            NotFoundError: If no included bean has the name.
            AmbiguousDependencyError: If several beans match and not exactly one is primary.
        """
        self._check_refreshed()
        return self._resolver.select_one(name, self._resolver.candidates(name)).value

    def get_by_type(self, dependency_type: Type[T]) -> T:
        """Look up the single bean assignable to a type.

        Exported types count as well as the declared type. Among several
        candidates the single primary one wins.

        Args:
            dependency_type: The type to look up.

        Returns:
            The wired bean.

        Raises:
            IoCError: If the container is not refreshed.
            NotFoundError: If no included bean provides the type.
            AmbiguousDependencyError: If several beans match and not exactly one is primary.

        Example:
            >>> container.get_by_type(UserRepository)
        """
        self._check_refreshed()
        return self._resolver.select_one(dependency_type, self._resolver.candidates(dependency_type)).value

    def resolve(self, selector: Any) -> Any:
        """Return the bean for a name tag or a type."""
        if isinstance(selector, str):
            return self.get_by_name(selector)
        return self.get_by_type(selector)

    def find(self, selector: Any) -> List[BeanDefinition]:
        """Return the included definitions matching a selector.

        Args:
            selector: A name tag, a type or a :class:`BeanDefinition`.

        Returns:
            Matching definitions in registration order, possibly empty.

        Raises:
            IoCError: If the container is not refreshed.
        """
        self._check_refreshed()
        return self._resolver.candidates(selector)

    def collect(self, element_type: Type[T]) -> List[T]:
        """Return every bean assignable to a type.

        Args:
            element_type: The element type to collect.

        Returns:
            Beans ordered by their order hint, then by registration order.

        Raises:
            IoCError: If the container is not refreshed.
        """
        self._check_refreshed()
        return [definition.value for definition in sort_for_collection(self._resolver.candidates(element_type))]

    def properties(self) -> PropertyStore:
        """Return the property store; it is read only once refresh started."""
        return self._properties

    def definitions(self) -> List[BeanDefinition]:
        """Return every registered definition, included or not."""
        return list(self._definitions)

    def beans(self) -> List[BeanDefinition]:
        """Return wired definitions in construction order."""
        return list(self._construction_order)

    def wire(self, obj: T) -> T:
        """Inject ``Value`` and ``Autowire`` attributes of an object the container does not manage.

        Raises:
            NotFoundError: If a required bean is missing.
            TypeMismatchError: If a value does not fit its attribute.
        """
        self._check_refreshed()
        for directive in field_directives(type(obj)):
            found = self._resolver.targets(directive) if directive.kind == DirectiveKind.BEAN else []
            if directive.kind == DirectiveKind.BEAN and not found and not directive.required:
                continue
            setattr(obj, directive.target, self._resolver.value_for(type(obj).__name__, directive, found))
        return obj

    def invoke(self, fn: Callable[..., T], *args: Any) -> T:
        """Call ``fn`` with injected arguments, as :meth:`provide` would.

        Exceptions raised by ``fn`` propagate unchanged.
        """
        self._check_refreshed()
        arguments = []
        for directive, kind in argument_directives(fn, args):
            found = self._resolver.targets(directive) if directive.kind == DirectiveKind.BEAN else []
            arguments.append((directive, kind, found))
        call_args, call_kwargs = self._resolver.call_arguments(_name(fn), fn, arguments)
        return fn(*call_args, **call_kwargs)

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Container(state={self._state}, definitions={len(self._definitions)})"


def _caller() -> Tuple[str, int]:
    frame = inspect.currentframe()
    try:
        while frame is not None and frame.f_globals.get("__name__", "").startswith("spring_ioc."):
            frame = frame.f_back
        if frame is None:
            return "", 0
        return frame.f_code.co_filename, frame.f_lineno
    finally:
        del frame


def _name(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
