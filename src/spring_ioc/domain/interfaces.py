from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Type, TypeVar

from spring_ioc.domain.models import BeanDefinition

if TYPE_CHECKING:
    from spring_ioc.application.app_context import AppContext

T = TypeVar("T")


class IProperties(ABC):
    """Abstract read interface of a property store."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """Return whether the key, or any key below it, is defined.

        Args:
            key: Dotted property key.
        """

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the expanded value of a key, or ``default`` when it is missing.

        Args:
            key: Dotted property key.
            default: Fallback value.
        """

    @abstractmethod
    def resolve(self, text: str) -> str:
        """Expand every ``${key:=default}`` reference in the text."""

    @abstractmethod
    def bind(self, target: Any, key: str = "") -> Any:
        """Bind the properties below ``key`` to a type and return the value.

        Args:
            target: A pydantic model class, a primitive or a generic collection type.
            key: Root key or a ``${key:=default}`` reference.
        """

    @abstractmethod
    def keys(self) -> List[str]:
        """Return every defined key, sorted."""


class IConditionContext(ABC):
    """What a condition can observe while it is evaluated."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """Return whether a property is defined."""

    @abstractmethod
    def prop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return a property value."""

    @abstractmethod
    def find(self, selector: Any) -> List[BeanDefinition]:
        """Return the included definitions matching a selector."""


class ICondition(ABC):
    """Predicate deciding whether a bean definition takes part in wiring."""

    @abstractmethod
    def matches(self, ctx: IConditionContext) -> bool:
        """Evaluate the condition.

        Args:
            ctx: Properties and bean lookup available during evaluation.
        """

    def bean_selectors(self) -> List[Any]:
        """Selectors of beans this condition looks up."""
        return []


class IRegistry(ABC):
    """Runtime lookup surface of a refreshed container."""

    @abstractmethod
    def get_by_name(self, name: str) -> Any:
        """Return the bean with the given name.

        Raises:
            NotFoundError: If no bean has that name.
        """

    @abstractmethod
    def get_by_type(self, dependency_type: Type[T]) -> T:
        """Return the unique (or primary) bean assignable to the type.

        Raises:
            NotFoundError: If no bean matches.
            AmbiguousDependencyError: If several match and no single primary exists.
        """

    @abstractmethod
    def find(self, selector: Any) -> List[BeanDefinition]:
        """Return the definitions matching a name tag, a type or a definition."""

    @abstractmethod
    def collect(self, element_type: Type[T]) -> List[T]:
        """Return every bean assignable to the type in collection order."""

    @abstractmethod
    def properties(self) -> IProperties:
        """Return the frozen property store."""


class IResolver(ABC):
    """Abstract interface for resolution and wiring of definitions."""

    @abstractmethod
    def resolve(self, definitions: List[BeanDefinition]) -> List[BeanDefinition]:
        """Evaluate conditions and return the included definitions.

        Args:
            definitions: Every registered definition in registration order.
        """

    @abstractmethod
    def wire(self, definitions: List[BeanDefinition]) -> List[BeanDefinition]:
        """Construct, inject and initialize the included definitions.

        Returns:
            The definitions in construction order.
        """


class ILifecycleManager(ABC):
    """Abstract interface for background tasks and ordered teardown."""

    @abstractmethod
    def go(self, fn: Callable[["AppContext"], Any], name: Optional[str] = None) -> Any:
        """Run ``fn`` on a supervised background task."""

    @abstractmethod
    def register_destroyer(
        self,
        bean_id: str,
        bean: Any,
        hooks: List[Any],
        dependencies: List[str],
        sequence: Optional[int] = None,
    ) -> None:
        """Record destroy hooks of a freshly wired bean."""

    @abstractmethod
    def shutdown(self, grace: Optional[float] = None) -> None:
        """Cancel tasks, join them and invoke destroyers in reverse construction order."""


class AppRunner(ABC):
    """Component called once, synchronously, after the container is wired."""

    @abstractmethod
    def run(self, ctx: "AppContext") -> None:
        """Run the component's start-up work."""


class AppEvent(ABC):
    """Component notified when the application starts and stops."""

    @abstractmethod
    def on_start(self, ctx: "AppContext") -> None:
        """Called after runners, in construction order."""

    @abstractmethod
    def on_stop(self, ctx: "AppContext") -> None:
        """Called on shutdown, in reverse construction order."""
