from enum import Enum


class BeanStatus(str, Enum):
    """Defines the progress of a bean definition through a refresh.

    Attributes:
        DEFAULT: Registered, condition not evaluated yet.
        RESOLVING: Condition is being evaluated.
        RESOLVED: Condition matched, the bean takes part in wiring.
        EXCLUDED: Condition did not match, the bean is dropped.
        WIRING: Constructor or injection in progress.
        WIRED: Constructed, injected and initialized.
        DESTROYED: Destroy hooks have run.
    """

    DEFAULT = "default"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    EXCLUDED = "excluded"
    WIRING = "wiring"
    WIRED = "wired"
    DESTROYED = "destroyed"

    def __str__(self) -> str:
        return self.value


class ConstructionKind(str, Enum):
    """How a bean definition produces its value.

    Attributes:
        OBJECT: A preconstructed value supplied at registration.
        FACTORY: A callable (function or class) invoked with injected arguments.
        METHOD: A method invoked on another registered bean.
    """

    OBJECT = "object"
    FACTORY = "factory"
    METHOD = "method"

    def __str__(self) -> str:
        return self.value


class EdgeKind(str, Enum):
    """Origin of a dependency edge between two bean definitions."""

    CONSTRUCTOR_ARG = "constructor-arg"
    FIELD = "field"
    RECEIVER = "receiver"
    EXPLICIT_AFTER = "explicit-after"

    def __str__(self) -> str:
        return self.value


class DirectiveKind(str, Enum):
    """Source of an injected value.

    Attributes:
        VALUE: Read from the property store (``${key:=default}``).
        BEAN: Looked up in the container (single bean or collection).
        CONST: A literal supplied at registration.
        DEFAULT: Left to the parameter's own default.
    """

    VALUE = "value"
    BEAN = "bean"
    CONST = "const"
    DEFAULT = "default"

    def __str__(self) -> str:
        return self.value


class ContainerState(str, Enum):
    """Lifecycle state of a container."""

    REGISTERING = "registering"
    REFRESHING = "refreshing"
    REFRESHED = "refreshed"
    CLOSING = "closing"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value
