import inspect
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from spring_ioc.domain.enums import BeanStatus, ConstructionKind, DirectiveKind, EdgeKind
from spring_ioc.domain.type_utils import simple_name, type_name

HIGHEST_ORDER = -(2**31)
LOWEST_ORDER = 2**31 - 1


class Property(BaseModel):
    """A single configuration entry and the layer it was read from.

    Attributes:
        key: Dotted path such as ``server.port`` or ``hosts[0].name``.
        value: Raw, unexpanded text.
        source: Identifier of the layer that defined the value.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Dotted property key.")
    value: str = Field(..., description="Raw property text.")
    source: str = Field(default="", description="Layer the property came from.")


class InjectionDirective(BaseModel):
    """Describes how one constructor parameter or attribute receives its value.

    Attributes:
        target: Parameter or attribute name.
        position: Parameter index for constructor arguments, None for fields.
        kind: Where the value comes from.
        tag: Property reference or bean selector text.
        selector: Type or definition selector when the tag is not textual.
        declared_type: Annotation of the target with ``Annotated`` stripped.
        required: False when absence is tolerated.
        has_default: The parameter's own default applies when nothing matches.
        lazy: Filled after both beans exist.
        collect: Receives every matching bean.
        const: Literal value for ``CONST`` directives.
        expressions: Validation expressions for ``VALUE`` directives.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    target: str = Field(..., description="Parameter or attribute name.")
    position: Optional[int] = Field(default=None, description="Argument index, None for fields.")
    kind: DirectiveKind = Field(..., description="Source of the injected value.")
    tag: str = Field(default="", description="Property reference or selector text.")
    selector: Any = Field(default=None, description="Non-textual selector.")
    declared_type: Any = Field(default=Any, description="Declared type of the target.")
    required: bool = Field(default=True, description="Whether a missing value is fatal.")
    has_default: bool = Field(default=False, description="Whether the parameter declares a default.")
    lazy: bool = Field(default=False, description="Whether the reference is filled late.")
    collect: bool = Field(default=False, description="Whether all matches are injected.")
    const: Any = Field(default=None, description="Literal argument value.")
    expressions: Tuple[str, ...] = Field(default=(), description="Validation expressions.")

    @property
    def is_field(self) -> bool:
        """Whether the directive targets an attribute rather than a parameter."""
        return self.position is None


class DependencyEdge(BaseModel):
    """Edge from a bean to a bean it needs before construction."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Identity of the dependent bean.")
    target: str = Field(..., description="Identity of the dependency.")
    kind: EdgeKind = Field(..., description="What introduced the edge.")
    lazy: bool = Field(default=False, description="Lazy edges are excluded from ordering.")


class BeanDefinition(BaseModel):
    """Registration record for a managed component.

    A definition is exactly one of an object, a factory call or a method call.
    Builder methods return the definition so options can be chained::

        container.provide(new_server, "${server.port}").name("server").init("start")

    Attributes:
        kind: Construction case.
        declared_type: Type the bean is registered under.
        value: Supplied object, or the constructed value once wired.
        factory: Callable for ``FACTORY`` definitions.
        receiver: Selector of the receiver bean for ``METHOD`` definitions.
        method_name: Method invoked on the receiver.
        args: Explicit constructor arguments.
        bean_name: Name, defaults to the simple type name.
        order_hint: Collection order, ascending.
        is_primary: Preferred candidate on ambiguous type lookups.
        exports: Extra types the bean can be looked up as.
        condition: Inclusion predicate.
        init_hooks: Called after injection, in declaration order.
        destroy_hooks: Called at shutdown, in declaration order.
        depends: Selectors of beans that must be wired first.
        status: Progress through refresh.
        file: Registration source file.
        line: Registration source line.
        registration_index: Position in registration order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: ConstructionKind = Field(..., description="Construction case of the bean.")
    declared_type: Any = Field(..., description="Type the bean is registered under.")
    value: Any = Field(default=None, description="Supplied or constructed value.")
    factory: Optional[Callable[..., Any]] = Field(default=None, description="Factory callable.")
    receiver: Any = Field(default=None, description="Receiver selector for method beans.")
    method_name: Optional[str] = Field(default=None, description="Receiver method name.")
    args: Tuple[Any, ...] = Field(default=(), description="Explicit constructor arguments.")
    bean_name: str = Field(default="", description="Bean name.")
    order_hint: int = Field(default=0, description="Collection order.")
    is_primary: bool = Field(default=False, description="Primary candidate flag.")
    exports: List[Any] = Field(default_factory=list, description="Exported lookup types.")
    condition: Any = Field(default=None, description="Inclusion condition.")
    init_hooks: List[Any] = Field(default_factory=list, description="Init hooks.")
    destroy_hooks: List[Any] = Field(default_factory=list, description="Destroy hooks.")
    depends: List[Any] = Field(default_factory=list, description="Explicit after-selectors.")
    status: BeanStatus = Field(default=BeanStatus.DEFAULT, description="Refresh progress.")
    file: str = Field(default="", description="Registration file.")
    line: int = Field(default=0, description="Registration line.")
    registration_index: int = Field(default=0, description="Registration order.")

    @model_validator(mode="after")
    def _check_construction(self) -> "BeanDefinition":
        cases = {
            ConstructionKind.OBJECT: self.value is not None,
            ConstructionKind.FACTORY: self.factory is not None,
            ConstructionKind.METHOD: self.method_name is not None,
        }
        set_cases = [kind for kind, present in cases.items() if present]
        if set_cases != [self.kind]:
            raise ValueError(
                f"a {self.kind.value} bean must set exactly its own construction case, got "
                f"{[kind.value for kind in set_cases]}"
            )
        if self.kind == ConstructionKind.METHOD and self.receiver is None:
            raise ValueError("a method bean needs a receiver selector")
        if self.kind == ConstructionKind.FACTORY and not callable(self.factory):
            raise ValueError("factory must be callable")
        if not self.bean_name:
            self.bean_name = simple_name(self.declared_type)
        return self

    @property
    def type_name(self) -> str:
        """Fully qualified name of the declared type."""
        return type_name(self.declared_type)

    @property
    def id(self) -> str:
        """Identity ``<type-name>:<bean-name>``."""
        return f"{self.type_name}:{self.bean_name}"

    @property
    def file_line(self) -> str:
        """Registration site as ``file:line``, empty when unknown."""
        return f"{self.file}:{self.line}" if self.file else ""

    def match(self, type_name_: str = "", bean_name: str = "") -> bool:
        """Check a ``type:name`` selector against this definition.

        The type part may be the full ``module/QualName`` or the simple name.
        """
        if type_name_ and type_name_ not in (self.type_name, simple_name(self.declared_type)):
            return False
        return not bean_name or bean_name == self.bean_name

    # builder API

    def name(self, name: str) -> "BeanDefinition":
        """Set the bean name used by name lookups and ``Autowire("name")``.

        Args:
            name: The bean name.

        Returns:
            This definition, for chaining.
        """
        self.bean_name = name
        return self

    def order(self, order: int) -> "BeanDefinition":
        """Set the order hint; collections are sorted by ascending hint.

        Args:
            order: Order hint, lower values first.

        Returns:
            This definition, for chaining.
        """
        self.order_hint = order
        return self

    def primary(self, primary: bool = True) -> "BeanDefinition":
        """Mark the bean as preferred when a type lookup finds several candidates.

        Returns:
            This definition, for chaining.
        """
        self.is_primary = primary
        return self

    def export(self, *types: Any) -> "BeanDefinition":
        """Make the bean available under additional types.

        Refresh checks that the bean is assignable to every exported type.

        Args:
            *types: Interfaces or base classes the bean provides.

        Returns:
            This definition, for chaining.

        Example:
            >>> container.provide(RedisCache).export(Cache)
        """
        for exported in types:
            if exported not in self.exports:
                self.exports.append(exported)
        return self

    def on(self, condition: Any) -> "BeanDefinition":
        """Attach a condition; several calls are combined with AND."""
        if self.condition is None:
            self.condition = condition
        else:
            self.condition = self.condition & condition
        return self

    def init(self, hook: Any) -> "BeanDefinition":
        """Add an init hook: a callable taking the bean (and optionally the app context) or a method name."""
        self.init_hooks.append(hook)
        return self

    def destroy(self, hook: Any) -> "BeanDefinition":
        """Add a destroy hook with the same shapes as :meth:`init`."""
        self.destroy_hooks.append(hook)
        return self

    def depends_on(self, *selectors: Any) -> "BeanDefinition":
        """Construct the given beans before this one.

        Args:
            *selectors: Types, name tags or definitions; a name ending in ``?``
                is skipped when missing.

        Returns:
            This definition, for chaining.
        """
        self.depends.extend(selectors)
        return self

    @property
    def callable_(self) -> Optional[Callable[..., Any]]:
        """The callable whose signature describes constructor arguments."""
        if self.kind == ConstructionKind.FACTORY:
            return self.factory
        if self.kind == ConstructionKind.METHOD and inspect.isclass(self.receiver_type):
            return getattr(self.receiver_type, self.method_name, None)
        return None

    @property
    def receiver_type(self) -> Any:
        """Type of the receiver of a method bean."""
        receiver = self.receiver
        if isinstance(receiver, BeanDefinition):
            return receiver.declared_type
        return receiver

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        location = f" {self.file_line}" if self.file else ""
        return f"BeanDefinition({self.id}{location})"

    __str__ = __repr__


class Destroyer(BaseModel):
    """Destroy hooks of one bean and the beans destroyed after it.

    Attributes:
        bean_id: Identity of the bean.
        dependencies: Identities the bean depends on; those are destroyed later.
        sequence: Construction position; destroyers run in descending sequence.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    bean_id: str = Field(..., description="Identity of the owning bean.")
    bean: Any = Field(..., description="Constructed bean value.")
    hooks: List[Any] = Field(default_factory=list, description="Destroy hooks.")
    dependencies: List[str] = Field(default_factory=list, description="Beans destroyed after this one.")
    sequence: int = Field(default=0, description="Construction position.")
    invoked: bool = Field(default=False, description="Whether the hooks already ran.")
