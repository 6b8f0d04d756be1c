"""Condition pruning, dependency graph construction and wiring of bean definitions."""

import inspect
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from spring_ioc.application.binder import bind_value
from spring_ioc.application.circular_detector import CircularDependencyDetector
from spring_ioc.application.directives import argument_directives, field_directives
from spring_ioc.application.graph import DependencyGraph
from spring_ioc.application.hooks import hook_name, invoke_hook
from spring_ioc.domain import (
    AmbiguousDependencyError,
    BeanDefinition,
    BeanStatus,
    ConditionCycleError,
    ConstructionFailedError,
    ConstructionKind,
    DependencyEdge,
    DirectiveKind,
    EdgeKind,
    IConditionContext,
    ILifecycleManager,
    InjectionDirective,
    IoCError,
    IResolver,
    NotFoundError,
    RefreshError,
    TypeMismatchError,
)
from spring_ioc.domain.tags import is_collection_tag, parse_collection_tag, parse_wire_tag
from spring_ioc.domain.type_utils import collection_shape, element_type, is_assignable, is_subtype, unwrap_optional

logger = logging.getLogger(__name__)

Targets = List[BeanDefinition]


class ConditionContext(IConditionContext):
    """View of properties and candidate beans offered to one definition's condition.

    Bean lookups decide the conditions of the beans they return, and never
    return the definition being decided.
    """

    def __init__(self, resolver: "DependencyResolver", current: BeanDefinition) -> None:
        """Initialize the context for one definition.

        Args:
            resolver: Resolver owning the definitions and properties.
            current: Definition whose condition is being decided.
        """
        self._resolver = resolver
        self._current = current

    def has(self, key: str) -> bool:
        return self._resolver.properties.has(key)

    def prop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._resolver.properties.get(key, default)

    def find(self, selector: Any) -> List[BeanDefinition]:
        """Return included candidates other than the current definition.

        Args:
            selector: Type, wire tag or definition.

        Returns:
            Matching definitions whose own conditions hold.

        Raises:
            ConditionCycleError: If deciding a candidate leads back to a definition being decided.
        """
        candidates = self._resolver.candidates(selector, include_undecided=True)
        return [
            candidate
            for candidate in candidates
            if candidate is not self._current and self._resolver.decide(candidate)
        ]


class _Plan:
    """Resolved injection sources of one definition."""

    def __init__(self, definition: BeanDefinition) -> None:
        self.definition = definition
        self.arguments: List[Tuple[InjectionDirective, Any, Targets]] = []
        self.fields: List[Tuple[InjectionDirective, Targets]] = []
        self.receiver: Optional[BeanDefinition] = None
        self.depends: Targets = []


class DependencyResolver(IResolver):
    """Decides, orders and wires bean definitions.

    ``resolve`` evaluates conditions and indexes the included definitions.
    ``wire`` plans every injection, orders construction with a topological
    sort and constructs, injects and initializes each bean. Beans holding lazy
    references are initialized after every lazy reference is filled.

    Attributes:
        properties: Frozen property store used by conditions and value injection.
        lifecycle: Receives destroyers and supplies the app context to hooks.
        _definitions: Every registered definition in registration order.
        _included: Definitions whose condition matched.
    """

    def __init__(self, properties: Any, lifecycle: ILifecycleManager) -> None:
        """Initialize the resolver.

        Args:
            properties: Property store, frozen before wiring.
            lifecycle: Lifecycle manager receiving destroyers.
        """
        self.properties = properties
        self.lifecycle = lifecycle
        self._definitions: List[BeanDefinition] = []
        self._included: List[BeanDefinition] = []
        self._detector = CircularDependencyDetector(ConditionCycleError)
        self._wired: List[BeanDefinition] = []

    # Phase B: condition pruning

    def resolve(self, definitions: List[BeanDefinition]) -> List[BeanDefinition]:
        """Decide every definition's condition and return the included ones.

        Raises:
            ConditionCycleError: If conditions depend on each other cyclically.
            AmbiguousDependencyError: If two included definitions share an identity.
        """
        self._definitions = list(definitions)
        for definition in self._definitions:
            self.decide(definition)
        self._included = [d for d in self._definitions if d.status == BeanStatus.RESOLVED]
        self._check_identities()
        excluded = len(self._definitions) - len(self._included)
        logger.info("Resolved %d beans, %d excluded by conditions", len(self._included), excluded)
        return list(self._included)

    def decide(self, definition: BeanDefinition) -> bool:
        """Evaluate a definition's condition once and record the outcome."""
        if definition.status == BeanStatus.EXCLUDED:
            return False
        if definition.status != BeanStatus.DEFAULT and definition.status != BeanStatus.RESOLVING:
            return True
        self._detector.push(definition.id)
        try:
            definition.status = BeanStatus.RESOLVING
            matched = True
            if definition.condition is not None:
                matched = bool(definition.condition.matches(ConditionContext(self, definition)))
            definition.status = BeanStatus.RESOLVED if matched else BeanStatus.EXCLUDED
            if not matched:
                logger.debug("Excluded %s, condition %r did not match", definition, definition.condition)
            return matched
        except BaseException:
            definition.status = BeanStatus.DEFAULT
            raise
        finally:
            self._detector.pop()

    def _check_identities(self) -> None:
        seen: Dict[str, BeanDefinition] = {}
        for definition in self._included:
            other = seen.setdefault(definition.id, definition)
            if other is not definition:
                raise AmbiguousDependencyError(definition.id, [str(other), str(definition)])

    # Phase C: lookup

    def candidates(self, selector: Any, include_undecided: bool = False) -> List[BeanDefinition]:
        """Return definitions matching a name tag, a type or a definition, in registration order.

        Args:
            selector: ``"type:name"`` tag, a type, or a :class:`BeanDefinition`.
            include_undecided: Also return definitions whose condition is pending.
        """
        pool = self._definitions if include_undecided else self._included
        pool = [d for d in pool if d.status != BeanStatus.EXCLUDED]
        if isinstance(selector, BeanDefinition):
            return [d for d in pool if d is selector]
        if isinstance(selector, str):
            tag = parse_wire_tag(selector)
            return [d for d in pool if d.match(tag.type_name, tag.bean_name)]
        return [d for d in pool if provides(d, selector)]

    def find(self, selector: Any) -> List[BeanDefinition]:
        """Return included definitions matching a selector."""
        return self.candidates(selector)

    def included(self) -> List[BeanDefinition]:
        """Return the definitions whose condition matched, in registration order."""
        return list(self._included)

    def select_one(self, selector: Any, candidates: Sequence[BeanDefinition]) -> BeanDefinition:
        """Pick the single candidate, or the single primary among several.

        Raises:
            NotFoundError: If there is no candidate.
            AmbiguousDependencyError: If several candidates and not exactly one primary.
        """
        if not candidates:
            raise NotFoundError(selector)
        if len(candidates) == 1:
            return candidates[0]
        primaries = [candidate for candidate in candidates if candidate.is_primary]
        if len(primaries) == 1:
            return primaries[0]
        pool = primaries or candidates
        raise AmbiguousDependencyError(selector, [str(candidate) for candidate in pool])

    def targets(self, directive: InjectionDirective) -> Targets:
        """Return the definitions a bean directive injects, in injection order.

        Raises:
            NotFoundError: If a required target is missing.
            AmbiguousDependencyError: If a single target cannot be chosen.
        """
        wanted = element_type(directive.declared_type) if directive.collect else directive.declared_type
        wanted, _ = unwrap_optional(wanted)
        if isinstance(directive.selector, BeanDefinition):
            found = self.candidates(directive.selector)
            if not found and directive.required:
                raise NotFoundError(directive.selector, f"{directive.selector} is not included")
            return found
        if directive.selector is not None:
            return self._single(directive, directive.selector, self.candidates(directive.selector))
        if directive.collect:
            return self._collect(directive, wanted)
        if directive.tag:
            tag = parse_wire_tag(directive.tag)
            found = [d for d in self.candidates(directive.tag) if _accepts_type(d, wanted)]
            return self._single(directive, str(tag), found)
        return self._single(directive, wanted, self.candidates(wanted))

    def _single(self, directive: InjectionDirective, selector: Any, found: Targets) -> Targets:
        if not found and not directive.required:
            return []
        return [self.select_one(selector, found)]

    def _collect(self, directive: InjectionDirective, wanted: Any) -> Targets:
        tag = parse_collection_tag(directive.tag) if is_collection_tag(directive.tag) else None
        if tag is None or tag.collect_all:
            result = sort_for_collection(self.candidates(wanted))
        else:
            result = []
            for item in tag.items:
                found = [d for d in self.candidates(str(item).rstrip("?")) if _accepts_type(d, wanted)]
                if not found and item.nullable:
                    continue
                result.append(self.select_one(str(item), found))
        nullable = tag.nullable if tag is not None else False
        if not result and directive.required and not nullable:
            raise NotFoundError(wanted, f"no beans to collect for {directive.target}")
        return result

    # Phase D and E: planning and ordering

    def wire(self, definitions: List[BeanDefinition]) -> List[BeanDefinition]:
        """Construct, inject and initialize definitions in dependency order.

        Raises:
            RefreshError: If several definitions cannot be planned.
            IoCError: The single planning error, a cycle, or a construction failure.
        """
        plans, graph = self._plan_all(definitions)
        order = [plans[node] for node in graph.construction_order()]
        logger.debug("Construction order: %s", ", ".join(plan.definition.id for plan in order))
        self._construct_all(order, graph)
        return [plan.definition for plan in order]

    def _plan_all(self, definitions: List[BeanDefinition]) -> Tuple[Dict[str, _Plan], DependencyGraph]:
        graph = DependencyGraph()
        for definition in definitions:
            graph.add_node(definition.id)
        plans: Dict[str, _Plan] = {}
        errors: List[Exception] = []
        for definition in definitions:
            try:
                plan = self._plan(definition)
            except IoCError as e:
                errors.append(_annotate(e, definition))
                continue
            plans[definition.id] = plan
            for edge in _edges(plan):
                if edge.target != edge.source:
                    graph.add_edge(edge)
                elif not edge.lazy:
                    errors.append(TypeMismatchError(f"Bean {definition} depends on itself"))
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise RefreshError(errors)
        return plans, graph

    def _plan(self, definition: BeanDefinition) -> _Plan:
        plan = _Plan(definition)
        if definition.kind == ConstructionKind.METHOD:
            plan.receiver = self._receiver(definition)
        plan.depends = self._depends(definition)
        callable_ = definition.callable_
        if callable_ is not None:
            skip_receiver = definition.kind == ConstructionKind.METHOD
            for directive, kind in argument_directives(callable_, definition.args, skip_first=skip_receiver):
                found = self.targets(directive) if directive.kind == DirectiveKind.BEAN else []
                plan.arguments.append((directive, kind, found))
        for directive in field_directives(_field_owner(definition)):
            plan.fields.append((directive, self.targets(directive) if directive.kind == DirectiveKind.BEAN else []))
        return plan

    def _receiver(self, definition: BeanDefinition) -> BeanDefinition:
        selector = definition.receiver
        return self.select_one(selector, self.candidates(selector))

    def _depends(self, definition: BeanDefinition) -> Targets:
        found: Targets = []
        for selector in definition.depends:
            matches = self.candidates(selector)
            optional = isinstance(selector, str) and selector.endswith("?")
            if not matches and not optional:
                raise NotFoundError(selector, f"{definition} depends on it")
            found.extend(matches)
        return found

    # Phase F: instantiation

    def _construct_all(self, order: List[_Plan], graph: DependencyGraph) -> None:
        deferred: List[Tuple[int, _Plan]] = []
        waiting: set = set()
        for sequence, plan in enumerate(order):
            definition = plan.definition
            definition.status = BeanStatus.WIRING
            bean = self._construct(plan)
            definition.value = bean
            lazy_fields = self._inject_fields(plan, bean)
            if lazy_fields or any(dep in waiting for dep in graph.dependencies(definition.id)):
                waiting.add(definition.id)
                deferred.append((sequence, plan))
                continue
            self._finish(plan, sequence, graph)

        for sequence, plan in deferred:
            bean = plan.definition.value
            for directive, found in plan.fields:
                if directive.lazy:
                    self._assign(plan.definition, bean, directive, found)
        for sequence, plan in deferred:
            self._finish(plan, sequence, graph)

    def _construct(self, plan: _Plan) -> Any:
        definition = plan.definition
        if definition.kind == ConstructionKind.OBJECT:
            return definition.value
        fn = callable_of(definition)
        args, kwargs = self.call_arguments(definition, fn, plan.arguments)
        if definition.kind == ConstructionKind.METHOD:
            fn = getattr(plan.receiver.value, definition.method_name)
        try:
            bean = fn(*args, **kwargs)
        except IoCError:
            raise
        except Exception as e:
            raise ConstructionFailedError(definition.id, f"{type(e).__name__}: {e}") from e
        if bean is None:
            raise ConstructionFailedError(definition.id, "factory returned None")
        self._check_bean_type(definition, bean)
        logger.debug("Constructed %s", definition)
        return bean

    def call_arguments(
        self,
        owner: Any,
        fn: Any,
        arguments: Sequence[Tuple[InjectionDirective, Any, Targets]],
    ) -> Tuple[List[Any], Dict[str, Any]]:
        """Turn planned arguments into ``*args`` and ``**kwargs`` for ``fn``.

        Parameters left to their default are omitted when passed by keyword.
        Once ``*args`` receives values every positional parameter is passed
        positionally.
        """
        params = inspect.signature(fn).parameters
        spread = any(kind == inspect.Parameter.VAR_POSITIONAL for _, kind, _ in arguments)
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for directive, kind, found in arguments:
            by_position = kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.VAR_POSITIONAL) or (
                spread and kind == inspect.Parameter.POSITIONAL_OR_KEYWORD
            )
            missing = directive.kind == DirectiveKind.DEFAULT or (
                directive.kind == DirectiveKind.BEAN and not found and not directive.required
            )
            if missing and directive.has_default:
                if not by_position:
                    continue
                value = params[directive.target].default
            elif missing:
                value = None
            else:
                value = self.value_for(owner, directive, found)
            if by_position:
                args.append(value)
            else:
                kwargs[directive.target] = value
        return args, kwargs

    def _check_bean_type(self, definition: BeanDefinition, bean: Any) -> None:
        if not is_assignable(bean, definition.declared_type):
            raise TypeMismatchError(
                f"Bean {definition} produced {type(bean).__name__}, not a {definition.declared_type!r}"
            )
        for exported in definition.exports:
            if not is_assignable(bean, exported):
                raise TypeMismatchError(f"Bean {definition} does not implement exported type {exported!r}")

    def _inject_fields(self, plan: _Plan, bean: Any) -> bool:
        lazy = False
        for directive, found in plan.fields:
            if directive.lazy:
                lazy = True
                continue
            self._assign(plan.definition, bean, directive, found)
        return lazy

    def _assign(self, definition: BeanDefinition, bean: Any, directive: InjectionDirective, found: Targets) -> None:
        if directive.kind == DirectiveKind.BEAN and not found and not directive.required:
            if not hasattr(bean, directive.target):
                setattr(bean, directive.target, None)
            return
        value = self.value_for(definition, directive, found)
        try:
            setattr(bean, directive.target, value)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConstructionFailedError(definition.id, f"cannot set {directive.target}: {e}") from e

    def value_for(self, owner: Any, directive: InjectionDirective, found: Targets) -> Any:
        """Compute the value a directive injects and check it against the declared type.

        Raises:
            TypeMismatchError: If the value is not assignable to the declared type.
        """
        path = f"{owner}.{directive.target}"
        if directive.kind == DirectiveKind.CONST:
            value = directive.const
        elif directive.kind == DirectiveKind.VALUE:
            value = bind_value(self.properties, directive.declared_type, directive.tag, directive.expressions, path)
        elif directive.kind == DirectiveKind.DEFAULT:
            value = None
        elif directive.collect:
            value = _collection(directive.declared_type, found)
        else:
            value = found[0].value if found else None
        if not is_assignable(value, directive.declared_type):
            raise TypeMismatchError(
                f"Cannot inject {type(value).__name__} into {path} declared as {directive.declared_type!r}"
            )
        return value

    def _finish(self, plan: _Plan, sequence: int, graph: DependencyGraph) -> None:
        definition = plan.definition
        bean = definition.value
        for hook in definition.init_hooks:
            try:
                invoke_hook(hook, bean, getattr(self.lifecycle, "context", None))
            except IoCError:
                raise
            except Exception as e:
                raise ConstructionFailedError(
                    definition.id, f"init hook {hook_name(hook)} failed: {type(e).__name__}: {e}"
                ) from e
        if definition.destroy_hooks:
            self.lifecycle.register_destroyer(
                definition.id, bean, definition.destroy_hooks, graph.dependencies(definition.id), sequence
            )
        definition.status = BeanStatus.WIRED
        self._wired.append(definition)

    def wired(self) -> List[BeanDefinition]:
        """Return definitions in the order their wiring completed."""
        return list(self._wired)


def provides(definition: BeanDefinition, wanted: Any) -> bool:
    """True if ``definition`` can be looked up as ``wanted``."""
    if wanted is Any or wanted is object:
        return True
    if is_subtype(definition.declared_type, wanted):
        return True
    return any(is_subtype(exported, wanted) for exported in definition.exports)


def sort_for_collection(definitions: Sequence[BeanDefinition]) -> List[BeanDefinition]:
    """Order by order hint, then registration order."""
    return sorted(definitions, key=lambda d: (d.order_hint, d.registration_index))


def callable_of(definition: BeanDefinition) -> Any:
    return definition.callable_


def _accepts_type(definition: BeanDefinition, wanted: Any) -> bool:
    if not inspect.isclass(wanted):
        return True
    return provides(definition, wanted)


def _collection(declared_type: Any, found: Targets) -> Any:
    shape = collection_shape(declared_type)
    container = shape[0] if shape is not None else list
    if container is dict:
        return {definition.bean_name: definition.value for definition in found}
    return container(definition.value for definition in found)


def _field_owner(definition: BeanDefinition) -> type:
    if definition.kind == ConstructionKind.OBJECT:
        return type(definition.value)
    declared = definition.declared_type
    return declared if inspect.isclass(declared) else type(None)


def _edges(plan: _Plan) -> List[DependencyEdge]:
    source = plan.definition.id
    edges: List[DependencyEdge] = []
    for directive, _, found in plan.arguments:
        for target in found:
            edges.append(DependencyEdge(source=source, target=target.id, kind=EdgeKind.CONSTRUCTOR_ARG))
    for directive, found in plan.fields:
        for target in found:
            edges.append(
                DependencyEdge(source=source, target=target.id, kind=EdgeKind.FIELD, lazy=directive.lazy)
            )
    if plan.receiver is not None:
        edges.append(DependencyEdge(source=source, target=plan.receiver.id, kind=EdgeKind.RECEIVER))
    for target in plan.depends:
        edges.append(DependencyEdge(source=source, target=target.id, kind=EdgeKind.EXPLICIT_AFTER))
    return edges


def _annotate(error: IoCError, definition: BeanDefinition) -> IoCError:
    if str(definition) not in str(error):
        error.args = (f"{definition}: {error}",) + error.args[1:]
    return error
