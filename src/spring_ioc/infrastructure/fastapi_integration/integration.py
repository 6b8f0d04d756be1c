import functools
import inspect
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from spring_ioc.domain import IRegistry
from spring_ioc.infrastructure.boot.app import App


def _lookup(registry: IRegistry, selector: Any) -> Any:
    if isinstance(selector, str):
        return registry.get_by_name(selector)
    return registry.get_by_type(selector)


def create_fastapi_dependency(container: IRegistry, selector: Any) -> Callable[[], Any]:
    """Create a FastAPI Depends() callable that returns a bean from a refreshed container.

    Args:
        container: The refreshed container to look the bean up in.
        selector: A bean type, or a name tag such as ``"primary_db"``.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> get_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> Any:
        """Look the bean up in the container."""
        return _lookup(container, selector)

    return dependency


def create_request_dependency(selector: Any) -> Callable[[Request], Any]:
    """Create a FastAPI dependency that reads the container attached to the request.

    Requires the ContainerMiddleware to be installed.

    Args:
        selector: A bean type or a name tag.

    Returns:
        A callable that looks the bean up in ``request.state.container``.

    Example:
        >>> app.add_middleware(ContainerMiddleware, container=container)
        >>> get_service = create_request_dependency(UserService)
        >>>
        >>> @app.get("/process")
        >>> async def process(service: UserService = Depends(get_service)):
        ...     return service.run()
    """

    def request_dependency(request: Request) -> Any:
        """Look the bean up in the request's container."""
        if not hasattr(request.state, "container"):
            raise RuntimeError("Request has no container. Did you forget to add ContainerMiddleware?")
        registry: IRegistry = request.state.container
        return _lookup(registry, selector)

    return request_dependency


class ContainerMiddleware(BaseHTTPMiddleware):
    """Middleware exposing the container to endpoints as ``request.state.container``.

    Attributes:
        container: The refreshed container.

    Example:
        >>> app = FastAPI()
        >>> app.add_middleware(ContainerMiddleware, container=container)
    """

    def __init__(self, app: FastAPI, container: IRegistry):
        """Initialize the middleware.

        Args:
            app: The wrapped application.
            container: The refreshed container.
        """
        super().__init__(app)
        self.container = container

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Attach the container to ``request.state`` and continue."""
        request.state.container = self.container
        return await call_next(request)


def inject_dependencies(container: IRegistry, **selectors: Any) -> Callable:
    """Decorator that passes beans to an endpoint as keyword arguments.

    Args:
        container: The refreshed container.
        **selectors: Parameter name to bean type or name tag.

    Returns:
        A decorator function.

    Example:
        >>> @app.get("/users")
        >>> @inject_dependencies(container, service=UserService)
        >>> async def list_users(service: UserService):
        ...     return await service.get_all()
    """

    def decorator(func: Callable) -> Callable:
        """Wrap the function with bean lookup."""
        names = set(inspect.signature(func).parameters)
        unknown = set(selectors) - names
        if unknown:
            raise TypeError(f"{func.__qualname__} has no parameters {sorted(unknown)}")

        def resolved(kwargs: Dict[str, Any]) -> Dict[str, Any]:
            for name, selector in selectors.items():
                if name not in kwargs:
                    kwargs[name] = _lookup(container, selector)
            return kwargs

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **resolved(kwargs))

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **resolved(kwargs))

        wrapper: Callable = async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

        # FastAPI must not treat the injected parameters as request inputs.
        signature = inspect.signature(func)
        wrapper.__signature__ = signature.replace(  # type: ignore[attr-defined]
            parameters=[p for p in signature.parameters.values() if p.name not in selectors]
        )
        return wrapper

    return decorator


def create_lifespan(app: App) -> Callable[[FastAPI], Any]:
    """Create a FastAPI lifespan that starts the application and stops it on exit.

    The application is started on a worker thread, so runners may block.
    Shutdown notifies stop events and closes the container.

    Example:
        >>> spring_app = App()
        >>> spring_app.provide(UserService)
        >>> api = FastAPI(lifespan=create_lifespan(spring_app))
        >>> api.add_middleware(ContainerMiddleware, container=spring_app.container)
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await run_in_threadpool(app.start)
        try:
            yield
        finally:
            app.shutdown("lifespan finished")
            await run_in_threadpool(app.stop)

    return lifespan
