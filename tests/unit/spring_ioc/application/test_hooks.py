"""Unit tests for lifecycle hook invocation."""

import pytest

from spring_ioc.application.hooks import hook_name, invoke_hook


class Service:
    def __init__(self):
        self.calls = []

    def start(self):
        self.calls.append("start")

    def start_with(self, ctx):
        self.calls.append(("start_with", ctx))

    name = "not callable"


class TestInvokeHook:
    """Test cases for invoke_hook."""

    def test_method_name_without_context(self):
        """Test a named method taking no arguments."""
        service = Service()
        invoke_hook("start", service, ctx="ctx")
        assert service.calls == ["start"]

    def test_method_name_with_context(self):
        """Test a named method receiving the context."""
        service = Service()
        invoke_hook("start_with", service, ctx="ctx")
        assert service.calls == [("start_with", "ctx")]

    def test_callable_with_bean(self):
        """Test a callable taking the bean only."""
        seen = []
        invoke_hook(lambda bean: seen.append(bean), "bean", ctx="ctx")
        assert seen == ["bean"]

    def test_callable_with_bean_and_context(self):
        """Test a callable taking the bean and the context."""
        seen = []
        invoke_hook(lambda bean, ctx: seen.append((bean, ctx)), "bean", ctx="ctx")
        assert seen == [("bean", "ctx")]

    def test_varargs_callable_receives_context(self):
        """Test that *args callables receive both arguments."""
        seen = []
        invoke_hook(lambda *args: seen.append(args), "bean", ctx="ctx")
        assert seen == [("bean", "ctx")]

    @pytest.mark.parametrize("hook", ["missing", "name"])
    def test_unknown_or_non_callable_method(self, hook):
        """Test that a named hook must be a method of the bean."""
        with pytest.raises(AttributeError):
            invoke_hook(hook, Service())

    def test_hook_name(self):
        """Test readable hook names."""
        assert hook_name("close") == "close"
        assert hook_name(Service.start) == "Service.start"
