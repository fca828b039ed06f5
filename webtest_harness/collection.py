"""Discovery of test classes and their methods."""

import importlib
import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

CSV_DATA_ATTR = "__webtest_csv_data__"
DEPENDS_ON_ATTR = "__webtest_depends_on__"
TEST_PREFIX = "test"


def csv_data[F: Callable[..., Any]](func: F) -> F:
    """Run the method once per row of its CSV fixture file.

    The row is passed as the second argument after the method context.
    """
    setattr(func, CSV_DATA_ATTR, True)
    return func


def depends_on[F: Callable[..., Any]](*method_names: str) -> Callable[[F], F]:
    """Skip the method unless every named method of its class passed."""

    def decorator(func: F) -> F:
        setattr(func, DEPENDS_ON_ATTR, tuple(method_names))
        return func

    return decorator


@dataclass(frozen=True, kw_only=True)
class TestMethod:
    """A test method of a collected class."""

    __test__ = False

    name: str
    data_driven: bool = False
    depends_on: Sequence[str] = ()


@dataclass(frozen=True, kw_only=True)
class TestClass:
    """A collected test class with its methods in definition order."""

    __test__ = False

    cls: type
    methods: Sequence[TestMethod]

    @property
    def name(self) -> str:
        return self.cls.__name__

    @property
    def module(self) -> str:
        return self.cls.__module__

    @property
    def uses_browser(self) -> bool:
        return bool(getattr(self.cls, "uses_browser", False))


def collect_class(cls: type) -> TestClass:
    """Collect the ``test*`` methods of a class, base classes first."""
    functions: dict[str, Callable[..., Any]] = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if name.startswith(TEST_PREFIX) and inspect.isfunction(value):
                functions[name] = value

    methods = [
        TestMethod(
            name=name,
            data_driven=getattr(func, CSV_DATA_ATTR, False),
            depends_on=getattr(func, DEPENDS_ON_ATTR, ()),
        )
        for name, func in functions.items()
    ]
    return TestClass(cls=cls, methods=methods)


def is_test_class(obj: object, module_name: str) -> bool:
    """Whether ``obj`` is a test class defined in the given module."""
    return (
        inspect.isclass(obj)
        and obj.__module__ == module_name
        and (obj.__name__.startswith("Test") or obj.__name__.endswith("Tests"))
        and getattr(obj, "__test__", True)
    )


def collect_module(module_name: str) -> Sequence[TestClass]:
    """Import a module and collect the test classes it defines."""
    module = importlib.import_module(module_name)
    classes = [
        collect_class(obj)
        for obj in vars(module).values()
        if is_test_class(obj, module.__name__)
    ]
    log.info("Collected %d test class(es) from %s", len(classes), module_name)
    return classes


def collect(module_names: Sequence[str]) -> Sequence[TestClass]:
    """Collect test classes from several modules, preserving order."""
    return [cls for name in module_names for cls in collect_module(name)]
