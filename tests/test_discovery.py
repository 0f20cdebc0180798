"""Tests for varexport.discovery module."""

import importlib
import sys

import pytest

from varexport import VarExporter
from varexport.declarations import METHOD, PROPERTY, export, exported
from varexport.discovery import (
    collect_exports,
    discover_exportable_classes,
    get_export_specs,
    has_class_exports,
)

from example_classes import ExampleClass, ExampleSubclass


def names(specs):
    return [spec.export_name for spec in specs]


class TestGetExportSpecs:
    """Test get_export_specs function."""

    def test_definition_order(self):
        """Test own declarations keep class body order."""
        assert names(get_export_specs(ExampleClass)) == [
            "ex1field", "static1field", "my_name_is_earl", "ex1method", "static1method"
        ]

    def test_subclass_declarations_first(self):
        """Test subclass declarations precede inherited ones."""
        assert names(get_export_specs(ExampleSubclass)) == [
            "subm1", "ex1field", "static1field", "my_name_is_earl", "ex1method", "static1method"
        ]

    def test_redeclaration_wins(self):
        """Test the nearest declaration of an attribute is used."""

        class Base:
            @export(name="base-size", ttl_ms=5)
            def size(self):
                return 1

        class Child(Base):
            @export(name="child-size")
            def size(self):
                return 2

        (spec,) = get_export_specs(Child)
        assert spec.export_name == "child-size"
        assert spec.ttl_ms == 0

    def test_override_without_decorator_keeps_declaration(self):
        """Test an undecorated override inherits the export."""

        class Base:
            @export(name="size")
            def size(self):
                return 1

        class Child(Base):
            def size(self):
                return 2

        exporter = VarExporter.for_namespace("override")
        child = Child()
        exporter.export(child)
        assert exporter.get_value("size") == 2

    def test_cached(self):
        assert get_export_specs(ExampleClass) is get_export_specs(ExampleClass)

    def test_undeclared_class(self):
        class Plain:
            value = 1

            def method(self):
                return 1

        assert get_export_specs(Plain) == ()
        assert not has_class_exports(Plain)


class TestDecoratorOrder:
    """Test @export combined with property, staticmethod and classmethod."""

    def test_property_either_order(self):
        class Outer:
            @export(name="outer")
            @property
            def a(self):
                return 1

        class Inner:
            @property
            @export(name="inner")
            def a(self):
                return 1

        for cls in (Outer, Inner):
            (spec,) = get_export_specs(cls)
            assert spec.kind == PROPERTY
            assert not spec.static

    def test_staticmethod_either_order(self):
        class Outer:
            @export()
            @staticmethod
            def a():
                return 1

        class Inner:
            @staticmethod
            @export()
            def a():
                return 1

        for cls in (Outer, Inner):
            (spec,) = get_export_specs(cls)
            assert spec.kind == METHOD
            assert spec.static
            assert spec.read(cls) == 1

    def test_classmethod(self):
        class Counter:
            count = 3

            @classmethod
            @export(name="count-plus-one")
            def next_count(cls):
                return cls.count + 1

        (spec,) = get_export_specs(Counter)
        assert spec.static
        assert spec.read(Counter) == 4


class TestDeclarationValidation:
    """Test invalid declarations are rejected."""

    def test_negative_ttl(self):
        with pytest.raises(ValueError, match="ttl_ms"):
            export(ttl_ms=-1)
        with pytest.raises(ValueError, match="ttl_ms"):
            exported(0, ttl_ms=-5)

    def test_non_callable(self):
        with pytest.raises(TypeError, match="cannot decorate"):
            export()(42)

    def test_field_marker_replaced_by_default(self):
        class Holder:
            size = exported(10, doc="size")

        assert Holder.size == 10
        (spec,) = get_export_specs(Holder)
        assert spec.attribute == "size"
        assert spec.doc == "size"


class TestCollectExports:
    """Test collect_exports function."""

    def test_class_target_static_only(self):
        assert names(collect_exports(ExampleClass)) == [
            "static1field", "my_name_is_earl", "static1method"
        ]

    def test_instance_target_all(self):
        assert collect_exports(ExampleClass()) == get_export_specs(ExampleClass)

    def test_has_class_exports(self):
        assert has_class_exports(ExampleClass)

        class InstanceOnly:
            value = exported(0)

        assert not has_class_exports(InstanceOnly)


def write_package(tmp_path):
    """Create ``test_pkg`` with exportable, plain and nested modules."""
    pkg_dir = tmp_path / "test_pkg"
    pkg_dir.mkdir()
    (pkg_dir / "__init__.py").write_text("")

    (pkg_dir / "pool.py").write_text(
        """
from varexport import exported

class Pool:
    max_size = exported(10, name="max-size", static=True)
    in_use = exported(0)
"""
    )

    (pkg_dir / "plain.py").write_text(
        """
from varexport import exported
from test_pkg.pool import Pool

class Plain:
    value = exported(0)
"""
    )

    (pkg_dir / "broken.py").write_text("import module_that_does_not_exist\n")

    sub_dir = pkg_dir / "sub"
    sub_dir.mkdir()
    (sub_dir / "__init__.py").write_text("")
    (sub_dir / "limits.py").write_text(
        """
from varexport import export

class Limits:
    @export(name="limit")
    @staticmethod
    def limit():
        return 99
"""
    )


class TestDiscoverExportableClasses:
    """Test discover_exportable_classes function."""

    def test_discover_top_level(self, tmp_path):
        """Test only classes defined in a module with class-level exports are found."""
        write_package(tmp_path)
        sys.path.insert(0, str(tmp_path))
        try:
            pkg = importlib.import_module("test_pkg")
            classes = discover_exportable_classes(pkg.__path__, "test_pkg.")
            assert [cls.__name__ for cls in classes] == ["Pool"]
        finally:
            sys.path.remove(str(tmp_path))

    def test_discover_recursive(self, tmp_path):
        write_package(tmp_path)
        sys.path.insert(0, str(tmp_path))
        try:
            pkg = importlib.import_module("test_pkg")
            classes = discover_exportable_classes(pkg.__path__, "test_pkg.", recursive=True)
            assert sorted(cls.__name__ for cls in classes) == ["Limits", "Pool"]
        finally:
            sys.path.remove(str(tmp_path))

    def test_exclude_modules(self, tmp_path):
        write_package(tmp_path)
        sys.path.insert(0, str(tmp_path))
        try:
            pkg = importlib.import_module("test_pkg")
            classes = discover_exportable_classes(
                pkg.__path__, "test_pkg.", exclude_modules={"pool"}, recursive=True
            )
            assert [cls.__name__ for cls in classes] == ["Limits"]
        finally:
            sys.path.remove(str(tmp_path))

    def test_export_package(self, tmp_path):
        """Test a whole package is exported into a namespace."""
        write_package(tmp_path)
        sys.path.insert(0, str(tmp_path))
        try:
            exporter = VarExporter.for_namespace("pkg")
            classes = exporter.export_package("test_pkg", prefix="app-", recursive=True)

            assert sorted(cls.__name__ for cls in classes) == ["Limits", "Pool"]
            assert exporter.get_value("app-max-size") == 10
            assert exporter.get_value("app-limit") == 99
            assert exporter.get_value("app-in_use") is None
        finally:
            sys.path.remove(str(tmp_path))
