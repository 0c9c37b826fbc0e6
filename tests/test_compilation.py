"""
End-to-end compilation tests

Drives template_derive()/declaration_derive() the way an embedding build
step would: real project directories on disk, the generated module
executed afterwards.
"""

import pytest

from stencil.lib import compiler
from stencil.lib.compiler import DeriveResult, declaration_derive, template_derive
from stencil.lib.errors import (
    ConfigDocumentMalformed,
    GenerationFailure,
    InvalidDeclaration,
    SourceReadFailure,
    TemplateNotFound,
)
from stencil.models.template import Print, TemplateArgs


def module_load(code):
    namespace = {}
    exec(code, namespace)
    return namespace


@pytest.fixture
def site(project):
    return project({
        "stencil.yaml": "general:\n  dirs: [templates, shared]\n",
        "templates/hello.html": "Hello, {{ name }}!\n",
        "templates/base.html": "<title>{% block title %}Base{% endblock %}</title>{% block body %}{% endblock %}",
        "templates/page.html": '{% extends "base.html" %}{% block body %}{% include "footer.html" %}{% endblock %}',
        "shared/footer.html": "<footer>{{ year }}</footer>",
    })


class TestDerive:
    """Test successful derivations"""

    def test_hello(self, site):
        result = template_derive(TemplateArgs(name="Hello", path="hello.html"), site)
        assert result.ok
        assert result.error is None
        module = module_load(result.code)
        assert module["render"](name="<World>") == "Hello, &lt;World&gt;!"

    def test_inheritance_with_include_from_second_dir(self, site):
        result = template_derive(TemplateArgs(path="page.html"), site)
        assert result.ok
        module = module_load(result.code)
        assert module["render"](year=2024) == "<title>Base</title><footer>2024</footer>"

    def test_explicit_escaper_key(self, site):
        """escape= overrides the key derived from the file extension"""
        result = template_derive(TemplateArgs(path="hello.html", escape="txt"), site)
        assert module_load(result.code)["ESCAPER"] == "Text"
        assert module_load(result.code)["render"](name="<b>") == "Hello, <b>!"

    def test_jinja_inner_extension(self, project):
        root = project({"templates/page.html.j2": "{{ v }}"})
        result = template_derive(TemplateArgs(path="page.html.j2"), root)
        assert module_load(result.code)["render"](v="&") == "&amp;"

    def test_explicit_config_file(self, project):
        root = project({
            "conf/other.yaml": "general:\n  dirs: [views]\n",
            "views/a.txt": "from views",
        })
        result = template_derive(TemplateArgs(path="a.txt", config="conf/other.yaml"), root)
        assert result.ok
        assert module_load(result.code)["render"]() == "from views"

    def test_deterministic(self, site):
        """Same inputs, same module"""
        args = TemplateArgs(name="Page", path="page.html")
        assert template_derive(args, site).code == template_derive(args, site).code


class TestFallback:
    """Test the fallback module produced next to a failure"""

    def assert_skeleton(self, result: DeriveResult, name: str):
        assert not result.ok
        module = module_load(result.code)
        assert module["TEMPLATE_NAME"] == name
        assert module["render"]() == ""
        assert module["render"](anything=1) == ""

    def test_missing_template(self, site):
        result = template_derive(TemplateArgs(name="Missing", path="nope.html"), site)
        assert isinstance(result.error, TemplateNotFound)
        self.assert_skeleton(result, "Missing")

    def test_broken_config(self, project):
        """The fallback ignores the project configuration document"""
        root = project({"stencil.yaml": "general: [unclosed\n", "templates/a.txt": "a"})
        result = template_derive(TemplateArgs(name="A", path="a.txt"), root)
        assert isinstance(result.error, ConfigDocumentMalformed)
        self.assert_skeleton(result, "A")

    def test_missing_explicit_config(self, site):
        result = template_derive(TemplateArgs(name="A", path="hello.html", config="nope.yaml"), site)
        assert result.error is not None
        self.assert_skeleton(result, "A")

    def test_generation_failure(self, project):
        root = project({"templates/a.txt": "{% for x in y %}"})
        result = template_derive(TemplateArgs(name="A", path="a.txt"), root)
        assert isinstance(result.error, GenerationFailure)
        assert "a.txt:1:1" in str(result.error)
        self.assert_skeleton(result, "A")

    def test_overlong_reference(self, project):
        """Names the filesystem rejects still end in a reported failure"""
        root = project({"templates/a.html": "{% include '" + "x" * 300 + ".html' %}"})
        result = template_derive(TemplateArgs(name="A", path="a.html"), root)
        assert isinstance(result.error, TemplateNotFound)
        self.assert_skeleton(result, "A")

    def test_self_include_through_parent_dir(self, project):
        root = project({"templates/sub/a.html": 'x{% include "../sub/a.html" %}'})
        result = template_derive(TemplateArgs(name="A", path="sub/a.html"), root)
        assert isinstance(result.error, GenerationFailure)
        assert "include cycle" in str(result.error)
        self.assert_skeleton(result, "A")

    def test_repeated_text_located_at_node(self, project):
        """The failing node is reported, not an earlier copy of its text"""
        root = project({"templates/a.txt": "{{ a }}\n{{ a"})
        result = template_derive(TemplateArgs(name="A", path="a.txt"), root)
        assert "a.txt:2:1" in str(result.error)
        self.assert_skeleton(result, "A")

    def test_unreadable_template(self, project):
        root = project({"templates/bad.txt": ""})
        (root / "templates" / "bad.txt").write_bytes(b"\xff\xfe\xfa")
        result = template_derive(TemplateArgs(name="Bad", path="bad.txt"), root)
        assert isinstance(result.error, SourceReadFailure)
        self.assert_skeleton(result, "Bad")

    def test_fallback_failure_gives_no_code(self, site, monkeypatch):
        def failing(name, root, verbosity=1):
            raise GenerationFailure("boom")

        monkeypatch.setattr(compiler, "build_skeleton", failing)
        result = template_derive(TemplateArgs(path="nope.html"), site)
        assert isinstance(result.error, TemplateNotFound)
        assert result.code is None

    def test_nonexistent_root(self, tmp_path):
        result = template_derive(TemplateArgs(path="a.txt"), tmp_path / "absent")
        assert isinstance(result.error, TemplateNotFound)
        self.assert_skeleton(result, "Template")


class TestDeclarationDerive:
    """Test compilation from raw declaration arguments"""

    def test_ok(self, site):
        result = declaration_derive("Hello", {"path": "hello.html"}, site)
        assert result.ok
        assert module_load(result.code)["TEMPLATE_NAME"] == "Hello"

    def test_inline(self, site):
        result = declaration_derive("Inline", {"source": "{{ n }}!", "ext": "txt"}, site)
        assert module_load(result.code)["render"](n=3) == "3!"

    def test_invalid_declaration(self, site):
        result = declaration_derive("Bad", {"path": "hello.html", "source": "x"}, site)
        assert isinstance(result.error, InvalidDeclaration)
        assert module_load(result.code)["TEMPLATE_NAME"] == "Bad"


class TestDiagnostics:
    """Test the print modes"""

    def test_print_ast(self, site, capsys):
        template_derive(TemplateArgs(path="hello.html", print=Print.AST), site)
        err = capsys.readouterr().err
        assert "Hello, {{ name }}!" in err
        assert "Expr(" in err
        assert "def render(**context):" not in err

    def test_print_code(self, site, capsys):
        template_derive(TemplateArgs(path="hello.html", print=Print.CODE), site)
        err = capsys.readouterr().err
        assert "def render(**context):" in err
        assert "Expr(" not in err

    def test_print_all(self, site, capsys):
        template_derive(TemplateArgs(path="hello.html", print=Print.ALL), site)
        err = capsys.readouterr().err
        assert "Expr(" in err
        assert "def render(**context):" in err

    def test_print_none(self, site, capsys):
        template_derive(TemplateArgs(path="hello.html"), site, verbosity=0)
        err = capsys.readouterr().err
        assert "Expr(" not in err
        assert "def render(**context):" not in err
