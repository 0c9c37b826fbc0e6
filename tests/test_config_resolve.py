"""
Configuration resolution tests

Tests merging of the configuration document over built-in defaults:
search directories, syntax table, default syntax, escaper rules and the
whitespace policy.
"""

import pytest

from stencil.lib.config import config_resolve, DEFAULT_SYNTAX_NAME
from stencil.lib.errors import (
    AmbiguousDelimiterSet,
    ConfigDocumentMalformed,
    DuplicateSyntaxName,
    InvalidDeclaration,
    InvalidDelimiterLength,
    UnknownDefaultSyntax,
    UnknownEscaper,
    UnknownSyntax,
)
from stencil.models.config import EscaperRule, SyntaxDefinition, WhitespaceHandling


class TestDefaults:
    """Test resolution of an empty document"""

    def test_empty_document(self, tmp_path):
        """Empty text yields the built-in configuration"""
        config = config_resolve("", tmp_path)

        assert list(config.syntaxes) == ["default"]
        default = config.syntaxes["default"]
        assert default.expr_start == "{{"
        assert default.expr_end == "}}"
        assert default.block_start == "{%"
        assert default.block_end == "%}"
        assert default.comment_start == "{#"
        assert default.comment_end == "#}"
        assert config.default_syntax == DEFAULT_SYNTAX_NAME == "default"
        assert config.dirs == (tmp_path / "templates",)
        assert config.whitespace is WhitespaceHandling.PRESERVE

    def test_comment_only_document(self, tmp_path):
        """A document holding only comments is the empty document"""
        assert config_resolve("# nothing here\n", tmp_path) == config_resolve("", tmp_path)

    def test_empty_general_section(self, tmp_path):
        """An empty general section keeps every default"""
        config = config_resolve("general: {}\n", tmp_path)
        assert config.dirs == (tmp_path / "templates",)
        assert config.default_syntax == "default"

    def test_idempotent(self, tmp_path):
        """Resolving the same text twice gives equal configurations"""
        document = """
general:
  dirs: [tpl]
  whitespace: minimize
syntax:
  - name: angle
    block_start: "{<"
escaper:
  - path: Js
    extensions: [js]
"""
        assert config_resolve(document, tmp_path) == config_resolve(document, tmp_path)


class TestDirectories:
    """Test search directory resolution"""

    def test_dirs_joined_onto_root(self, tmp_path):
        """Declared dirs are joined onto the root in order"""
        config = config_resolve("general:\n  dirs: [tpl, shared/views]\n", tmp_path)
        assert config.dirs == (tmp_path / "tpl", tmp_path / "shared" / "views")

    def test_dirs_replace_default(self, tmp_path):
        """Declaring dirs drops the default templates directory"""
        config = config_resolve("general:\n  dirs: [tpl]\n", tmp_path)
        assert tmp_path / "templates" not in config.dirs


class TestSyntaxes:
    """Test the syntax table"""

    def test_partial_override_inherits_defaults(self, tmp_path):
        """Only declared delimiters change"""
        document = """
general:
  default_syntax: foo
syntax:
  - name: foo
    block_start: "{<"
  - name: bar
    expr_start: "{!"
"""
        config = config_resolve(document, tmp_path)
        default = SyntaxDefinition()

        assert config.default_syntax == "foo"
        foo = config.syntaxes["foo"]
        assert foo.block_start == "{<"
        assert foo.block_end == default.block_end
        assert foo.expr_start == default.expr_start
        assert foo.expr_end == default.expr_end
        assert foo.comment_start == default.comment_start
        assert foo.comment_end == default.comment_end

        bar = config.syntaxes["bar"]
        assert bar.expr_start == "{!"
        assert bar.block_start == default.block_start

    def test_default_always_present(self, tmp_path):
        """The built-in default syntax survives user declarations"""
        config = config_resolve('syntax:\n  - name: foo\n    block_start: "{<"\n', tmp_path)
        assert config.syntaxes["default"] == SyntaxDefinition()
        assert set(config.syntaxes) == {"default", "foo"}

    def test_flow_style_list(self, tmp_path):
        """Syntax entries may be written inline"""
        document = 'syntax: [{name: foo, block_start: "{<"}, {name: bar, expr_start: "{!"}]\n'
        config = config_resolve(document, tmp_path)
        assert config.syntaxes["foo"].block_start == "{<"
        assert config.syntaxes["bar"].expr_start == "{!"

    def test_duplicate_name_rejected(self, tmp_path):
        """Two syntaxes with the same name fail"""
        document = """
syntax:
  - name: foo
    block_start: "{<"
  - name: foo
    block_start: "{$"
"""
        with pytest.raises(DuplicateSyntaxName) as excinfo:
            config_resolve(document, tmp_path)
        assert excinfo.value.name == "foo"
        assert 'syntax "foo" is already defined' in str(excinfo.value)

    def test_entry_validated_before_name_check(self, tmp_path):
        """A duplicate entry with bad delimiters reports the delimiters"""
        document = 'syntax:\n  - name: foo\n  - name: foo\n    block_start: "{"\n'
        with pytest.raises(InvalidDelimiterLength):
            config_resolve(document, tmp_path)

    def test_default_name_reserved(self, tmp_path):
        """Declaring a syntax named default collides with the built-in"""
        with pytest.raises(DuplicateSyntaxName):
            config_resolve("syntax:\n  - name: default\n", tmp_path)

    def test_dangling_default_rejected(self, tmp_path):
        """default_syntax must name a declared syntax"""
        with pytest.raises(UnknownDefaultSyntax) as excinfo:
            config_resolve("general:\n  default_syntax: foo\n", tmp_path)
        assert excinfo.value.name == "foo"
        assert 'default syntax "foo" not found' in str(excinfo.value)

    def test_invalid_syntax_entry_rejected(self, tmp_path):
        """Validation applies to every declared syntax"""
        document = 'syntax:\n  - name: foo\n    block_start: "<%"\n'
        with pytest.raises(AmbiguousDelimiterSet):
            config_resolve(document, tmp_path)

    def test_syntax_get(self, tmp_path):
        """syntax_get falls back to the default and rejects unknown names"""
        config = config_resolve("", tmp_path)
        assert config.syntax_get() is config.syntaxes["default"]
        with pytest.raises(UnknownSyntax):
            config.syntax_get("nope")


class TestEscapers:
    """Test escaper rule ordering and lookup"""

    def test_user_rules_precede_builtins(self, tmp_path):
        """Declared rules come first, built-in rules follow in fixed order"""
        document = """
escaper:
  - path: X
    extensions: [js]
"""
        config = config_resolve(document, tmp_path)
        assert config.escapers == (
            EscaperRule(frozenset({"js"}), "X"),
            EscaperRule(frozenset({"html", "htm", "xml"}), "Html"),
            EscaperRule(frozenset({"md", "none", "txt", "yml", ""}), "Text"),
            EscaperRule(frozenset({"j2", "jinja", "jinja2"}), "Html"),
        )

    def test_builtin_rules_only(self, tmp_path):
        """Without declarations only the built-in rules remain"""
        config = config_resolve("", tmp_path)
        assert [rule.escaper for rule in config.escapers] == ["Html", "Text", "Html"]

    def test_first_match_wins(self, tmp_path):
        """A declared rule shadows a built-in one for the same extension"""
        document = "escaper:\n  - path: Custom\n    extensions: [html]\n"
        config = config_resolve(document, tmp_path)
        assert config.escaper_lookup("html") == "Custom"
        assert config.escaper_lookup("htm") == "Html"

    def test_lookup(self, tmp_path):
        """Lookup by exact extension"""
        config = config_resolve("", tmp_path)
        assert config.escaper_lookup("xml") == "Html"
        assert config.escaper_lookup("") == "Text"
        assert config.escaper_lookup("jinja2") == "Html"

    def test_lookup_unknown(self, tmp_path):
        """Unknown extensions fail and list what is available"""
        config = config_resolve("", tmp_path)
        with pytest.raises(UnknownEscaper) as excinfo:
            config.escaper_lookup("js")
        assert excinfo.value.extension == "js"
        assert "html" in excinfo.value.available


class TestWhitespace:
    """Test whitespace policy precedence"""

    @pytest.mark.parametrize("value, expected", [
        ("suppress", WhitespaceHandling.SUPPRESS),
        ("preserve", WhitespaceHandling.PRESERVE),
        ("minimize", WhitespaceHandling.MINIMIZE),
        ("Minimize", WhitespaceHandling.MINIMIZE),
    ])
    def test_document_policy(self, tmp_path, value, expected):
        """general.whitespace is parsed case-insensitively"""
        config = config_resolve(f"general:\n  whitespace: {value}\n", tmp_path)
        assert config.whitespace is expected

    def test_override_wins(self, tmp_path):
        """A call-site override beats the document"""
        config = config_resolve("general:\n  whitespace: suppress\n", tmp_path, "minimize")
        assert config.whitespace is WhitespaceHandling.MINIMIZE

    def test_override_without_document(self, tmp_path):
        config = config_resolve("", tmp_path, WhitespaceHandling.SUPPRESS)
        assert config.whitespace is WhitespaceHandling.SUPPRESS

    def test_invalid_override(self, tmp_path):
        """An unknown override value is a declaration error"""
        with pytest.raises(InvalidDeclaration):
            config_resolve("", tmp_path, "tabs")

    def test_invalid_document_value(self, tmp_path):
        """An unknown document value is a malformed document"""
        with pytest.raises(ConfigDocumentMalformed):
            config_resolve("general:\n  whitespace: tabs\n", tmp_path)


class TestMalformedDocuments:
    """Test rejection of documents that do not fit the schema"""

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigDocumentMalformed) as excinfo:
            config_resolve("general: [unclosed\n", tmp_path)
        assert "stencil.yaml" in str(excinfo.value)

    def test_top_level_list(self, tmp_path):
        with pytest.raises(ConfigDocumentMalformed):
            config_resolve("- general\n- syntax\n", tmp_path)

    def test_unknown_section(self, tmp_path):
        """Unknown keys are rejected rather than ignored"""
        with pytest.raises(ConfigDocumentMalformed):
            config_resolve("genral:\n  dirs: [tpl]\n", tmp_path)

    def test_escaper_missing_extensions(self, tmp_path):
        with pytest.raises(ConfigDocumentMalformed):
            config_resolve("escaper:\n  - path: X\n", tmp_path)

    def test_file_name_in_message(self, tmp_path):
        """The document name given by the caller appears in the message"""
        with pytest.raises(ConfigDocumentMalformed) as excinfo:
            config_resolve("syntax: 3\n", tmp_path, file_name="conf/custom.yaml")
        assert "conf/custom.yaml" in str(excinfo.value)
