"""
Tests for single-tag parsing: directives, parameters, specialized shapes and recovery.
"""

import pytest

from antlers.errors import ErrorKind
from antlers.formatting import expression_text
from antlers.nodes import (
    BinaryExpression, DirectiveTag, ErrorNode, ExpressionTag, InterpolatedValue,
    Literal, MultiStatementTag, RecursiveNode, SwitchNode, TagKind, TagNode,
    TextNode, UserTagNode, Variable, VoidValue,
)
from antlers.parser import parse_antlers
from antlers.tags import PAIRED_KEYWORDS

from tests.infrastructure.parsing_utils import parse_single


class TestDirectiveTags:

    def test_bare_path(self):
        """{{ title }} is a directive spanning the whole tag"""
        node = parse_single("{{ title }}")

        assert isinstance(node, DirectiveTag)
        assert node.name.text == "title"
        assert node.parameters == ()
        assert not node.closing
        assert (node.span.start, node.span.end) == (0, 11)

    def test_nested_path_with_parameters(self):
        node = parse_single('{{ foo:bar limit="3" :from="x" }}')

        assert isinstance(node, DirectiveTag)
        assert node.name.text == "foo:bar"
        assert [(p.name, p.is_variable) for p in node.parameters] == [("limit", False), ("from", True)]
        assert node.parameters[0].value.value == "3"

    def test_parameter_value_forms(self):
        node = parse_single("{{ widget a=5 b=void c=name d={x + 1} e=-3 f=true }}")
        values = {p.name: p.value for p in node.parameters}

        assert isinstance(values["a"], Literal) and values["a"].value == 5
        assert isinstance(values["b"], VoidValue)
        assert isinstance(values["c"], Variable) and values["c"].text == "name"
        assert isinstance(values["d"], InterpolatedValue)
        assert expression_text(values["d"].expression) == "(x + 1)"
        assert values["e"].value == -3
        assert values["f"].kind == "boolean"

    def test_interpolated_value_with_modifier(self):
        node = parse_single("{{ widget title={name | upper} }}")

        value = node.parameters[0].value
        assert isinstance(value, InterpolatedValue)
        assert [m.name for m in value.expression.modifiers] == ["upper"]

    def test_spaced_equals_continues_parameters(self):
        """'name =' after a directive head is a parameter, not an assignment"""
        node = parse_single("{{ widget limit = 3 }}")

        assert isinstance(node, DirectiveTag)
        assert node.parameters[0].name == "limit"
        assert node.parameters[0].value.value == 3

    def test_leading_zero_parameter_value(self):
        node = parse_single("{{ widget n=019 f=01.5 }}")

        assert isinstance(node, DirectiveTag)
        assert [(p.name, p.value.value) for p in node.parameters] == [("n", 19), ("f", 1.5)]

    def test_missing_parameter_value(self):
        document = parse_antlers("{{ widget limit= }}")

        assert isinstance(document.children[0], ErrorNode)
        assert document.diagnostics[0].kind is ErrorKind.MALFORMED_EXPRESSION
        assert "parameter value" in document.diagnostics[0].message


class TestExpressionTags:

    @pytest.mark.parametrize("source", [
        "{{ title | upper }}",
        "{{ x = 3 }}",
        "{{ a == b }}",
        "{{ count + 1 }}",
        "{{ 'text' }}",
    ])
    def test_expressions(self, source):
        assert isinstance(parse_single(source), ExpressionTag)

    def test_leading_zero_operands(self):
        document = parse_antlers("{{ x == 019 }}{{ y < 01.5 }}")

        assert not document.has_errors
        first, second = document.children
        assert expression_text(first.expression) == "(x == 019)"
        assert second.expression.right.value == 1.5

    def test_boolean_is_never_a_directive(self):
        node = parse_single("{{ true }}")

        assert isinstance(node, ExpressionTag)
        assert node.expression.value is True

    def test_assignment(self):
        node = parse_single("{{ x = 3 }}")

        assert isinstance(node.expression, BinaryExpression)
        assert node.expression.operator == "="


class TestMultiStatementTags:

    def test_assignments(self):
        node = parse_single("{{ a = 1; b = 2 }}")

        assert isinstance(node, MultiStatementTag)
        assert [expression_text(s) for s in node.statements] == ["(a = 1)", "(b = 2)"]

    def test_mixed_statements(self):
        node = parse_single("{{ a = 1; title }}")

        assert isinstance(node.statements[1], DirectiveTag)
        assert node.statements[1].name.text == "title"

    def test_semicolon_inside_string_does_not_split(self):
        node = parse_single("{{ items | join(';') }}")

        assert isinstance(node, ExpressionTag)

    def test_trailing_semicolon(self):
        document = parse_antlers("{{ a = 1; }}")

        assert isinstance(document.children[0], ErrorNode)
        assert document.diagnostics[0].message == "Unexpected end of expression"


class TestLiteralShapes:

    @pytest.mark.parametrize("source, kind, binding, params", [
        ('{{ partial:hero title="x" }}', TagKind.PARTIAL, "hero", 1),
        ('{{ partial src="hero" }}', TagKind.PARTIAL, None, 1),
        ("{{ yield:scripts }}", TagKind.YIELD, "scripts", 0),
        ("{{ session:flash }}", TagKind.SESSION, "flash", 0),
        ('{{ redirect to="/" }}', TagKind.REDIRECT, None, 1),
        ("{{ oauth:github }}", TagKind.OAUTH, "github", 0),
        ("{{ locales }}", TagKind.LOCALES, None, 0),
        ("{{ template_content }}", TagKind.TEMPLATE_CONTENT, None, 0),
        ('{{ svg src="logo" }}', TagKind.SVG, None, 1),
        ('{{ asset:image url="a.jpg" }}', TagKind.ASSET, "image", 1),
        ("{{ dump:entry }}", TagKind.DUMP, "entry", 0),
    ])
    def test_self_closing(self, source, kind, binding, params):
        node = parse_single(source)

        assert isinstance(node, TagNode)
        assert node.kind is kind
        assert not node.is_paired
        assert (node.binding.text if node.binding else None) == binding
        assert len(node.parameters) == params

    @pytest.mark.parametrize("source, kind", [
        ("{{ section:sidebar }}x{{ /section:sidebar }}", TagKind.SECTION),
        ('{{ cache for="5 minutes" }}x{{ /cache }}', TagKind.CACHE),
        ("{{ cache }}x{{ /cache }}", TagKind.CACHE),
        ("{{ no_cache }}x{{ /no_cache }}", TagKind.NO_CACHE),
        ("{{ once }}x{{ /once }}", TagKind.ONCE),
        ("{{ markdown }}x{{ /markdown }}", TagKind.MARKDOWN),
        ("{{ push:scripts }}x{{ /push:scripts }}", TagKind.PUSH),
        ("{{ prepend:scripts }}x{{ /prepend:scripts }}", TagKind.PREPEND),
        ("{{ slot:footer }}x{{ /slot:footer }}", TagKind.SLOT),
        ("{{ scope }}x{{ /scope }}", TagKind.SCOPE),
    ])
    def test_paired(self, source, kind):
        node = parse_single(source)

        assert isinstance(node, TagNode)
        assert node.kind is kind
        assert node.is_paired
        assert [n.text for n in node.body] == ["x"]
        assert node.close is not None

    @pytest.mark.parametrize("source, name", [
        ("{{ partial }}", "partial"),
        ("{{ section }}", "section"),
        ("{{ scope:x }}", "scope:x"),
        ("{{ session }}", "session"),
        ("{{ switch }}", "switch"),
        ("{{ user:can }}", "user:can"),
    ])
    def test_unfitting_lookahead_is_a_directive(self, source, name):
        """A keyword spelling whose lookahead fits no form stays generic"""
        node = parse_single(source)

        assert isinstance(node, DirectiveTag)
        assert node.name.text == name

    def test_rejected_shape_falls_back_to_expression(self):
        """{{ yield:x ?? 'd' }} is an expression, not a malformed yield tag"""
        node = parse_single("{{ yield:x ?? 'd' }}")

        assert isinstance(node, ExpressionTag)
        assert node.expression.operator == "??"
        assert node.expression.left.text == "yield:x"

    def test_paired_keywords(self):
        assert {"if", "unless", "collection", "entries", "section", "cache", "once"} <= PAIRED_KEYWORDS
        assert "partial" not in PAIRED_KEYWORDS
        assert "yield" not in PAIRED_KEYWORDS


class TestClassifiedKeywords:

    def test_collection_loop(self):
        """{{ collection:blog limit="3" }} with one directive in its body"""
        node = parse_single('{{ collection:blog limit="3" }}{{ title }}{{ /collection:blog }}')

        assert isinstance(node, TagNode)
        assert node.kind is TagKind.COLLECTION
        assert node.binding.text == "blog"
        assert [(p.name, p.value.value) for p in node.parameters] == [("limit", "3")]
        assert len(node.body) == 1
        assert isinstance(node.body[0], DirectiveTag)
        assert node.body[0].name.text == "title"
        assert node.close.binding.text == "blog"

    def test_collection_with_parameters_only(self):
        node = parse_single('{{ collection from="blog" }}x{{ /collection }}')

        assert node.kind is TagKind.COLLECTION
        assert node.binding is None

    @pytest.mark.parametrize("source, kind", [
        ("{{ nav:breadcrumbs }}x{{ /nav:breadcrumbs }}", TagKind.NAV_BREADCRUMBS),
        ("{{ nav:main }}x{{ /nav:main }}", TagKind.NAV),
        ("{{ form:errors }}x{{ /form:errors }}", TagKind.FORM_ERRORS),
        ("{{ form:contact }}x{{ /form:contact }}", TagKind.FORM),
        ("{{ taxonomy:tags }}x{{ /taxonomy:tags }}", TagKind.TAXONOMY),
        ('{{ entries limit="2" }}x{{ /entries }}', TagKind.ENTRIES),
    ])
    def test_loop_kinds(self, source, kind):
        assert parse_single(source).kind is kind

    def test_keyword_spelling_as_variable(self):
        """'collection' without a binding or parameters is a user variable"""
        assert isinstance(parse_single("{{ collection }}"), DirectiveTag)
        assert isinstance(parse_single("{{ collection == 1 }}"), ExpressionTag)

    def test_if_without_condition(self):
        document = parse_antlers("{{ if }}")

        assert isinstance(document.children[0], ErrorNode)
        assert document.diagnostics[0].kind is ErrorKind.MALFORMED_EXPRESSION


class TestSwitchUserRecursive:

    def test_switch(self):
        node = parse_single("{{ switch((a > 1) => 'big', (true) => 'small') }}")

        assert isinstance(node, SwitchNode)
        assert [expression_text(c.condition) for c in node.cases] == ["(a > 1)", "true"]
        assert [c.value.value for c in node.cases] == ["big", "small"]

    def test_user_with_string(self):
        node = parse_single('{{ user:can "edit" }}')

        assert isinstance(node, UserTagNode)
        assert node.ability == "can"
        assert node.argument.value == "edit"
        assert node.parameters == ()

    def test_user_with_parameters(self):
        node = parse_single('{{ user:is role="admin" }}')

        assert node.ability == "is"
        assert node.argument is None
        assert node.parameters[0].name == "role"

    def test_user_with_unknown_ability(self):
        document = parse_antlers('{{ user:foo "x" }}')

        assert isinstance(document.children[0], ErrorNode)
        assert document.children[0].kind is ErrorKind.MALFORMED_EXPRESSION

    def test_recursive(self):
        node = parse_single("{{ *recursive children* }}")

        assert isinstance(node, RecursiveNode)
        assert node.binding is None

    def test_recursive_with_binding(self):
        node = parse_single("{{ *recursive children:items* }}")

        assert node.binding.text == "items"

    def test_recursive_requires_children(self):
        document = parse_antlers("{{ *recursive kids* }}")

        assert isinstance(document.children[0], ErrorNode)
        assert "children" in document.diagnostics[0].message


class TestStrayHeads:

    def test_close_of_paired_keyword(self):
        document = parse_antlers("{{ /if }}")

        assert document.children[0].kind is ErrorKind.UNMATCHED_CLOSE
        assert document.diagnostics[0].kind is ErrorKind.UNMATCHED_CLOSE

    def test_close_of_other_name_is_a_directive(self):
        node = parse_single("{{ /foo:bar }}")

        assert isinstance(node, DirectiveTag)
        assert node.closing
        assert node.name.text == "foo:bar"

    def test_else_outside_if(self):
        document = parse_antlers("{{ else }}")

        assert document.children[0].kind is ErrorKind.UNMATCHED_CLOSE
        assert "outside" in document.children[0].message


class TestTagRecovery:

    def test_incomplete_expression(self):
        document = parse_antlers("{{ a + }} after")
        error, text = document.children

        assert isinstance(error, ErrorNode)
        assert error.kind is ErrorKind.MALFORMED_EXPRESSION
        assert (error.span.start, error.span.end) == (0, 9)
        assert isinstance(text, TextNode) and text.text == " after"

    def test_unclosed_tag_at_end(self):
        document = parse_antlers("{{ title")
        error = document.children[0]

        assert error.kind is ErrorKind.UNTERMINATED_TAG
        assert (error.span.start, error.span.end) == (0, 8)

    def test_unclosed_tag_interrupted_by_tag(self):
        document = parse_antlers("{{ title {{ name }}")
        error, directive = document.children

        assert error.kind is ErrorKind.UNTERMINATED_TAG
        assert (error.span.start, error.span.end) == (0, 9)
        assert directive.name.text == "name"

    def test_parsing_resumes_after_bad_tag(self):
        document = parse_antlers("{{ ) }}A{{ b }}")
        error, text, directive = document.children

        assert error.kind is ErrorKind.MALFORMED_EXPRESSION
        assert (error.span.start, error.span.end) == (0, 7)
        assert text.text == "A"
        assert directive.name.text == "b"
        assert len(document.diagnostics) == 1

    def test_lexer_error_inside_tag(self):
        document = parse_antlers("{{ a ^ b }}")

        kinds = [d.kind for d in document.diagnostics]
        assert kinds == [ErrorKind.MALFORMED_EXPRESSION, ErrorKind.LEX_ERROR]
        assert isinstance(document.children[0], ErrorNode)
