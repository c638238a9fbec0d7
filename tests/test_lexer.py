"""
Tests for the Antlers lexer.
"""

from antlers.lexer import AntlersLexer, tokenize_antlers
from antlers.tokens import TokenType

from tests.infrastructure.parsing_utils import significant


def _types(source):
    return [t.type for t in tokenize_antlers(source)]


class TestDocumentMode:

    def test_plain_text_is_one_token(self):
        """Text without tags is a single TEXT run"""
        tokens = tokenize_antlers("Hello, world")

        assert [(t.type, t.value) for t in tokens] == [
            (TokenType.TEXT, "Hello, world"),
            (TokenType.EOF, ""),
        ]

    def test_empty_source(self):
        """Empty input yields only EOF"""
        assert _types("") == [TokenType.EOF]

    def test_lone_braces_stay_in_text(self):
        """A single '{' or '}' does not open or close anything"""
        tokens = tokenize_antlers("a { b } c")

        assert tokens[0].type == TokenType.TEXT
        assert tokens[0].value == "a { b } c"

    def test_ignore_form_runs_to_next_brace(self):
        """'@...' is an ignore run that stops before '{'"""
        assert significant("Price: @foo bar{{ price }}") == [
            (TokenType.TEXT, "Price: "),
            (TokenType.IGNORE, "@foo bar"),
            (TokenType.TAG_OPEN, "{{"),
            (TokenType.IDENTIFIER, "price"),
            (TokenType.TAG_CLOSE, "}}"),
        ]

    def test_hash_comment_is_not_relexed(self):
        """Tag syntax inside a comment stays part of the comment"""
        tokens = tokenize_antlers("{{# {{ if x }} #}}")

        assert [t.type for t in tokens] == [TokenType.COMMENT, TokenType.EOF]
        assert tokens[0].value == "{{# {{ if x }} #}}"

    def test_dash_comment(self):
        """'{{!-- --}}' comments"""
        tokens = tokenize_antlers("a{{!-- note --}}b")

        assert [t.type for t in tokens] == [
            TokenType.TEXT, TokenType.COMMENT, TokenType.TEXT, TokenType.EOF,
        ]
        assert tokens[1].value == "{{!-- note --}}"

    def test_raw_and_echo_code(self):
        """Code blocks are captured verbatim up to the exact closer"""
        tokens = tokenize_antlers("{{? $a = '}}'; ?}}{{$ $a $}}")

        assert [(t.type, t.value) for t in tokens[:2]] == [
            (TokenType.RAW_CODE, "{{? $a = '}}'; ?}}"),
            (TokenType.ECHO_CODE, "{{$ $a $}}"),
        ]

    def test_unterminated_comment_degrades_to_text(self):
        """Missing '#}}' turns the opener into text and records an error"""
        lexer = AntlersLexer("{{# oops")
        tokens = lexer.tokenize()

        assert [(t.type, t.value) for t in tokens] == [
            (TokenType.TEXT, "{{#"),
            (TokenType.TEXT, " oops"),
            (TokenType.EOF, ""),
        ]
        assert len(lexer.errors) == 1
        assert "#}}" in lexer.errors[0][0]

    def test_unterminated_raw_code_degrades_to_text(self):
        lexer = AntlersLexer("{{? echo 1;")
        tokens = lexer.tokenize()

        assert tokens[0].type == TokenType.TEXT
        assert tokens[0].value == "{{?"
        assert len(lexer.errors) == 1


class TestTagMode:

    def test_simple_tag(self):
        """Tag delimiters, identifier and whitespace trivia"""
        assert _types("{{ title }}") == [
            TokenType.TAG_OPEN,
            TokenType.WHITESPACE,
            TokenType.IDENTIFIER,
            TokenType.WHITESPACE,
            TokenType.TAG_CLOSE,
            TokenType.EOF,
        ]

    def test_operators_longest_match(self):
        """Multi-character operators win over their prefixes"""
        assert significant("{{ a === b !== c ?? d ** e <= f }}")[1:-1] == [
            (TokenType.IDENTIFIER, "a"),
            (TokenType.OPERATOR, "==="),
            (TokenType.IDENTIFIER, "b"),
            (TokenType.OPERATOR, "!=="),
            (TokenType.IDENTIFIER, "c"),
            (TokenType.OPERATOR, "??"),
            (TokenType.IDENTIFIER, "d"),
            (TokenType.OPERATOR, "**"),
            (TokenType.IDENTIFIER, "e"),
            (TokenType.OPERATOR, "<="),
            (TokenType.IDENTIFIER, "f"),
        ]

    def test_punctuation(self):
        assert [t for t, _ in significant("{{ a:b.c[0] | m(1, 2); x }}")[1:-1]] == [
            TokenType.IDENTIFIER, TokenType.COLON, TokenType.IDENTIFIER, TokenType.DOT,
            TokenType.IDENTIFIER, TokenType.LBRACKET, TokenType.NUMBER, TokenType.RBRACKET,
            TokenType.PIPE, TokenType.IDENTIFIER, TokenType.LPAREN, TokenType.NUMBER,
            TokenType.COMMA, TokenType.NUMBER, TokenType.RPAREN, TokenType.SEMICOLON,
            TokenType.IDENTIFIER,
        ]

    def test_interpolation_braces_do_not_close_tag(self):
        """'}' inside '{...}' is a brace, not half of the tag close"""
        tokens = significant("{{ x src={ y }}}")

        assert tokens[-4:] == [
            (TokenType.LBRACE, "{"),
            (TokenType.IDENTIFIER, "y"),
            (TokenType.RBRACE, "}"),
            (TokenType.TAG_CLOSE, "}}"),
        ]

    def test_text_after_close(self):
        assert significant("{{ a }}}")[-1] == (TokenType.TEXT, "}")

    def test_new_tag_interrupts_unclosed_tag(self):
        """'{{' inside a tag ends it and starts a new one"""
        assert [t for t, _ in significant("{{ a {{ b }}")] == [
            TokenType.TAG_OPEN, TokenType.IDENTIFIER,
            TokenType.TAG_OPEN, TokenType.IDENTIFIER, TokenType.TAG_CLOSE,
        ]

    def test_comment_inside_tag_is_trivia(self):
        """A terminated comment inside a tag does not end the tag"""
        types = _types("{{ a {{# note #}} }}")

        assert TokenType.COMMENT in types
        assert types[-2:] == [TokenType.TAG_CLOSE, TokenType.EOF]

    def test_unterminated_string_becomes_error_token(self):
        lexer = AntlersLexer("{{ 'abc }}")
        tokens = lexer.tokenize()

        assert tokens[2].type == TokenType.ERROR
        assert tokens[2].value == "'"
        assert lexer.errors[0][0] == "Unterminated string literal"
        # The rest of the tag is still lexed
        assert tokens[-2].type == TokenType.TAG_CLOSE

    def test_unknown_character(self):
        lexer = AntlersLexer("{{ a ^ b }}")
        tokens = lexer.tokenize()

        assert (TokenType.ERROR, "^") in [(t.type, t.value) for t in tokens]
        assert len(lexer.errors) == 1

    def test_string_literals_with_escapes(self):
        assert significant(r"""{{ "a \"b\"" 'c\'d' }}""")[1:-1] == [
            (TokenType.STRING, r'"a \"b\""'),
            (TokenType.STRING, r"'c\'d'"),
        ]

    def test_number_forms(self):
        """Scientific, hexadecimal, octal, float and integer spellings"""
        numbers = [v for t, v in significant("{{ 1_000 0x1F 017 1.5 2e10 .5 }}") if t == TokenType.NUMBER]

        assert numbers == ["1_000", "0x1F", "017", "1.5", "2e10", ".5"]

    def test_leading_zero_numbers_are_one_token(self):
        assert significant("{{ 019 01.5 07_7.5 }}")[1:-1] == [
            (TokenType.NUMBER, "019"),
            (TokenType.NUMBER, "01.5"),
            (TokenType.NUMBER, "07_7.5"),
        ]

    def test_minus_is_separate_from_number(self):
        assert significant("{{ -5 }}")[1:-1] == [
            (TokenType.OPERATOR, "-"),
            (TokenType.NUMBER, "5"),
        ]

    def test_dot_after_identifier_is_path_separator(self):
        """'a.5' keeps the dot as a separator"""
        assert significant("{{ a.5 }}")[1:-1] == [
            (TokenType.IDENTIFIER, "a"),
            (TokenType.DOT, "."),
            (TokenType.NUMBER, "5"),
        ]


class TestPositions:

    def test_line_and_column_tracking(self):
        tokens = tokenize_antlers("a\n{{ b }}")
        by_value = {t.value: t for t in tokens}

        assert (by_value["{{"].line, by_value["{{"].column) == (2, 1)
        assert (by_value["b"].line, by_value["b"].column) == (2, 4)

    def test_spans_are_contiguous(self):
        """Every character belongs to exactly one token"""
        source = "x {{ a | b:1 }} @y {{# c #}}"
        tokens = tokenize_antlers(source)

        assert "".join(t.value for t in tokens) == source
        for prev, nxt in zip(tokens, tokens[1:]):
            assert prev.end == nxt.position
