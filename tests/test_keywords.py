"""
Tests for the default keyword classifier.
"""

import pytest

from antlers.keywords import DefaultKeywordClassifier, KeywordClass


def _classify(source, classifier=None):
    classifier = classifier or DefaultKeywordClassifier()
    return classifier.classify(source, source.index("{{") + 2)


class TestDefaultKeywordClassifier:

    @pytest.mark.parametrize("source, expected", [
        ("{{ if x }}", KeywordClass.IF),
        ("{{ unless x }}", KeywordClass.UNLESS),
        ("{{ collection:blog }}", KeywordClass.COLLECTION),
        ('{{ collection from="blog" }}', KeywordClass.COLLECTION),
        ('{{ nav :from="main" }}', KeywordClass.NAV),
        ("{{ nav:breadcrumbs }}", KeywordClass.NAV),
        ("{{ taxonomy:tags }}", KeywordClass.TAXONOMY),
        ("{{ form:errors }}", KeywordClass.FORM),
        ("{{ entries }}", KeywordClass.ENTRIES),
        ('{{ entries limit="2" }}', KeywordClass.ENTRIES),
    ])
    def test_reserved_keywords(self, source, expected):
        assert _classify(source) is expected

    @pytest.mark.parametrize("source", [
        "{{ if(x) }}",
        "{{ iffy }}",
        "{{ collection }}",
        "{{ collection == 1 }}",
        "{{ collection => 1 }}",
        "{{ entries_count }}",
        "{{ title }}",
        "{{ /if }}",
        "{{ 'if' }}",
    ])
    def test_user_spellings_are_not_keywords(self, source):
        """The same spelling in a non-keyword position is a plain identifier"""
        assert _classify(source) is KeywordClass.NONE

    def test_disabled_keyword(self):
        classifier = DefaultKeywordClassifier([KeywordClass.IF])

        assert _classify("{{ collection:blog }}", classifier) is KeywordClass.NONE
        assert _classify("{{ if x }}", classifier) is KeywordClass.IF

    def test_offset_is_respected(self):
        """Only the text after the given offset is inspected"""
        source = "if x {{ title }}"
        assert _classify(source) is KeywordClass.NONE

    def test_pure_query(self):
        """Repeated calls give the same verdict"""
        classifier = DefaultKeywordClassifier()
        source = "{{ collection:blog }}"

        assert classifier.classify(source, 2) is classifier.classify(source, 2)
