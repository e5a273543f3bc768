"""
Unit tests for numerals.py

Tests Russian number words by gender and case, thousands and millions,
zero spelling and the instrumental forms of eight.
"""

import pytest

from numerals import plural_index, to_words


class TestToWords:
    """Test spelling numbers out."""

    @pytest.mark.parametrize('n,expected', [
        (0, 'нуль'),
        (5, 'пять'),
        (21, 'двадцать один'),
        (1234, 'одна тысяча двести тридцать четыре'),
        (-7, 'минус семь'),
        (1000, 'одна тысяча'),
        (2001, 'две тысячи один'),
        (5000000, 'пять миллионов'),
        (123456789, 'сто двадцать три миллиона четыреста пятьдесят шесть тысяч семьсот восемьдесят девять'),
    ])
    def test_nominative(self, n, expected):
        assert to_words(n) == expected

    @pytest.mark.parametrize('case,expected', [
        ('nom', 'два'), ('gen', 'двух'), ('dat', 'двум'),
        ('acc', 'два'), ('ins', 'двумя'), ('prep', 'двух'),
    ])
    def test_cases_of_two(self, case, expected):
        assert to_words(2, case=case) == expected

    @pytest.mark.parametrize('n,gender,case,expected', [
        (1, 'f', 'nom', 'одна'),
        (1, 'n', 'nom', 'одно'),
        (1001, 'm', 'gen', 'одной тысячи одного'),
        (1001, 'f', 'dat', 'одной тысяче одной'),
        (1001, 'n', 'ins', 'одной тысячей одним'),
        (1001, 'm', 'prep', 'одной тысяче одном'),
        (2002, 'f', 'nom', 'две тысячи две'),
        (2002, 'n', 'nom', 'две тысячи два'),
        (2002, 'm', 'ins', 'двумя тысячами двумя'),
        (2002, 'm', 'prep', 'двух тысячах двух'),
        (21021, 'f', 'gen', 'двадцати одной тысячи двадцати одной'),
        (3000001, 'm', 'gen', 'трёх миллионов одного'),
        (35147, 'm', 'dat', 'тридцати пяти тысячам ста сорока семи'),
        (1000, 'm', 'acc', 'одну тысячу'),
    ])
    def test_gender_and_case(self, n, gender, case, expected):
        assert to_words(n, gender=gender, case=case) == expected

    def test_zero_spelling(self):
        assert to_words(0, zero='nol') == 'ноль'
        assert to_words(0, case='ins', zero='nol') == 'нолём'

    def test_instrumental_eight(self):
        assert to_words(8, case='ins') == 'восьмью'
        assert to_words(8, case='ins', alt_eight=True) == 'восемью'
        assert to_words(80, case='ins') == 'восьмьюдесятью'
        assert to_words(80, case='ins', alt_eight=True) == 'восемьюдесятью'

    def test_large_number(self):
        words = to_words(999_999_999_999_999_999)
        assert words.startswith('девятьсот девяносто девять квадриллионов')

    def test_too_large(self):
        with pytest.raises(ValueError):
            to_words(10 ** 21)


class TestPluralIndex:
    """Test noun agreement classes."""

    @pytest.mark.parametrize('n,index', [
        (1, 0), (21, 0), (101, 0), (11, 2),
        (2, 1), (4, 1), (23, 1), (12, 2), (14, 2),
        (0, 2), (5, 2), (-1, 0),
    ])
    def test_plural_index(self, n, index):
        assert plural_index(n) == index
