#!/usr/bin/env python3
"""
Numerals
Russian cardinal numbers in words, declined by gender and case
"""

from typing import List, Tuple

# Case order used by every table below
CASES = ('nom', 'gen', 'dat', 'acc', 'ins', 'prep')

ONE = {
    'm': ('один', 'одного', 'одному', 'один', 'одним', 'одном'),
    'f': ('одна', 'одной', 'одной', 'одну', 'одной', 'одной'),
    'n': ('одно', 'одного', 'одному', 'одно', 'одним', 'одном'),
}
TWO = {
    'm': ('два', 'двух', 'двум', 'два', 'двумя', 'двух'),
    'f': ('две', 'двух', 'двум', 'две', 'двумя', 'двух'),
    'n': ('два', 'двух', 'двум', 'два', 'двумя', 'двух'),
}


def _soft(word: str) -> Tuple[str, ...]:
    """Numerals ending in -ь: пять, пяти, пяти, пять, пятью, пяти"""
    stem = word[:-1]
    return word, stem + 'и', stem + 'и', word, stem + 'ью', stem + 'и'


UNITS = {
    3: ('три', 'трёх', 'трём', 'три', 'тремя', 'трёх'),
    4: ('четыре', 'четырёх', 'четырём', 'четыре', 'четырьмя', 'четырёх'),
    5: _soft('пять'),
    6: _soft('шесть'),
    7: _soft('семь'),
    8: ('восемь', 'восьми', 'восьми', 'восемь', 'восьмью', 'восьми'),
    9: _soft('девять'),
}

TEENS = {
    n: _soft(word) for n, word in enumerate([
        'десять', 'одиннадцать', 'двенадцать', 'тринадцать', 'четырнадцать',
        'пятнадцать', 'шестнадцать', 'семнадцать', 'восемнадцать', 'девятнадцать',
    ], start=10)
}

TENS = {
    2: _soft('двадцать'),
    3: _soft('тридцать'),
    4: ('сорок', 'сорока', 'сорока', 'сорок', 'сорока', 'сорока'),
    5: ('пятьдесят', 'пятидесяти', 'пятидесяти', 'пятьдесят', 'пятьюдесятью', 'пятидесяти'),
    6: ('шестьдесят', 'шестидесяти', 'шестидесяти', 'шестьдесят', 'шестьюдесятью', 'шестидесяти'),
    7: ('семьдесят', 'семидесяти', 'семидесяти', 'семьдесят', 'семьюдесятью', 'семидесяти'),
    8: ('восемьдесят', 'восьмидесяти', 'восьмидесяти', 'восемьдесят', 'восьмьюдесятью', 'восьмидесяти'),
    9: ('девяносто', 'девяноста', 'девяноста', 'девяносто', 'девяноста', 'девяноста'),
}

HUNDREDS = {
    1: ('сто', 'ста', 'ста', 'сто', 'ста', 'ста'),
    2: ('двести', 'двухсот', 'двумстам', 'двести', 'двумястами', 'двухстах'),
    3: ('триста', 'трёхсот', 'трёмстам', 'триста', 'тремястами', 'трёхстах'),
    4: ('четыреста', 'четырёхсот', 'четырёмстам', 'четыреста', 'четырьмястами', 'четырёхстах'),
    5: ('пятьсот', 'пятисот', 'пятистам', 'пятьсот', 'пятьюстами', 'пятистах'),
    6: ('шестьсот', 'шестисот', 'шестистам', 'шестьсот', 'шестьюстами', 'шестистах'),
    7: ('семьсот', 'семисот', 'семистам', 'семьсот', 'семьюстами', 'семистах'),
    8: ('восемьсот', 'восьмисот', 'восьмистам', 'восемьсот', 'восьмьюстами', 'восьмистах'),
    9: ('девятьсот', 'девятисот', 'девятистам', 'девятьсот', 'девятьюстами', 'девятистах'),
}

# Instrumental forms of eight with the alternative spelling
EIGHT_ALT = {'восьмью': 'восемью', 'восьмьюдесятью': 'восемьюдесятью', 'восьмьюстами': 'восемьюстами'}

ZERO = {
    'nul': ('нуль', 'нуля', 'нулю', 'нуль', 'нулём', 'нуле'),
    'nol': ('ноль', 'ноля', 'нолю', 'ноль', 'нолём', 'ноле'),
}


def _masculine_scale(stem: str) -> dict:
    return {
        'one': (stem, stem + 'а', stem + 'у', stem, stem + 'ом', stem + 'е'),
        'few': stem + 'а',
        'many': (stem + 'ов', stem + 'ов', stem + 'ам', stem + 'ов', stem + 'ами', stem + 'ах'),
    }


# Group nouns for 10^3, 10^6, ...; the thousand group counts in the feminine
SCALES = [
    ('f', {
        'one': ('тысяча', 'тысячи', 'тысяче', 'тысячу', 'тысячей', 'тысяче'),
        'few': 'тысячи',
        'many': ('тысяч', 'тысяч', 'тысячам', 'тысяч', 'тысячами', 'тысячах'),
    }),
    ('m', _masculine_scale('миллион')),
    ('m', _masculine_scale('миллиард')),
    ('m', _masculine_scale('триллион')),
    ('m', _masculine_scale('квадриллион')),
    ('m', _masculine_scale('квинтиллион')),
]


def plural_index(n: int) -> int:
    """0 for 1, 21, 101...; 1 for 2-4, 22-24...; 2 for the rest"""
    n = abs(n)
    if n % 10 == 1 and n % 100 != 11:
        return 0
    if 2 <= n % 10 <= 4 and not 12 <= n % 100 <= 14:
        return 1
    return 2


def _triad(n: int, gender: str, case: int) -> List[str]:
    words = []
    hundreds, rest = divmod(n, 100)
    if hundreds:
        words.append(HUNDREDS[hundreds][case])
    if 10 <= rest <= 19:
        words.append(TEENS[rest][case])
        return words
    tens, units = divmod(rest, 10)
    if tens:
        words.append(TENS[tens][case])
    if units == 1:
        words.append(ONE[gender][case])
    elif units == 2:
        words.append(TWO[gender][case])
    elif units:
        words.append(UNITS[units][case])
    return words


def _scale_noun(forms: dict, n: int, case: int) -> str:
    index = plural_index(n)
    if index == 0:
        return forms['one'][case]
    if index == 1 and CASES[case] in ('nom', 'acc'):
        return forms['few']
    return forms['many'][case]


def to_words(n: int, gender: str = 'm', case: str = 'nom', zero: str = 'nul', alt_eight: bool = False) -> str:
    """
    Spell out an integer

        to_words(1234) -> "одна тысяча двести тридцать четыре"
        to_words(35147, case='dat') -> "тридцати пяти тысячам ста сорока семи"
    """
    index = CASES.index(case)
    if n == 0:
        return ZERO[zero][index]

    words = []
    if n < 0:
        words.append('минус')
        n = -n

    triads = []
    while n:
        n, triad = divmod(n, 1000)
        triads.append(triad)
    if len(triads) > len(SCALES) + 1:
        raise ValueError("number too large to spell out")

    for position in range(len(triads) - 1, -1, -1):
        triad = triads[position]
        if not triad:
            continue
        if position == 0:
            words.extend(_triad(triad, gender, index))
            continue
        scale_gender, forms = SCALES[position - 1]
        words.extend(_triad(triad, scale_gender, index))
        words.append(_scale_noun(forms, triad, index))

    if alt_eight:
        words = [EIGHT_ALT.get(word, word) for word in words]
    return ' '.join(words)
