#!/usr/bin/env python3
"""
Modifiers
Scalar modifiers available in marker pipelines: {price|money}, {fio|prefix:`Mr. `}
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional

from data_values import resolve_path, to_text
from numerals import plural_index, to_words

NBSP = '\u00a0'    # no-break space
NNBSP = '\u202f'   # narrow no-break space

ABBR_RE = re.compile(r'((?:(?:^|\s)[a-zа-яё.-]{1,5}\.?){1,2})\s+', re.IGNORECASE)

ROMAN_NUMERALS = [
    (1000, 'M'), (900, 'CM'), (500, 'D'), (400, 'CD'),
    (100, 'C'), (90, 'XC'), (50, 'L'), (40, 'XL'),
    (10, 'X'), (9, 'IX'), (5, 'V'), (4, 'IV'), (1, 'I'),
]

DATE_INPUT_FORMATS = [
    '%Y-%m-%d',
    '%d.%m.%Y',
    '%Y/%m/%d',
    '%d.%m.%Y %H:%M',
    '%Y-%m-%d %H:%M:%S',
    '%a %b %d %H:%M:%S %Y',
]


class RawXML(str):
    """Modifier output that is already WordprocessingML and must not be escaped"""


@dataclass(frozen=True)
class Modifier:
    """
    A registered modifier

    arity fixed arguments are required after the pipeline value; with fewer
    the value is returned unchanged. Extra arguments are passed on only to
    variadic modifiers.
    """
    func: Callable
    arity: int = 0
    variadic: bool = False

    def __call__(self, value, *args):
        if len(args) < self.arity:
            return value
        if not self.variadic:
            args = args[:self.arity]
        return self.func(value, *args)


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(to_text(value).strip().replace(',', '.'))
    except ValueError:
        return None


def _to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    try:
        return int(to_text(value).strip())
    except ValueError:
        return None


# ---- string modifiers ----

def prefix(value, text):
    """Prepend text to a non-blank value: {fio|prefix:`Mr. `}"""
    s = to_text(value)
    if not s.strip():
        return ''
    return to_text(text) + s


def uniq_prefix(value, text):
    """Prepend text unless the value already starts with it (case-insensitive)"""
    s = to_text(value)
    text = to_text(text)
    if not s.strip():
        return ''
    if s.strip().lower().startswith(text.strip().lower()):
        return s
    return text + s


def postfix(value, text):
    """Append text to a non-blank value: {sum|postfix:` USD`}"""
    s = to_text(value)
    if not s.strip():
        return ''
    return s + to_text(text)


def uniq_postfix(value, text):
    """Append text unless the value already ends with it (case-insensitive)"""
    s = to_text(value)
    text = to_text(text)
    if not s.strip():
        return ''
    if s.strip().lower().endswith(text.strip().lower()):
        return s
    return s + text


def default(value, fallback):
    s = to_text(value)
    if not s.strip():
        return to_text(fallback)
    return s


def filled(value, output):
    """Return output when the value is present, '' otherwise: {passport|filled:`yes`}"""
    if value is None or value == '':
        return ''
    return to_text(output)


def replace(value, old, new):
    return to_text(value).replace(to_text(old), to_text(new))


def truncate(value, length, suffix=''):
    """Cut to length characters and append suffix when something was cut"""
    s = to_text(value)
    n = _to_int(length)
    if n is None or n <= 0:
        return ''
    if len(s) <= n:
        return s
    return s[:n] + to_text(suffix)


def word_reverse(value):
    """"Last First Middle" -> "Middle First Last\""""
    return ' '.join(reversed(to_text(value).split()))


def upper(value):
    return to_text(value).upper()


def lower(value):
    return to_text(value).lower()


def wrap(value, left, right=None):
    """Surround a non-blank value: {note|wrap:`(`:`)`}"""
    s = to_text(value)
    if not s.strip():
        return ''
    left = to_text(left)
    return left + s + (left if right is None else to_text(right))


def line_break(value):
    """Follow a non-blank value with a line break"""
    s = to_text(value)
    if not s.strip():
        return ''
    return s + '\n'


def make_concat(data: Dict[str, Any]) -> Callable:
    """
    Build concat over the render data

    The last argument is the separator; other arguments are field names
    (replaced by their values) or plain text. Blank pieces are skipped.

        {org|concat:`address`:`department`:`, `} -> "ACME, 1 Main St, Sales"
    """
    def concat(base, *parts):
        if not parts:
            return to_text(base)
        separator = to_text(parts[-1])
        chunks = []
        base_text = to_text(base)
        if base_text.strip():
            chunks.append(base_text)
        for part in parts[:-1]:
            text = to_text(part).strip()
            found, field_value = resolve_path(data, text) if text else (False, None)
            if found:
                text = to_text(field_value)
            if text.strip():
                chunks.append(text)
        return separator.join(chunks)

    return concat


# ---- text modifiers ----

def nowrap(value):
    """Replace spaces with no-break spaces"""
    return to_text(value).replace(' ', NBSP)


def compact(value):
    """Replace spaces with narrow no-break spaces"""
    return to_text(value).replace(' ', NNBSP)


def abbr(value):
    """Glue initials and short abbreviations to the following word: "J. R. Smith\""""
    return ABBR_RE.sub(lambda m: m.group(0).replace(' ', NBSP), to_text(value))


# Regional numbers first: four-digit area code not starting with 9
PHONE_PATTERNS = [
    (re.compile(r'[+]?([78])[-\s]?\(?([1-7]\d{3})\)?[-\s]?(\d{3})[-\s]?(\d{3})'), True),
    (re.compile(r'[+]?([78])[-\s]?([1-7]\d{3})[-\s]?(\d{3})[-\s]?(\d{3})'), True),
    (re.compile(r'[+]?([78])[-\s]?\(?(\d{3})\)?[-\s]?(\d{3})[-\s]?(\d{2})[-\s]?(\d{2})'), False),
    (re.compile(r'[+]?([78])[-\s]?(\d{3})[-\s]?(\d{3})[-\s]?(\d{2})[-\s]?(\d{2})'), False),
]
PHONE_GROUP_RE = re.compile(r'\$\{?(\d+)\}?')


def _expand_phone(match, layout: str) -> str:
    def group(ref):
        number = int(ref.group(1))
        if number > match.re.groups:
            return ''
        return match.group(number) or ''
    return PHONE_GROUP_RE.sub(group, layout)


def ru_phone(value, *layouts):
    """
    Format Russian phone numbers found in the text

        "89101234567" -> "+7 (910) 123-45-67"
        "84912572466" -> "+7 (4912) 572-466"

    The optional layouts (mobile, then regional) use $1..$5 for the matched
    groups. Unrecognized text is returned unchanged.
    """
    s = to_text(value).strip()
    if not s:
        return ''
    mobile = to_text(layouts[0]) if layouts else '+7 ($2) $3-$4-$5'
    regional = to_text(layouts[1]) if len(layouts) > 1 else '+7 ($2) $3-$4'

    for pattern, is_regional in PHONE_PATTERNS:
        layout = regional if is_regional else mobile
        out = []
        last_end = 0
        for match in pattern.finditer(s):
            # Part of a longer digit run
            if match.end() < len(s) and s[match.end()].isdigit():
                continue
            out.append(s[last_end:match.start()])
            out.append(_expand_phone(match, layout))
            last_end = match.end()
        out.append(s[last_end:])
        s = ''.join(out)
    return s


# ---- numeric modifiers ----

NUMERAL_OPTIONS = {
    'gender': {
        'm': ('м', 'муж', 'мужской', 'masc', 'm', 'masculine'),
        'f': ('ж', 'жен', 'женский', 'fem', 'f', 'feminine'),
        'n': ('ср', 'сред', 'средний', 'neut', 'n', 'neutral'),
    },
    'case': {
        'nom': ('им', 'именительный', 'nom', 'nominative'),
        'gen': ('род', 'родительный', 'gen', 'genitive'),
        'dat': ('дат', 'дательный', 'dat', 'dative'),
        'acc': ('вин', 'винительный', 'acc', 'accusative'),
        'ins': ('тв', 'творительный', 'ins', 'instrumental'),
        'prep': ('пред', 'предложный', 'prep', 'prepositional'),
    },
    'alt_eight': {
        True: ('восемью', 'альт8', 'альтернативная8', 'alt8'),
        False: ('восьмью', 'стандартная8', 'std8'),
    },
    'zero': {
        'nul': ('нуль', 'nul', 'zero-nul'),
        'nol': ('ноль', 'nol', 'zero-nol'),
    },
}

DEFAULT_PLURAL_FORMS = ('сотрудник', 'сотрудника', 'сотрудников')


def numeral(value, *options):
    """
    Spell a number out in Russian words

        {count|numeral} -> "один"
        {count|numeral:`женский`:`предложный`} -> "одной"
        {35147|numeral:`дательный`} -> "тридцати пяти тысячам ста сорока семи"

    Options name the gender, the case, the instrumental spelling of eight and
    the zero word, in any order; unknown options are ignored.
    """
    n = _to_int(value)
    if n is None:
        return ''
    settings = {'gender': 'm', 'case': 'nom', 'alt_eight': False, 'zero': 'nul'}
    for option in options:
        word = to_text(option).strip().lower()
        for setting, choices in NUMERAL_OPTIONS.items():
            found = [choice for choice, words in choices.items() if word in words]
            if found:
                settings[setting] = found[0]
                break
    try:
        return to_words(n, **settings)
    except ValueError:
        return to_text(value)


def plural(value, *forms):
    """
    Pick the noun form agreeing with a number: {days|plural:`день`:`дня`:`дней`}

    Two forms stand for one and many; no forms fall back to "сотрудник".
    """
    n = _to_int(value)
    if n is None:
        return ''
    forms = [to_text(form) for form in forms] or list(DEFAULT_PLURAL_FORMS)
    while len(forms) < 3:
        forms.append(forms[-1])
    return forms[plural_index(n)]


def sign(value):
    number = _to_float(value)
    if number is None:
        return to_text(value)
    if number > 0:
        return '+' + to_text(number)
    return to_text(number)


def pad_left(value, length, fill):
    s = to_text(value)
    n = _to_int(length)
    fill = to_text(fill)
    if n is None or not fill:
        return s
    while len(s) < n:
        s = fill + s
    return s


def pad_right(value, length, fill):
    s = to_text(value)
    n = _to_int(length)
    fill = to_text(fill)
    if n is None or not fill:
        return s
    while len(s) < n:
        s += fill
    return s


def _group_thousands(number: int) -> str:
    digits = str(number)
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ' '.join(groups)


def money(value, *options):
    """
    Format a number as money with space-grouped thousands

        1234.5 -> "1 234,50"
        {sum|money:`int`} -> "1 234"
        {sum|money:`%s USD`} -> "1 234 USD"
        {sum|money:`%s dollars %02d cents`} -> "1 234 dollars 50 cents"
    """
    number = _to_float(value)
    if number is None:
        return to_text(value)

    negative = number < 0
    try:
        cents = int(Decimal(repr(abs(number))).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP) * 100)
    except InvalidOperation:
        return to_text(value)
    whole, fraction = divmod(cents, 100)
    main = ('-' if negative else '') + _group_thousands(whole)

    if options:
        layout = to_text(options[0]).strip()
        if layout.lower() in ('int', 'integer'):
            return ('-' if negative else '') + _group_thousands(int(abs(number)))
        if '%' in layout:
            try:
                if layout.count('%') == 1:
                    return layout % main
                return layout % (main, fraction)
            except (TypeError, ValueError):
                pass

    return f'{main},{fraction:02d}'


def roman(value):
    n = _to_int(value)
    if n is None or n <= 0:
        return ''
    out = []
    for number, symbol in ROMAN_NUMERALS:
        while n >= number:
            n -= number
            out.append(symbol)
    return ''.join(out)


# ---- date modifiers ----

def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    text = to_text(value).strip()
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        pass
    for layout in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    return None


def date_format(value, layout):
    """Reformat a date with a strftime layout: {born|date_format:`%d.%m.%Y`}"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return ''
    parsed = _parse_date(value)
    if parsed is None:
        return to_text(value).strip()
    return parsed.strftime(to_text(layout))


BUILTIN_MODIFIERS: Dict[str, Modifier] = {
    # string
    'prefix': Modifier(prefix, 1),
    'uniq_prefix': Modifier(uniq_prefix, 1),
    'postfix': Modifier(postfix, 1),
    'uniq_postfix': Modifier(uniq_postfix, 1),
    'default': Modifier(default, 1),
    'filled': Modifier(filled, 1),
    'replace': Modifier(replace, 2),
    'truncate': Modifier(truncate, 1, variadic=True),
    'word_reverse': Modifier(word_reverse),
    'upper': Modifier(upper),
    'lower': Modifier(lower),
    'wrap': Modifier(wrap, 1, variadic=True),
    'br': Modifier(line_break),
    'nl': Modifier(line_break),

    # text
    'nowrap': Modifier(nowrap),
    'compact': Modifier(compact),
    'abbr': Modifier(abbr),
    'ru_phone': Modifier(ru_phone, 0, variadic=True),

    # numeric
    'numeral': Modifier(numeral, 0, variadic=True),
    'plural': Modifier(plural, 0, variadic=True),
    'sign': Modifier(sign),
    'pad_left': Modifier(pad_left, 2),
    'pad_right': Modifier(pad_right, 2),
    'money': Modifier(money, 0, variadic=True),
    'roman': Modifier(roman),

    # date
    'date_format': Modifier(date_format, 1),
}


def build_registry(data: Optional[Dict[str, Any]] = None,
                   extra: Optional[Dict[str, Modifier]] = None) -> Dict[str, Modifier]:
    """
    Assemble the modifiers for one render

    Built-ins first, then concat bound to the render data, then caller
    modifiers, which may override built-ins.
    """
    registry = dict(BUILTIN_MODIFIERS)
    registry['concat'] = Modifier(make_concat(data or {}), 0, variadic=True)
    if extra:
        registry.update(extra)
    return registry
