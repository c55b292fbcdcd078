"""
Parsing of the loosely formatted dates and amounts that arrive from the front end.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from dateutil import parser as date_parser

from caixa.core.exceptions import DateParseError, MoneyParseError


TWOPLACES = Decimal("0.01")

_YMD = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)")
_YEAR_FIRST = re.compile(r"^\d{4}\D")

_MISSING = object()


def parse_local_date(value: Any, default: Any = _MISSING) -> date:
    """
    Normaliza uma data sem deslocamento de fuso.

    Aceita YYYY-MM-DD (com ou sem hora), DD/MM/YYYY, date, datetime ou qualquer
    formato que o dateutil reconheça. Em caso de falha levanta DateParseError,
    a menos que `default` seja informado.
    """
    try:
        return _parse_local_date(value)
    except DateParseError:
        if default is _MISSING:
            raise
        return default


def _parse_local_date(value: Any) -> date:
    if value is None:
        raise DateParseError(value)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        raise DateParseError(value)

    match = _YMD.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _build_date(year, month, day, value)

    match = _DMY.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _build_date(year, month, day, value)

    # Ano na frente (2025.1.5, 2025/01/05) é sempre ano-mês-dia
    year_first = bool(_YEAR_FIRST.match(text))
    try:
        return date_parser.parse(text, yearfirst=year_first, dayfirst=not year_first).date()
    except (ValueError, OverflowError) as exc:
        raise DateParseError(value) from exc


def _build_date(year: int, month: int, day: int, original: Any) -> date:
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateParseError(original) from exc


def parse_money(value: Any) -> Decimal:
    """
    Converte "1.234,56", "1234.56", "R$ 10,00" ou números em Decimal.
    Vazio vale zero; texto irreconhecível levanta MoneyParseError.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise MoneyParseError(value)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = str(value).strip().replace("R$", "").replace(" ", "")
    if not text:
        return Decimal("0")

    if "," in text:
        # Formato brasileiro: ponto de milhar, vírgula decimal
        text = text.replace(".", "").replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise MoneyParseError(value) from exc
    if not amount.is_finite():
        raise MoneyParseError(value)
    return amount


def quantize_money(value: Any) -> Decimal:
    return parse_money(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
