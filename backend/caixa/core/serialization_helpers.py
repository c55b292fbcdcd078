"""
Helpers genéricos de serialização.
NÃO contém lógica de negócio, apenas utilitários de formato.
"""
from decimal import Decimal


def serialize_money(value):
    """Decimal -> "1234.56" (valores monetários trafegam como string)"""
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def serialize_date(value):
    """date/datetime -> "YYYY-MM-DD" """
    if value is None:
        return None
    return value.strftime("%Y-%m-%d")


def serialize_datetime(value):
    """Converte datetime em string ISO para serialização JSON"""
    if value is None:
        return None
    return value.isoformat()
