"""金额显示格式（印尼盾，不带小数）"""

import re
from decimal import Decimal, ROUND_HALF_UP


def format_rupiah(number) -> str:
    """数字转为印尼盾显示格式

    >>> format_rupiah(150000)
    'Rp 150.000'
    """
    try:
        amount = Decimal(str(number))
    except ArithmeticError:
        amount = Decimal("0")
    if not amount.is_finite():
        amount = Decimal("0")

    amount = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    digits = f"{abs(int(amount)):,}".replace(",", ".")
    return f"{sign}Rp {digits}"


def parse_rupiah(rupiah_string: str) -> int:
    """从印尼盾显示字符串中取回数字，只保留数字字符

    >>> parse_rupiah("Rp 150.000")
    150000
    """
    digits_only = re.sub(r"[^0-9]", "", rupiah_string or "")
    return int(digits_only) if digits_only else 0
