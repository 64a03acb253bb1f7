from typing import Optional

# Notices write the era either as the e-Gov digit code or as its letter.
ERA_CODES: dict[str, str] = {
    "5": "S",  # 昭和
    "8": "H",  # 平成
    "9": "R",  # 令和
    "S": "S",
    "H": "H",
    "R": "R",
}


def convert_era_code(code: str) -> str:
    """
    Map an era code to its letter; unknown codes come back exactly as given.

    >>> convert_era_code("9"), convert_era_code(" 8 "), convert_era_code("5")
    ('R', 'H', 'S')
    >>> convert_era_code(" 7")
    ' 7'
    """
    return ERA_CODES.get(code.strip(), code)


def pad2(value: str) -> str:
    """
    >>> pad2("  7")
    '07'
    """
    return value.strip().rjust(2, "0")


def format_era_date(
    era: str, year: str, month: str, day: Optional[str] = None
) -> str:
    """
    >>> format_era_date("9", "7", "9")
    'R07年09月'
    >>> format_era_date("R", "07", "6", "15")
    'R07年06月15日'
    """
    text = f"{convert_era_code(era)}{pad2(year)}年{pad2(month)}月"
    if day is not None:
        text += f"{pad2(day)}日"
    return text
