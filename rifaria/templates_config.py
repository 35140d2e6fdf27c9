from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union

from fastapi.templating import Jinja2Templates

# Shared templates instance
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def format_brl(value: Optional[Union[Decimal, float]]) -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    amount = f"{float(value or 0):,.2f}"
    return "R$ " + amount.replace(",", "_").replace(".", ",").replace("_", ".")


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%d/%m/%Y %H:%M")


templates.env.filters["brl"] = format_brl
templates.env.filters["datetime_br"] = format_datetime
