"""Today's date in the French Republican calendar.

Years are counted from 1 Vendémiaire an I (22 September 1792) and use
Romme's leap rule (every 4 years, except centuries not divisible by 400).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from coucou.commands.types import DateCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

EPOCH = date(1792, 9, 22)

MONTHS = [
    "Vendémiaire",
    "Brumaire",
    "Frimaire",
    "Nivôse",
    "Pluviôse",
    "Ventôse",
    "Germinal",
    "Floréal",
    "Prairial",
    "Messidor",
    "Thermidor",
    "Fructidor",
]

DECADE_DAYS = [
    "Primidi",
    "Duodi",
    "Tridi",
    "Quartidi",
    "Quintidi",
    "Sextidi",
    "Septidi",
    "Octidi",
    "Nonidi",
    "Décadi",
]

SANSCULOTTIDES = [
    "Jour de la vertu",
    "Jour du génie",
    "Jour du travail",
    "Jour de l'opinion",
    "Jour des récompenses",
    "Jour de la révolution",
]

_ROMAN = [
    (1000, "M"),
    (900, "CM"),
    (500, "D"),
    (400, "CD"),
    (100, "C"),
    (90, "XC"),
    (50, "L"),
    (40, "XL"),
    (10, "X"),
    (9, "IX"),
    (5, "V"),
    (4, "IV"),
    (1, "I"),
]


def to_roman(n: int) -> str:
    out = []
    for value, symbol in _ROMAN:
        count, n = divmod(n, value)
        out.append(symbol * count)
    return "".join(out)


def is_sextile(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


@dataclass(frozen=True)
class RepublicanDate:
    year: int
    month: int  # 1..12, 13 for the sansculottides
    day: int  # 1..30 (1..6 in the sansculottides)

    def __str__(self) -> str:
        year = f"an {to_roman(self.year)}"
        if self.month == 13:
            return f"{SANSCULOTTIDES[self.day - 1]}, {year}"
        return f"{DECADE_DAYS[(self.day - 1) % 10]} {self.day} {MONTHS[self.month - 1]} {year}"


def to_republican(day: date) -> RepublicanDate:
    if day < EPOCH:
        raise ValueError("date precedes the Republican calendar")
    remaining = (day - EPOCH).days
    year = 1
    while remaining >= (length := 366 if is_sextile(year) else 365):
        remaining -= length
        year += 1
    month, day_of_month = divmod(remaining, 30)
    return RepublicanDate(year=year, month=month + 1, day=day_of_month + 1)


async def handle_date(ctx: BotContext, message: InboundMessage, command: DateCommand) -> str | None:
    return f"Nous sommes le {to_republican(ctx.clock().date())}"
