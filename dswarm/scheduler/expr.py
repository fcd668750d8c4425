"""Scheduling expressions such as ``key==value`` and ``key!=~/regexp/``."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

log = logging.getLogger(__name__)


class ExprError(ValueError):
    """Raised when an expression cannot be parsed."""


class Operator(enum.IntEnum):
    """Comparison operators of an expression."""

    EQ = 0
    NOTEQ = 1

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {Operator.EQ: "==", Operator.NOTEQ: "!="}

_KEY = re.compile(r"[a-z_][a-z0-9\-_.]+", re.IGNORECASE | re.ASCII)
_VALUE = re.compile(
    r"[=!/]?(~)?[a-z0-9:\-_\s.*/()?+\[\]\\^$|]+", re.IGNORECASE | re.ASCII
)


@dataclass(frozen=True)
class Expr:
    """A parsed expression; soft ones are preferences rather than requirements."""

    key: str
    operator: Operator
    value: str
    is_soft: bool = False

    def __str__(self) -> str:
        return f"{self.key}{self.operator.symbol}{self.value}"

    def match(self, *whats: str) -> bool:
        """Tell whether the values satisfy the expression.

        For ``==`` one matching value is enough; for ``!=`` none may match.
        The value is a glob unless it is enclosed in slashes, then a regexp.
        """
        value = self.value
        if len(value) >= 2 and value.startswith("/") and value.endswith("/"):
            pattern = value[1:-1]
        else:
            pattern = "^" + value.replace("*", ".*") + "$"

        matched = False
        for what in whats:
            try:
                if re.search(pattern, what):
                    matched = True
                    break
            except re.error as err:
                log.error("%s", err)

        if self.operator is Operator.EQ:
            return matched
        return not matched


def parse_exprs(env: list[str]) -> list[Expr]:
    """Parse ``key==value`` / ``key!=value`` expressions."""
    exprs: list[Expr] = []
    for entry in env:
        for operator in Operator:
            if operator.symbol not in entry:
                continue
            key, value = entry.split(operator.symbol, 1)
            if not _KEY.fullmatch(key):
                raise ExprError(f"Key '{key}' is invalid")
            if not _VALUE.fullmatch(value):
                raise ExprError(f"Value '{value}' is invalid")
            exprs.append(
                Expr(key.lower(), operator, value.lstrip("~"), value.startswith("~"))
            )
            break
        else:
            raise ExprError("One of operator ==, != is expected")
    return exprs