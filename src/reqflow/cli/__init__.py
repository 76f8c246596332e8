from __future__ import annotations

from reqflow.cli.commands import AliasedGroup, reqflow

__all__ = ["reqflow", "AliasedGroup", "main"]


def main() -> None:
    reqflow()
