from typing import Any, Mapping

import click
from ape.utils import ZERO_ADDRESS


def _abort() -> None:
    print("Aborting deployment!")
    raise click.Abort()


def _continue() -> None:
    """Asks the user to continue."""
    answer = input("Continue Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_zero_address() -> None:
    answer = input("Zero Address detected for deployment parameter; Continue? Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_resolution(resolved_params: Mapping[str, Any], pipeline_name: str) -> None:
    """Asks the user to confirm the resolved configuration for a pipeline."""
    print(f"\nResolved configuration for {pipeline_name}")
    contains_zero_address = False
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
        if not contains_zero_address:
            values = resolved_value
            if not isinstance(values, (list, tuple)):
                values = [values]
            contains_zero_address = ZERO_ADDRESS in values
    _continue()
    if contains_zero_address:
        _confirm_zero_address()
