"""
Interactive selection prompts.
"""

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from .exceptions import SelectionCancelled


def choose(message, options):
    """
    Ask the user to pick one option from a list.

    Args:
        message: Question shown above the list
        options: list of dicts with label (shown) and value (returned)

    Returns:
        The value of the chosen option

    Raises:
        SelectionCancelled: If the user presses Ctrl-C
    """
    choices = [Choice(value=option["value"], name=option["label"]) for option in options]
    try:
        return inquirer.select(message=message, choices=choices).execute()
    except KeyboardInterrupt:
        raise SelectionCancelled("Selection cancelled") from None
