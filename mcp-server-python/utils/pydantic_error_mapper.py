"""Convert Pydantic validation errors to the project MarketplaceError contract."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from models.errors import MarketplaceError, create_validation_error


def _loc_to_field(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc if part != "__root__")


def _describe_issue(issue: dict) -> str:
    message = issue.get("msg", "Invalid input")
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    field = _loc_to_field(issue.get("loc", ()))
    # Field validators already phrase their message as "Invalid <field>: ..."
    if not field or message.startswith("Invalid "):
        return message
    return f"Invalid {field}: {message}"


def map_pydantic_validation_error(error: ValidationError) -> MarketplaceError:
    """
    Map a request ValidationError to VALIDATION_REJECTED.

    Only the first issue is spelled out; the remaining ones are counted.
    """
    issues = error.errors()
    if not issues:
        return create_validation_error("Invalid input")

    message = _describe_issue(issues[0])
    if len(issues) > 1:
        message += f" (and {len(issues) - 1} more invalid field(s))"
    return create_validation_error(message)
