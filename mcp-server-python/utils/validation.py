"""
Input validation utilities for the marketplace sync tools.

Validates entity ids, entity kinds, item types, page limits and bulk batches
before anything reaches the lifecycle engine or the network.
"""

from typing import List, Optional

from models.errors import create_validation_error
from models.status import EntityKind, ItemType

# Constants for validation
DEFAULT_NOTIFICATION_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 100

MAX_BULK_SIZE = 100

# Entity kinds whose status can be changed through transition_status
TRANSITIONABLE_KINDS = (
    EntityKind.JOB,
    EntityKind.APPLICATION,
    EntityKind.COURSE_INQUIRY,
)


def validate_entity_id(entity_id, field_name: str = "entity_id") -> str:
    """
    Validate an entity identifier.

    Backend identifiers are opaque strings; integers are rejected so that
    a numeric id is never silently compared against a string key.

    Args:
        entity_id: The identifier to validate
        field_name: Name used in error messages

    Returns:
        Validated identifier

    Raises:
        MarketplaceError: If the identifier is invalid
    """
    if entity_id is None:
        raise create_validation_error(f"Invalid {field_name}: cannot be null")

    if not isinstance(entity_id, str):
        raise create_validation_error(
            f"Invalid {field_name} type: expected string, got {type(entity_id).__name__}"
        )

    if not entity_id.strip():
        raise create_validation_error(f"Invalid {field_name}: cannot be empty")

    if entity_id != entity_id.strip():
        raise create_validation_error(
            f"Invalid {field_name}: '{entity_id}' contains leading or trailing whitespace"
        )

    return entity_id


def validate_entity_kind(kind) -> EntityKind:
    """
    Validate the entity kind for status transitions.

    Raises:
        MarketplaceError: If the kind is unknown or has no status lifecycle
    """
    try:
        parsed = EntityKind(kind)
    except ValueError:
        parsed = None

    if parsed not in TRANSITIONABLE_KINDS:
        allowed = ", ".join(k.value for k in TRANSITIONABLE_KINDS)
        raise create_validation_error(
            f"Invalid entity kind: '{kind}'. Allowed values are: {allowed}"
        )

    return parsed


def validate_item_type(item_type) -> ItemType:
    """
    Validate a bookmark item type.

    Raises:
        MarketplaceError: If the item type is not 'job' or 'course'
    """
    try:
        return ItemType(item_type)
    except ValueError:
        allowed = ", ".join(t.value for t in ItemType)
        raise create_validation_error(
            f"Invalid item type: '{item_type}'. Allowed values are: {allowed}"
        )


def validate_limit(limit: Optional[int], default: int = DEFAULT_NOTIFICATION_LIMIT) -> int:
    """
    Validate a page size.

    Args:
        limit: The requested page size (None for default)
        default: Value returned when limit is None

    Returns:
        Validated limit value

    Raises:
        MarketplaceError: If limit is invalid
    """
    if limit is None:
        return default

    # bool is a subclass of int in Python, reject explicitly
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise create_validation_error(
            f"Invalid limit type: expected integer, got {type(limit).__name__}"
        )

    if limit < MIN_LIMIT:
        raise create_validation_error(f"Invalid limit: {limit} is below minimum of {MIN_LIMIT}")

    if limit > MAX_LIMIT:
        raise create_validation_error(f"Invalid limit: {limit} exceeds maximum of {MAX_LIMIT}")

    return limit


def validate_bulk_ids(entity_ids) -> List[str]:
    """
    Validate the id list of a bulk status update.

    A bulk update needs at least one id, at most MAX_BULK_SIZE ids, and no
    duplicates.

    Raises:
        MarketplaceError: If the batch is empty, too large, malformed or has duplicates
    """
    if not isinstance(entity_ids, list):
        raise create_validation_error(
            f"Invalid ids type: expected list, got {type(entity_ids).__name__}"
        )

    if not entity_ids:
        raise create_validation_error("Invalid ids: batch cannot be empty")

    if len(entity_ids) > MAX_BULK_SIZE:
        raise create_validation_error(
            f"Batch size too large: {len(entity_ids)} ids exceeds maximum of {MAX_BULK_SIZE}"
        )

    validated = [validate_entity_id(entity_id, "id") for entity_id in entity_ids]

    seen = set()
    duplicates = set()
    for entity_id in validated:
        if entity_id in seen:
            duplicates.add(entity_id)
        seen.add(entity_id)

    if duplicates:
        raise create_validation_error(
            f"Duplicate ids found in batch: {', '.join(sorted(duplicates))}"
        )

    return validated
