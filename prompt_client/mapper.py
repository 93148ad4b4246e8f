from typing import Any, Mapping, MutableMapping, TypeVar

from loguru import logger

from prompt_client.errors import UnmappedKeyError
from prompt_client.models import ParsedOutput

R = TypeVar("R", bound=MutableMapping[str, Any])


def apply_output(parsed: ParsedOutput, record: R, field_map: Mapping[str, str]) -> R:
    """Write parsed values onto `record` through `field_map` (output key -> record field).

    All required keys must be mapped, otherwise nothing is written. Optional keys
    without a mapping are skipped. Fields outside `field_map` are never touched.
    """
    unmapped: list[str] = sorted(key for key in parsed.keys() if key in (parsed.required_keys or ()) and key not in field_map)
    if unmapped:
        raise UnmappedKeyError(unmapped)

    updates: dict[str, str] = {field_map[key]: value for key, value in parsed.items() if key in field_map}

    skipped: list[str] = [key for key in parsed.keys() if key not in field_map]
    if skipped:
        logger.debug(f"Skipping unmapped optional key(s): {', '.join(skipped)}")

    for field, value in updates.items():
        record[field] = value

    return record
