"""Domain models and input validation for trip date matching."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import json
from pathlib import Path
import re
from typing import Any

MAX_TRIP_DAYS = 60
MAX_NAME_LENGTH = 64

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InputValidationError(ValueError):
    """Represent a validation error in the input payload."""


class InvalidWindowError(InputValidationError):
    """Raised when a plan window ends before it starts."""


class InvalidTripLengthError(InputValidationError):
    """Raised when the required trip length is not a positive integer."""


@dataclass(frozen=True)
class Respondent:
    """Represent one person's answer to a plan.

    Attributes:
        respondent_id (str): Stable identifier.
        name (str): Display name.
        available_dates (frozenset[date]): Days the person is free.
    """

    respondent_id: str
    name: str
    available_dates: frozenset[date]


@dataclass(frozen=True)
class Plan:
    """Represent a plan's candidate window and its responses.

    Attributes:
        start_range (date): Inclusive first candidate day.
        end_range (date): Inclusive last candidate day.
        num_days (int): Minimum consecutive days a trip must span.
        respondents (tuple[Respondent, ...]): Responses in submission order.
        name (str): Optional plan title.
    """

    start_range: date
    end_range: date
    num_days: int
    respondents: tuple[Respondent, ...] = ()
    name: str = ""

    @property
    def window_length_days(self) -> int:
        """Number of days in the inclusive window."""
        return (self.end_range - self.start_range).days + 1


def parse_iso_date(raw_date: str, field_name: str) -> date:
    """Parse an ISO day string.

    Only the fixed-width ``YYYY-MM-DD`` form is accepted so that formatting
    the parsed value reproduces the input exactly.

    Args:
        raw_date (str): Date value in YYYY-MM-DD format.
        field_name (str): Field path for error context.

    Returns:
        date: Parsed date.

    Raises:
        InputValidationError: If date is not valid ISO format.
    """
    if not _ISO_DATE_PATTERN.match(raw_date):
        raise InputValidationError(
            f"Invalid date at '{field_name}': '{raw_date}'. "
            "Expected YYYY-MM-DD."
        )
    try:
        return datetime.strptime(raw_date, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InputValidationError(
            f"Invalid date at '{field_name}': '{raw_date}'. "
            "Expected YYYY-MM-DD."
        ) from exc


def to_iso(value: date) -> str:
    """Convert a date to its ISO day string.

    Args:
        value (date): Date to convert.

    Returns:
        str: Date in YYYY-MM-DD format.
    """
    return value.isoformat()


def validate_window(start_range: date, end_range: date) -> None:
    """Reject a window whose end lies before its start.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
    """
    if end_range < start_range:
        raise InvalidWindowError(
            f"Invalid window: end {to_iso(end_range)} is before "
            f"start {to_iso(start_range)}."
        )


def validate_trip_length(num_days: int) -> None:
    """Reject a trip length that is not a positive integer.

    Args:
        num_days (int): Required consecutive trip days.

    Raises:
        InvalidTripLengthError: If ``num_days`` is not an ``int``, is a
            ``bool``, or is less than 1.
    """
    if isinstance(num_days, bool) or not isinstance(num_days, int):
        raise InvalidTripLengthError(
            f"Invalid trip length: {num_days!r}. Expected a whole number of days."
        )
    if num_days < 1:
        raise InvalidTripLengthError(
            f"Invalid trip length: {num_days}. Expected at least 1 day."
        )


def _validate_object_keys(
    payload: dict[str, Any],
    allowed_keys: set[str],
    object_name: str,
) -> None:
    """Validate object keys and reject unknown fields.

    Args:
        payload (dict[str, Any]): Object to validate.
        allowed_keys (set[str]): Allowed keys for this object.
        object_name (str): Object label for errors.
    """
    unknown = set(payload.keys()) - allowed_keys
    if unknown:
        unknown_joined = ", ".join(sorted(unknown))
        raise InputValidationError(
            f"Unknown field(s) in {object_name}: {unknown_joined}"
        )


def _parse_available_dates(raw_dates: Any, list_path: str) -> frozenset[date]:
    """Parse a respondent's list of available ISO days.

    Args:
        raw_dates (Any): Raw list of date strings.
        list_path (str): Error path for context.

    Returns:
        frozenset[date]: Parsed days, duplicates collapsed.
    """
    if raw_dates is None:
        return frozenset()

    if not isinstance(raw_dates, list):
        raise InputValidationError(f"Expected list at '{list_path}'.")

    parsed_dates: set[date] = set()
    for index, raw_date in enumerate(raw_dates):
        if not isinstance(raw_date, str):
            raise InputValidationError(
                f"Expected date string at '{list_path}[{index}]'."
            )
        parsed_dates.add(parse_iso_date(raw_date, f"{list_path}[{index}]"))
    return frozenset(parsed_dates)


def _parse_respondent(raw_respondent: dict[str, Any], index: int) -> Respondent:
    """Parse one response payload.

    Args:
        raw_respondent (dict[str, Any]): Raw response object.
        index (int): Index in responses list.

    Returns:
        Respondent: Parsed respondent.
    """
    respondent_path = f"responses[{index}]"
    _validate_object_keys(
        payload=raw_respondent,
        allowed_keys={"id", "name", "availableDates"},
        object_name=respondent_path,
    )

    raw_name = raw_respondent.get("name")
    if not isinstance(raw_name, str) or not raw_name.strip():
        raise InputValidationError(
            f"Expected non-empty string at '{respondent_path}.name'."
        )
    name = raw_name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise InputValidationError(
            f"Name at '{respondent_path}.name' must be {MAX_NAME_LENGTH} "
            "characters or less."
        )

    raw_id = raw_respondent.get("id", f"respondent-{index}")
    if not isinstance(raw_id, str) or not raw_id.strip():
        raise InputValidationError(
            f"Expected non-empty string at '{respondent_path}.id'."
        )

    return Respondent(
        respondent_id=raw_id.strip(),
        name=name,
        available_dates=_parse_available_dates(
            raw_respondent.get("availableDates", []),
            f"{respondent_path}.availableDates",
        ),
    )


def _parse_num_days(raw_num_days: Any) -> int:
    """Parse the required trip length.

    Args:
        raw_num_days (Any): Raw ``numDays`` value.

    Returns:
        int: Validated trip length.
    """
    validate_trip_length(raw_num_days)
    if raw_num_days > MAX_TRIP_DAYS:
        raise InputValidationError(
            f"Invalid trip length: {raw_num_days}. Must be {MAX_TRIP_DAYS} "
            "days or less."
        )
    return raw_num_days


def parse_plan_payload(payload: dict[str, Any]) -> Plan:
    """Parse and validate the full JSON plan payload.

    Args:
        payload (dict[str, Any]): Raw payload dictionary.

    Returns:
        Plan: Parsed and validated plan.
    """
    _validate_object_keys(
        payload=payload,
        allowed_keys={"name", "startRange", "endRange", "numDays", "responses"},
        object_name="root payload",
    )

    if "startRange" not in payload or "endRange" not in payload:
        raise InputValidationError(
            "Both 'startRange' and 'endRange' are required."
        )
    if "numDays" not in payload:
        raise InputValidationError("'numDays' is required.")

    start_range = parse_iso_date(str(payload["startRange"]), "startRange")
    end_range = parse_iso_date(str(payload["endRange"]), "endRange")
    validate_window(start_range, end_range)
    num_days = _parse_num_days(payload["numDays"])

    raw_name = payload.get("name", "")
    if not isinstance(raw_name, str):
        raise InputValidationError("Expected string at 'name'.")

    raw_responses = payload.get("responses", [])
    if not isinstance(raw_responses, list):
        raise InputValidationError("Expected list at 'responses'.")

    respondents: list[Respondent] = []
    seen_ids: set[str] = set()
    for index, raw_respondent in enumerate(raw_responses):
        if not isinstance(raw_respondent, dict):
            raise InputValidationError(f"Expected object at 'responses[{index}]'.")
        respondent = _parse_respondent(raw_respondent, index)
        if respondent.respondent_id in seen_ids:
            raise InputValidationError(
                f"Duplicate respondent id found: '{respondent.respondent_id}'."
            )
        seen_ids.add(respondent.respondent_id)
        respondents.append(respondent)

    return Plan(
        start_range=start_range,
        end_range=end_range,
        num_days=num_days,
        respondents=tuple(respondents),
        name=raw_name.strip(),
    )


def load_plan_from_json(file_path: str) -> Plan:
    """Load and validate a JSON plan from a file.

    Args:
        file_path (str): Absolute or relative path to input JSON file.

    Returns:
        Plan: Parsed and validated plan.
    """
    json_path = Path(file_path)
    if not json_path.exists():
        raise InputValidationError(f"Input file does not exist: {file_path}")

    try:
        raw_content = json_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputValidationError(
            f"Failed to read input file '{file_path}': {exc}"
        ) from exc

    try:
        payload = json.loads(raw_content)
    except json.JSONDecodeError as exc:
        raise InputValidationError(
            f"Invalid JSON in '{file_path}': {exc}"
        ) from exc

    if not isinstance(payload, dict):
        raise InputValidationError("Root JSON value must be an object.")

    return parse_plan_payload(payload)
