"""
Schema validation for review panel records.

Every record that crosses a boundary is checked against a JSON Schema in
schemas/<name>.schema.json:

    review_result    what a reviewer must answer with
    panel_selection  what the semantic selector must answer with
    work_item        Epic/Story records, checked before every write

Failures raise ValidationError naming the schema, the most relevant
offending path, and how many other problems were found.
"""

import json
from functools import lru_cache
from pathlib import Path

import jsonschema
from jsonschema.exceptions import best_match

SCHEMAS_DIR = Path(__file__).resolve().parent.parent.parent / "schemas"


class ValidationError(Exception):
    """Schema validation failed."""

    def __init__(self, schema_name: str, message: str, path: str = None):
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"[{schema_name}] {message}" + (f" at {path}" if path else ""))


@lru_cache(maxsize=None)
def _validator(schema_name: str) -> jsonschema.Draft7Validator:
    schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
    if not schema_path.is_file():
        raise ValidationError(schema_name, f"Schema file not found: {schema_path}")
    schema = json.loads(schema_path.read_text())
    jsonschema.Draft7Validator.check_schema(schema)
    return jsonschema.Draft7Validator(schema)


def validate(data: dict, schema_name: str) -> None:
    """
    Validate data against named schema.

    Raises:
        ValidationError: On the most relevant violation
    """
    errors = list(_validator(schema_name).iter_errors(data))
    if not errors:
        return

    first = best_match(errors)
    path = ".".join(str(p) for p in first.absolute_path) or "(root)"
    message = first.message
    if len(errors) > 1:
        message += f" (+{len(errors) - 1} more)"
    raise ValidationError(schema_name, message, path)


def validate_file(filepath: Path, schema_name: str) -> dict:
    """Load a JSON file, validate it, and return the parsed data."""
    try:
        text = filepath.read_text()
    except FileNotFoundError:
        raise ValidationError(schema_name, f"File not found: {filepath}") from None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"Invalid JSON in {filepath}: {e}") from None
    validate(parsed, schema_name)
    return parsed


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Refuse to persist a record that doesn't match its schema."""
    try:
        validate(data, schema_name)
    except ValidationError as e:
        message = f"Refusing to write invalid data to {filepath}: {e}"
        raise ValidationError(schema_name, message) from None
