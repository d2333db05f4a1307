"""Validation service for records about to be written to Payload."""

import logging
import re
from typing import Any, List

from ..models.schema import (
    CollectionSchema,
    FieldDefinition,
    FieldType,
)
from ..models.record import (
    TransformedRecord,
    ValidationError,
)

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class RecordValidator:
    """
    Validator for transformed records before loading.

    Supports:
    - Required field validation
    - Select option validation
    - Relationship id validation
    - Number, checkbox, date and rich text shape checks
    """

    def validate_record(
        self,
        record: TransformedRecord,
        schema: CollectionSchema,
    ) -> List[ValidationError]:
        """
        Validate a transformed record against a collection schema.

        Args:
            record: The transformed record to validate
            schema: The target collection schema

        Returns:
            List of validation errors
        """
        errors = []

        for field_name, field_def in schema.fields.items():
            errors.extend(self._validate_field(field_name, record.data.get(field_name), field_def))

        if errors:
            logger.debug(
                f"{record.entity} {record.id} failed validation on "
                f"{', '.join(sorted({e.field for e in errors}))}"
            )

        return errors

    def _validate_field(
        self,
        field_name: str,
        value: Any,
        field_def: FieldDefinition
    ) -> List[ValidationError]:
        """Validate a single field."""
        errors = []

        if self._is_empty(value):
            if field_def.required:
                errors.append(ValidationError(
                    field=field_name,
                    message="Required field is missing",
                    error_type="required",
                ))
            return errors

        if field_def.type == FieldType.SELECT and field_def.options:
            if value not in field_def.options:
                errors.append(ValidationError(
                    field=field_name,
                    message=f"Invalid option. Must be one of: {field_def.options}",
                    error_type="enum",
                    value=value,
                ))

        elif field_def.type in (FieldType.RELATIONSHIP, FieldType.UPLOAD):
            values = value if isinstance(value, list) else [value]
            if isinstance(value, list) and not field_def.has_many:
                errors.append(ValidationError(
                    field=field_name,
                    message="Expected a single relationship id",
                    error_type="type",
                    value=value,
                ))
            for item in values:
                if isinstance(item, bool) or not isinstance(item, (int, str)):
                    errors.append(ValidationError(
                        field=field_name,
                        message=f"Relationship ids must be integers or strings, got {type(item).__name__}",
                        error_type="type",
                        value=item,
                    ))

        elif field_def.type == FieldType.NUMBER:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(ValidationError(
                    field=field_name,
                    message="Expected a number",
                    error_type="type",
                    value=value,
                ))

        elif field_def.type == FieldType.CHECKBOX:
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field=field_name,
                    message="Expected a boolean",
                    error_type="type",
                    value=value,
                ))

        elif field_def.type == FieldType.DATE:
            if not isinstance(value, str) or not _ISO_DATE.match(value):
                errors.append(ValidationError(
                    field=field_name,
                    message="Expected an ISO date (YYYY-MM-DD)",
                    error_type="format",
                    value=value,
                ))

        elif field_def.type == FieldType.RICHTEXT:
            if not isinstance(value, dict) or not isinstance(value.get("root"), dict):
                errors.append(ValidationError(
                    field=field_name,
                    message="Rich text must be a Lexical document with a root node",
                    error_type="format",
                ))

        elif field_def.type == FieldType.ARRAY:
            if not isinstance(value, list):
                errors.append(ValidationError(
                    field=field_name,
                    message="Expected a list of rows",
                    error_type="type",
                    value=value,
                ))

        return errors

    def _is_empty(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str) and not value.strip():
            return True
        if isinstance(value, list) and not value:
            return True
        return False
