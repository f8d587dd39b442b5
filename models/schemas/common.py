from marshmallow import EXCLUDE, Schema, fields, validate

MAX_BATCH_SIZE = 100


class BatchDeleteSchema(Schema):
    """Body of the batch delete endpoints: { "ids": ["<uuid>", ...] }"""
    class Meta:
        # csrfToken may ride along in the body
        unknown = EXCLUDE

    ids = fields.List(
        fields.UUID(error_messages={"invalid_uuid": "Invalid UUID format"}),
        required=True,
        validate=[
            validate.Length(min=1, error="At least one ID is required"),
            validate.Length(max=MAX_BATCH_SIZE, error=f"Cannot delete more than {MAX_BATCH_SIZE} items at once"),
        ],
        error_messages={"required": "At least one ID is required"},
    )


def first_error_message(messages, default: str = "Validation failed") -> str:
    """
    Walk marshmallow's nested error structure and return the first message.
    { "count": ["Count cannot exceed 100"] } -> "Count cannot exceed 100"
    """
    if isinstance(messages, str):
        return messages
    if isinstance(messages, dict):
        for value in messages.values():
            found = first_error_message(value, default="")
            if found:
                return found
    if isinstance(messages, (list, tuple)):
        for value in messages:
            found = first_error_message(value, default="")
            if found:
                return found
    return default
