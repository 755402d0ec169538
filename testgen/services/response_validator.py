"""Sanitizing, parsing and schema-checking of raw model output."""

import json
import logging
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from testgen.exceptions import ResponseValidationException
from testgen.models.generation_models import Question

logger = logging.getLogger(__name__)

# ```json, ```JSON, ``` ... anywhere in the text
_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)


def sanitize_response(raw_text: str) -> str:
    """
    Strip code-fence markers the model wraps JSON in, then trim whitespace.

    Args:
        raw_text: Raw completion text

    Returns:
        Text expected to be a JSON document
    """
    if not raw_text:
        return ""
    return _FENCE_PATTERN.sub("", raw_text).strip()


def parse_response(raw_text: str) -> Any:
    """
    Sanitize and parse the model output as JSON.

    Raises:
        ResponseValidationException: reason "malformed-json"
    """
    cleaned = sanitize_response(raw_text)
    try:
        return json.loads(cleaned)
    except (ValueError, TypeError, RecursionError) as e:
        raise ResponseValidationException(
            f"Model output is not valid JSON: {e}",
            reason="malformed-json",
            details={"length": len(cleaned)},
        ) from e


def validate_questions(payload: Any) -> List[Question]:
    """
    Check the parsed payload against the question schema.

    The check is all-or-nothing: a single invalid question rejects the whole
    list. Unknown fields are ignored.

    Raises:
        ResponseValidationException: reason "schema-violation"
    """
    if not isinstance(payload, dict):
        raise ResponseValidationException(
            "Model output must be a JSON object with a 'questions' list",
            details={"type": type(payload).__name__},
        )

    items = payload.get("questions")
    if not isinstance(items, list):
        raise ResponseValidationException(
            "'questions' must be a list",
            details={"type": type(items).__name__},
        )
    if not items:
        raise ResponseValidationException("Model returned no questions")

    questions: List[Question] = []
    errors: List[Dict[str, Any]] = []
    for index, item in enumerate(items):
        try:
            questions.append(Question.model_validate(item))
        except ValidationError as e:
            for error in e.errors(include_url=False, include_input=False):
                errors.append(
                    {
                        "index": index,
                        "field": ".".join(str(part) for part in error["loc"]),
                        "message": error["msg"],
                    }
                )

    if errors:
        logger.warning(
            f"Rejected question list: {len(errors)} violation(s) in {len(items)} question(s)"
        )
        raise ResponseValidationException(
            f"Model output violates the question schema ({len(errors)} violation(s))",
            details={"violations": errors},
        )
    return questions


def validate_response(raw_text: str) -> List[Question]:
    """
    Turn raw model output into validated questions.

    Args:
        raw_text: Raw completion text

    Returns:
        Validated questions, in the order the model returned them

    Raises:
        ResponseValidationException: reason "malformed-json" or "schema-violation"
    """
    return validate_questions(parse_response(raw_text))


def dump_questions(questions: List[Question]) -> str:
    """Serialize questions in the shape the model is asked to produce."""
    return json.dumps(
        {"questions": [q.model_dump() for q in questions]}, ensure_ascii=False
    )
