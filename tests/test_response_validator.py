"""Unit tests for model output validation."""

import json

import pytest

from conftest import VALID_RESPONSE
from testgen.exceptions import ResponseValidationException
from testgen.services.response_validator import (
    dump_questions,
    sanitize_response,
    validate_response,
)


def question(**overrides):
    item = {
        "question": "Which organelle produces most ATP?",
        "options": ["Nucleus", "Mitochondrion", "Ribosome", "Golgi"],
        "correct_answer": 1,
        "explanation": "Mitochondria perform cellular respiration.",
    }
    item.update(overrides)
    return item


def payload(*items):
    return json.dumps({"questions": list(items)})


def test_fenced_response_is_valid():
    questions = validate_response(VALID_RESPONSE)

    assert len(questions) == 1
    assert questions[0].question == "What is 2+2?"
    assert questions[0].options == ["3", "4", "5", "6"]
    assert questions[0].correct_answer == 1


def test_sanitize_strips_fences_and_whitespace():
    assert sanitize_response('  ```JSON\n{"a": 1}\n```  ') == '{"a": 1}'
    assert sanitize_response("```\n[]\n```") == "[]"
    assert sanitize_response("") == ""


def test_order_is_preserved():
    items = [question(question=f"Question number {i} about cells?") for i in range(3)]
    questions = validate_response(payload(*items))
    assert [q.question for q in questions] == [i["question"] for i in items]


def test_validation_is_idempotent():
    first = validate_response(payload(question(), question(correct_answer=3)))
    second = validate_response(dump_questions(first))
    assert second == first


def test_extra_fields_ignored():
    questions = validate_response(payload(question(difficulty="easy")))
    assert not hasattr(questions[0], "difficulty")


def test_three_options_rejects_batch():
    raw = VALID_RESPONSE.replace('["3","4","5","6"]', '["3","4","5"]')

    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(raw)

    assert exc_info.value.reason == "schema-violation"
    assert exc_info.value.details["violations"][0]["field"].startswith("options")


def test_one_bad_question_rejects_all():
    raw = payload(question(), question(correct_answer=4), question())

    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(raw)

    violations = exc_info.value.details["violations"]
    assert [v["index"] for v in violations] == [1]


@pytest.mark.parametrize(
    "overrides",
    [
        {"question": "Short?"},
        {"explanation": "Too short."},
        {"options": ["A", "B", "C", "D", "E"]},
        {"options": ["A", "", "C", "D"]},
        {"correct_answer": -1},
        {"correct_answer": "1"},
        {"correct_answer": 1.5},
        {"correct_answer": True},
        {"question": 42},
        {"options": "A, B, C, D"},
    ],
)
def test_field_violations(overrides):
    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(payload(question(**overrides)))
    assert exc_info.value.reason == "schema-violation"


@pytest.mark.parametrize("missing", ["question", "options", "correct_answer", "explanation"])
def test_missing_field_is_violation(missing):
    item = question()
    del item[missing]
    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(payload(item))
    assert exc_info.value.reason == "schema-violation"


@pytest.mark.parametrize(
    "raw",
    [
        "[]",
        '{"items": []}',
        '{"questions": {}}',
        '{"questions": []}',
        '"just a string"',
    ],
)
def test_wrong_top_level_shape(raw):
    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(raw)
    assert exc_info.value.reason == "schema-violation"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "Here are your questions!",
        '{"questions": [',
        "```json\n{'questions': []}\n```",
        pytest.param(
            '{"questions": ' + "[" * 100000 + "]" * 100000 + "}", id="deeply-nested"
        ),
    ],
)
def test_malformed_json(raw):
    with pytest.raises(ResponseValidationException) as exc_info:
        validate_response(raw)
    assert exc_info.value.reason == "malformed-json"
