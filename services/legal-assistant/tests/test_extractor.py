import json

import pytest

from app.directives.composer import clean
from app.directives.extractor import (
    balance_braces,
    capture_object,
    extract,
    extract_directive,
    parse_directive,
)
from app.schemas.directives import DirectiveAction

WELL_FORMED = (
    '{"action": "createClient", "data": {"name": "Ana", "mail": "a@x.com", "phone": "555"}}'
)


@pytest.mark.parametrize(
    "reply",
    [
        "Hola, ¿en qué puedo ayudarte hoy?",
        "Un objeto en prosa {\"action\": \"createClient\"} sin marcador.",
        "Respuesta con espacios al final   ",
        "",
    ],
)
def test_reply_without_marker_is_plain_chat(reply):
    assert extract(reply) is None
    assert clean(reply) == reply


def test_marker_with_well_formed_object():
    reply = f"Perfecto, registro a Ana.\nACCION {WELL_FORMED}\nRazonamiento: el usuario pidió un alta."
    assert extract(reply) == json.loads(WELL_FORMED)


def test_pretty_printed_object_is_flattened():
    reply = (
        "Agendo la cita.\n"
        "ACCION\n"
        "{\n"
        '  "action": "agendarCita",\n'
        '  "data": {\n'
        '    "caseId": "EXP-1",\n'
        '    "fecha": "2025-01-10",\n'
        '    "hora": "10:00"\n'
        "  }\n"
        "}\n"
    )
    assert extract(reply) == {
        "action": "agendarCita",
        "data": {"caseId": "EXP-1", "fecha": "2025-01-10", "hora": "10:00"},
    }


DATA_FIRST = (
    '{"data": {"name": "Ana", "mail": "a@x.com", "phone": "555"}, "action": "createClient"}'
)
NESTED_IN_DATA = (
    '{"action": "createExpediente", "data": {"numero": "E-1", "meta": {"k": "v"}, '
    '"titulo": "Divorcio", "cliente": "Ana"}}'
)
NESTED_AT_TAIL = (
    '{"action": "createExpediente", "data": {"numero": "E-1", "titulo": "Divorcio", "meta": {"k": "v"}}}'
)


@pytest.mark.parametrize(
    ("well_formed", "missing"),
    [
        (WELL_FORMED, 1),
        (WELL_FORMED, 2),
        (DATA_FIRST, 1),
        (NESTED_IN_DATA, 1),
        (NESTED_IN_DATA, 2),
        (NESTED_AT_TAIL, 1),
        (NESTED_AT_TAIL, 2),
        (NESTED_AT_TAIL, 3),
    ],
)
def test_missing_trailing_braces_are_repaired(well_formed, missing):
    truncated = well_formed[:-missing]
    assert extract(f"Listo. ACCION {truncated}") == json.loads(well_formed)


def test_repair_keeps_keys_after_nested_object():
    payload = extract(f"Abro el expediente. ACCION {NESTED_IN_DATA[:-2]}")
    assert payload["data"]["titulo"] == "Divorcio"
    assert payload["data"]["cliente"] == "Ana"
    assert parse_directive(payload).action == DirectiveAction.CREATE_EXPEDIENTE


def test_repair_keeps_action_written_after_data():
    directive = extract_directive(f"Listo. ACCION {DATA_FIRST[:-1]}")
    assert directive.action == DirectiveAction.CREATE_CLIENT
    assert directive.data["name"] == "Ana"


def test_truncated_object_followed_by_prose_is_repaired():
    reply = 'ACCION {"action": "createClient", "data": {"name": "Ana"} y nada más'
    assert extract(reply) == {"action": "createClient", "data": {"name": "Ana"}}


def test_object_before_marker_is_ignored():
    reply = (
        'Por ejemplo {"action": "createClient"} es un formato válido. '
        'ACCION {"action": "agendarCita", "data": {"cliente": "Ana", "fecha": "2025-01-10"}}'
    )
    assert extract(reply)["action"] == "agendarCita"


def test_braces_inside_strings_do_not_end_the_object():
    reply = 'ACCION {"action": "createClient", "data": {"name": "Ana {la jefa}", "email": "a@x.com"}}'
    assert extract(reply)["data"]["name"] == "Ana {la jefa}"


@pytest.mark.parametrize(
    "reply",
    [
        "Ya quedó. ACCION sin objeto",
        'ACCION {"action": createClient, "data": {}}',
        "ACCION [1, 2, 3]",
    ],
)
def test_unrecoverable_directive_degrades_to_none(reply):
    assert extract(reply) is None


def test_capture_object_returns_balanced_span():
    assert capture_object('xx {"a": {"b": 1}} {"c": 2}') == '{"a": {"b": 1}}'
    assert capture_object("sin llaves") is None
    assert capture_object('ACCION {"a": {"b": 1}, "c": 2 ') == '{"a": {"b": 1}, "c": 2'


def test_balance_braces_only_appends_closers():
    assert balance_braces('{"a": {"b": 1') == '{"a": {"b": 1}}'
    assert balance_braces('{"a": 1}}') == '{"a": 1}}'


def test_parse_directive_rejects_unknown_action():
    assert parse_directive({"action": "deleteEverything", "data": {}}) is None
    assert parse_directive({"data": {"name": "Ana"}}) is None
    assert parse_directive(None) is None


def test_parse_directive_stringifies_scalar_values():
    directive = parse_directive({"action": "createClient", "data": {"name": "Ana", "phone": 5550100, "email": None}})
    assert directive.action == DirectiveAction.CREATE_CLIENT
    assert directive.data == {"name": "Ana", "phone": "5550100"}


def test_parse_directive_defaults_missing_data():
    directive = parse_directive({"action": "agendarCita"})
    assert directive.data == {}


def test_extract_directive_end_to_end():
    directive = extract_directive(f"Hecho. ACCION {WELL_FORMED[:-1]}")
    assert directive.action == DirectiveAction.CREATE_CLIENT
    assert directive.data["mail"] == "a@x.com"
