"""Lightweight websocket payload validation utilities.

Minimal schema-like checking with clear, consistent error responses. Not a
general JSON Schema implementation; returns ``(ok, value_or_error)`` tuples and
leaves it to the caller to emit the ``error`` event.

Schema Mini-Language (Python dict):
{
  'field_name': ('type', required: bool, extras: dict)
}
Supported types: 'str', 'int', 'number', 'bool', 'list', 'dict'
Extras:
  max_len / min_len / allow_empty / preserve_whitespace (str)
  min / max (int, number)
  item_type (list element primitive type)
  schema (dict: nested schema validated recursively; errors use dotted field names)

Booleans are never accepted where 'int' or 'number' is expected.

Example:
 schema = {
   'username': ('str', True, {'max_len': 32})
 }
 ok, data_or_err = validate(data, schema)

If invalid: (False, {'field': 'username', 'error': 'too long', 'code': 'max_len'})
If valid: (True, normalized_data)
"""
from __future__ import annotations
from typing import Any, Dict, Tuple

PRIMITIVES = {
    'str': str,
    'int': int,
    'number': (int, float),
    'bool': bool,
    'list': list,
    'dict': dict,
}


def _fail(field: str, message: str, code: str) -> Tuple[bool, Dict[str, Any]]:
    return False, {'field': field, 'error': message, 'code': code}


def _is_type(value: Any, type_name: str) -> bool:
    if type_name in ('int', 'number') and isinstance(value, bool):
        return False
    return isinstance(value, PRIMITIVES[type_name])


def validate(payload: Any, schema: Dict[str, tuple], _prefix: str = '') -> Tuple[bool, Dict[str, Any]]:
    if not isinstance(payload, dict):
        return _fail(_prefix.rstrip('.') or '__root__', 'payload must be an object', 'type')
    out = {}
    for name, spec in schema.items():
        field = f'{_prefix}{name}'
        if not isinstance(spec, tuple) or len(spec) < 2:
            return _fail('__schema__', f'invalid spec for {field}', 'schema')
        type_name, required = spec[0], spec[1]
        extras = spec[2] if len(spec) > 2 else {}
        if type_name not in PRIMITIVES:
            return _fail('__schema__', f'unsupported type {type_name}', 'schema')
        if name not in payload or payload[name] is None:
            if required:
                return _fail(field, 'missing required field', 'required')
            continue
        value = payload[name]
        if not _is_type(value, type_name):
            return _fail(field, f'expected {type_name}', 'type')
        if type_name == 'str':
            s = value.strip() if not extras.get('allow_empty') else value
            if not extras.get('allow_empty') and len(s) == 0:
                return _fail(field, 'must not be empty', 'empty')
            if 'max_len' in extras and len(value) > extras['max_len']:
                return _fail(field, 'too long', 'max_len')
            if 'min_len' in extras and len(value) < extras['min_len']:
                return _fail(field, 'too short', 'min_len')
            out[name] = value if extras.get('preserve_whitespace') else s
        elif type_name in ('int', 'number'):
            if 'min' in extras and value < extras['min']:
                return _fail(field, f"must be >= {extras['min']}", 'min')
            if 'max' in extras and value > extras['max']:
                return _fail(field, f"must be <= {extras['max']}", 'max')
            out[name] = value
        elif type_name == 'list':
            item_type = extras.get('item_type')
            if item_type:
                if item_type not in PRIMITIVES:
                    return _fail('__schema__', f'unsupported item_type {item_type}', 'schema')
                for idx, elem in enumerate(value):
                    if not _is_type(elem, item_type):
                        return _fail(field, f'element {idx} not {item_type}', 'item_type')
            out[name] = value
        elif type_name == 'dict':
            nested = extras.get('schema')
            if nested:
                ok, result = validate(value, nested, _prefix=f'{field}.')
                if not ok:
                    return ok, result
                # Unknown keys pass through untouched for opaque host payloads
                merged = dict(value)
                merged.update(result)
                out[name] = merged
            else:
                out[name] = value
        else:
            out[name] = value
    return True, out


# Predefined schemas used by handlers
USERNAME = ('str', True, {'min_len': 1, 'max_len': 32})
PLAYER_NAME = ('str', False, {'min_len': 1, 'max_len': 32})
WILD_ID = ('str', True, {'min_len': 1, 'max_len': 64})

PLAYER_JOIN = {
    'username': USERNAME,
}
POSITION = {
    'x': ('number', True),
    'y': ('number', True),
}
PLAYER_MOVE = {
    'position': ('dict', True, {'schema': POSITION}),
}
BATTLE_START = {
    'wildId': WILD_ID,
}
BATTLE_ACTION = {
    'moveId': ('str', True, {'min_len': 1, 'max_len': 64}),
}
CIGARETTE_CATCH = {
    'wildId': WILD_ID,
}
UPDATE_PLAYER_INFO = {
    'playerName': PLAYER_NAME,
    'selectedCosmetic': ('str', False, {'max_len': 64, 'allow_empty': True}),
}
CREATE_LOBBY = {
    'name': ('str', True, {'min_len': 1, 'max_len': 48}),
    'capacity': ('int', False, {'min': 1}),
    'level': ('int', False, {'min': 1, 'max': 100}),
    'playerName': PLAYER_NAME,
}
JOIN_LOBBY = {
    'lobbyId': ('str', True, {'min_len': 1, 'max_len': 16}),
    'playerName': PLAYER_NAME,
}
# Relay payloads are opaque host data; only the envelope type is checked
RELAY = {}
HOST_PLAYER_MOVE = {
    'x': ('number', True),
    'y': ('number', True),
    'facingRight': ('bool', False),
}
