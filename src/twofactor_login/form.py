"""
Login form field contract and grouping of submitted fields.
"""

from typing import Any, Iterable, Mapping


# Field names produced by the login form
FORM_SUBMIT = "FORM_SUBMIT"
USERNAME_FIELD = "username"
PASSWORD_FIELD = "password"
VERIFY_FIELD = "verify"

# Every login form submits a FORM_SUBMIT value starting with this prefix
LOGIN_FORM_PREFIX = "tl_login"

# Values that are never accepted as a username, even though they can be printed
_NOT_STRING_LIKE = (bytes, bytearray, bool, int, float, complex, list, tuple, dict, set, frozenset)


def is_login_form(form: Mapping[str, Any]) -> bool:
    """
    Check whether submitted form fields belong to a login form.

    Missing or non-string FORM_SUBMIT values do not match.

    Examples:
        >>> is_login_form({"FORM_SUBMIT": "tl_login_1"})
        True
        >>> is_login_form({"FORM_SUBMIT": ["tl_login", "tl_login"]})
        False
    """
    value = form.get(FORM_SUBMIT)
    if not isinstance(value, str):
        return False
    return value.startswith(LOGIN_FORM_PREFIX)


def is_string_like(value: Any) -> bool:
    """
    Check whether a submitted value can be used as a string.

    Strings qualify, as do objects whose class provides its own __str__.
    None, numbers, bytes and containers do not.
    """
    if isinstance(value, str):
        return True
    if value is None or isinstance(value, _NOT_STRING_LIKE):
        return False
    return type(value).__str__ is not object.__str__


def collect_fields(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """
    Group submitted (name, value) pairs into form fields.

    Rules:
    1. A field submitted once maps to its value
    2. A field submitted several times maps to a list of its values
    3. PHP-style array fields (`name[]`) always map to a list under `name`

    Args:
        items: Field pairs in submission order, e.g. `FormData.multi_items()`

    Returns:
        Dict of field name to value

    Examples:
        >>> collect_fields([("username", "alice"), ("password", "s3cret")])
        {'username': 'alice', 'password': 's3cret'}
        >>> collect_fields([("username[]", "a"), ("username[]", "b")])
        {'username': ['a', 'b']}
    """
    form: dict[str, Any] = {}

    for key, value in items:
        is_array = key.endswith("[]")
        if is_array:
            key = key[:-2]

        if key in form:
            existing = form[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                form[key] = [existing, value]
        elif is_array:
            form[key] = [value]
        else:
            form[key] = value

    return form
