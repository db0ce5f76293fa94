"""Shared request-parsing helpers for blueprints.

json_body:        JSON object body or a 400 error tuple
parse_bool:       query-string flags ("1", "true", "yes", ...)
parse_id_list:    comma-separated or repeated query params → list of ids
"""
import logging

from flask import request

from kb_editor.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def json_body():
    """Return the request's JSON object body.

    Follows the tuple-return pattern:
        data, err = json_body()
        if err:
            return err

    A missing body counts as ``{}``; an unparseable or non-object body is a 400.
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.content_length:
            logger.debug("Malformed JSON body on %s", request.path)
            return None, api_error(E.VALIDATION_INVALID, "Malformed JSON body")
        return {}, None
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def parse_bool(value, default=None):
    """Parse a query-string flag; returns ``default`` when absent or unrecognized."""
    if value is None:
        return default
    value = str(value).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def parse_id_list(name):
    """Read ``?name=a,b&name=c`` as ``["a", "b", "c"]``; None when the param is absent."""
    raw = request.args.getlist(name)
    if not raw:
        return None
    ids = []
    for chunk in raw:
        ids.extend(part.strip() for part in chunk.split(",") if part.strip())
    return ids
