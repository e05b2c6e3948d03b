"""
Attachment normalization.

Files arrive from the upload provider in several shapes: a bare URL, a JSON
string, a single descriptor dict, a list of descriptors, or the legacy
``{"fileUrls": "<json>"}`` wrapper. Everything stored or returned by the
marketplace goes through ``normalize_attachments`` so callers only ever see a
list of ``{"url", "name", "type"}`` dicts.
"""
import json
import logging

from .constants import DEFAULT_ATTACHMENT_NAME, DEFAULT_ATTACHMENT_TYPE

logger = logging.getLogger(__name__)


def _name_from_url(url):
    tail = url.rstrip('/').split('/')[-1]
    return tail or DEFAULT_ATTACHMENT_NAME


def _describe(url, name=None, type_=None):
    return {
        'url': url,
        'name': name or _name_from_url(url),
        'type': type_ or DEFAULT_ATTACHMENT_TYPE,
    }


def _normalize_item(item):
    if isinstance(item, str):
        item = item.strip()
        return [_describe(item)] if item else []

    if not isinstance(item, dict):
        logger.warning(f"Dropping malformed attachment entry of type {type(item).__name__}")
        return []

    # Legacy wrapper that nests a JSON-encoded list under fileUrls
    if 'fileUrls' in item:
        raw = item.get('fileUrls')
        if isinstance(raw, (list, dict)):
            return normalize_attachments(raw)
        try:
            return normalize_attachments(json.loads(raw))
        except (TypeError, ValueError):
            if isinstance(raw, str) and raw:
                return [_describe(raw, DEFAULT_ATTACHMENT_NAME)]
            return []

    url = item.get('url') or item.get('ufsUrl')
    if not isinstance(url, str) or not url:
        return []
    name = item.get('name') if isinstance(item.get('name'), str) else None
    type_ = item.get('type') if isinstance(item.get('type'), str) else None
    return [_describe(url, name, type_)]


def normalize_attachments(value):
    """Return a canonical list of attachment descriptors; never raises."""
    if value is None or value == '':
        return []

    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return _normalize_item(value)
        if isinstance(parsed, str):
            return _normalize_item(parsed)
        value = parsed

    if isinstance(value, dict):
        value = [value]

    if not isinstance(value, (list, tuple)):
        logger.warning(f"Unsupported attachment payload of type {type(value).__name__}")
        return []

    attachments = []
    for item in value:
        if isinstance(item, (list, tuple)):
            attachments.extend(normalize_attachments(list(item)))
        else:
            attachments.extend(_normalize_item(item))
    return attachments


def attachments_to_json(value, name=None, type_=None):
    """
    Encode an attachment payload as the JSON string stored on messages.

    ``name`` and ``type_`` only apply when ``value`` is a bare URL.
    Returns None when there is nothing to store.
    """
    if isinstance(value, str) and value and (name or type_):
        try:
            json.loads(value)
        except ValueError:
            value = {'url': value, 'name': name, 'type': type_}
    attachments = normalize_attachments(value)
    if not attachments:
        return None
    return json.dumps(attachments)
