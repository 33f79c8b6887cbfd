"""Reference-syntax helpers shared by the resolver and the membership filter."""

from __future__ import annotations

import re

_PAGE_REF = re.compile(r"^#?\[\[(.*)\]\]$")
_HASH_TAG = re.compile(r"^#([^\s#\[\]]+)$")
_BLOCK_REF = re.compile(r"^\(\((.*)\)\)$")
_ATTRIBUTE = re.compile(r"^(.+?)::$")


def extract_tag(tag: str) -> str:
    """Strip reference brackets from *tag*.

    ``[[Paris]]``, ``#[[Paris]]``, ``#Paris`` and ``Paris::`` all become
    ``Paris``. ``((uid))`` becomes ``uid``. Anything else is returned trimmed.
    """
    text = (tag or "").strip()
    for pattern in (_PAGE_REF, _HASH_TAG, _BLOCK_REF, _ATTRIBUTE):
        match = pattern.match(text)
        if match:
            return match.group(1).strip()
    return text
