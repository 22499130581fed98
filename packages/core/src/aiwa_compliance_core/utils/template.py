from __future__ import annotations

import re
from typing import Mapping

_PLACEHOLDER_RE = re.compile(r"%([A-Z][A-Z0-9_]*)%")


def render(template: str, values: Mapping[str, object]) -> str:
    """Replace every ``%TOKEN%`` placeholder in ``template`` with its value.

    Keys are given without the surrounding percent signs. Placeholders with
    no entry in ``values`` are left untouched, and substituted text is never
    scanned again, so a commit message containing ``%COMMIT_SHA%`` stays as-is.
    """

    def _substitute(match: re.Match) -> str:
        token = match.group(1)
        if token not in values:
            return match.group(0)
        return str(values[token])

    return _PLACEHOLDER_RE.sub(_substitute, template)
