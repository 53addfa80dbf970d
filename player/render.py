from __future__ import annotations

import html
import json
import re
from typing import Any

from player.api.models import StateSpec


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_case_to_hyphens(s: str) -> str:
    return _CAMEL_BOUNDARY.sub("-", s).lower()


def obj_to_escaped_json(obj: Any) -> str:
    return html.escape(json.dumps(obj), quote=True)


class ResponseRenderer:
    """Builds the custom-element tags the front end turns into widgets.

    Only the tag and its attributes are produced here; the element
    implementations live with the front end.
    """

    def interactive_widget_html(self, state: StateSpec) -> str:
        tag = f"oppia-interactive-{camel_case_to_hyphens(state.widget.widget_id)}"
        attrs = [
            f'{camel_case_to_hyphens(name)}-with-value="{obj_to_escaped_json(arg.value)}"'
            for name, arg in state.widget.customization_args.items()
        ]
        return _element(tag, attrs)

    def reader_response_html(self, *, widget_id: str, answer: Any, is_sticky: bool, choices: Any = None) -> str:
        tag = f"oppia-response-{camel_case_to_hyphens(widget_id)}"
        attrs = [
            f'answer="{obj_to_escaped_json(answer)}"',
            f'state-sticky="{obj_to_escaped_json(is_sticky)}"',
        ]
        if choices:
            attrs.append(f'choices="{obj_to_escaped_json(choices)}"')
        return _element(tag, attrs)


def _element(tag: str, attrs: list[str]) -> str:
    opening = " ".join([tag, *attrs])
    return f"<{opening}></{tag}>"
