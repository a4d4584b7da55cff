"""Test helper to stub the OpenAI Responses client used by parsing.py.

The stub records each call's kwargs and answers with a canned payload.
Tests pass either a mapping (serialized to JSON) or a raw string (returned as
``output_text`` verbatim, handy for malformed-output cases).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` shape for ``parsing.py``.

    Parameters
    ----------
    payload:
        Mapping returned as JSON text, or a string returned as-is.
    calls_out:
        A list that will be appended with each call's kwargs so tests can make
        lightweight assertions about the prompt and model.
    """

    def __init__(
        self,
        payload: Mapping[str, Any] | str,
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        self._payload = payload
        self._calls = calls_out if calls_out is not None else []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                self._outer._calls.append(kwargs)

                class _Resp:
                    output_text: str

                resp = _Resp()
                p = self._outer._payload
                resp.output_text = p if isinstance(p, str) else json.dumps(p)
                return resp

        self.responses = _Responses(self)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls
