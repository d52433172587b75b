"""Content negotiation.

Clients may send JSON or markdown with YAML front matter, and get JSON back
when they ask for it with ``Accept: application/json``. Everything else gets
markdown: the structured fields go into front matter and a prose field
(``message`` or ``error``) becomes the document body.
"""

from __future__ import annotations

import json

import frontmatter
from fastapi import Request, Response
from pydantic import BaseModel

JSON_TYPE = "application/json"
MARKDOWN_TYPE = "text/markdown"

# Fields rendered as the markdown body, first match wins
_PROSE_FIELDS = ("message", "error")


def _from_json(text: str) -> dict:
    data = json.loads(text)
    return data if isinstance(data, dict) else {}


def _from_markdown(text: str, body_field: str) -> dict:
    post = frontmatter.loads(text)
    fields = dict(post.metadata)
    prose = post.content.strip()
    if prose:
        fields[body_field] = prose
    return fields


async def parse_body(request: Request, body_field: str = "name") -> dict:
    """Request body as a dict of fields.

    Markdown front matter supplies the fields; the text below it, if any,
    is stored under ``body_field``. Raises ValueError on malformed JSON.
    """
    text = (await request.body()).decode("utf-8").strip()
    if not text:
        return {}

    content_type = request.headers.get("content-type", "")
    if JSON_TYPE in content_type:
        return _from_json(text)
    # Untyped bodies that look like JSON are treated as JSON
    if MARKDOWN_TYPE not in content_type and text.startswith("{"):
        try:
            return _from_json(text)
        except json.JSONDecodeError:
            pass
    return _from_markdown(text, body_field)


def wants_json(request: Request) -> bool:
    return JSON_TYPE in request.headers.get("accept", "")


def _to_markdown(data: dict) -> str:
    fields = dict(data)
    prose_field = next((k for k in _PROSE_FIELDS if k in fields), None)
    prose = str(fields.pop(prose_field)) if prose_field else ""
    if not fields:
        return prose
    return frontmatter.dumps(frontmatter.Post(prose, **fields))


def render_response(
    request: Request,
    data: dict | BaseModel,
    status_code: int = 200,
    headers: dict | None = None,
) -> Response:
    """Return JSON or markdown based on the Accept header."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    if wants_json(request):
        content, media_type = json.dumps(data, indent=2), JSON_TYPE
    else:
        content, media_type = _to_markdown(data), MARKDOWN_TYPE
    return Response(
        content=content, status_code=status_code, media_type=media_type, headers=headers
    )
