"""Reply rendering with watsonx.ai text generation.

The renderer only prettifies an already-final, already-validated item list.
It receives the items as fixed context and is instructed to use nothing
else, but a language model cannot be structurally prevented from adding
content. `guard_rendered_reply` drops rendered entries whose title is not one
of the given items; invented facts inside a kept entry remain a residual risk.
"""

import logging
import re

import httpx

from ..engine.core.formatting import EMPTY_REPLY_FALLBACK, format_inventory_context
from ..engine.core.item import Item
from ..errors import CollaboratorUnavailable
from .iam import IAMTokenProvider

logger = logging.getLogger(__name__)

END_MARKER = "[END_OF_ANSWER]"
GENERATION_API_VERSION = "2024-05-31"

# Prompt fragments and stop markers the model sometimes echoes back
_ECHO_PATTERNS = (
    r"Below is a list of library inventory items that may match the student's request:",
    r"Below are books from the library inventory matching the user.s query:",
    r"USER QUERY:",
    r"INSTRUCTIONS:",
    r"\[END_OF_ANSWER\]",
    r"\[LIBRA_END\]",
    r"\[STOP\]",
)
_ECHO_RES = tuple(re.compile(p, re.IGNORECASE) for p in _ECHO_PATTERNS)
_ENTRY_START_RE = re.compile(r"^\s*(?:[•\-*]\s*)?\d+[.)]\s+", re.MULTILINE)
_TITLE_RE = re.compile(r"Title:\s*(.+)", re.IGNORECASE)


def build_prompt(context: str, query: str, max_entries: int = 5) -> str:
    return f"""
You are Libra, an expert library assistant AI.

Below are books from the library inventory matching the user's query:

{context}

User query:
"{query}"

Answer the query using ONLY the inventory above.

RULES:
1. Provide exactly up to {max_entries} book entries maximum.
2. Do NOT list more than {max_entries}.
3. Each entry must be formatted as:
   1. Title: …
      Author: …
      Copies: …
      Location: …
4. After listing the books (or saying none are available), output the single token:
   {END_MARKER}
5. Do NOT generate anything after {END_MARKER}.

Start your answer now:
"""


def clean_reply(raw: str) -> str:
    """Strip echoed prompt fragments and stop markers."""
    reply = raw
    for pattern in _ECHO_RES:
        reply = pattern.sub("", reply)
    return reply.strip()


def _normalize_title(title: str) -> str:
    return " ".join(re.sub(r"[^\w\s+#]", " ", title.lower()).split())


def guard_rendered_reply(reply: str, items: list[Item]) -> str:
    """Drop rendered entries whose title is not one of the given items.

    Text outside numbered entries (greetings, a closing line) is kept.
    """
    allowed = [_normalize_title(item.title) for item in items if item.title]
    starts = [m.start() for m in _ENTRY_START_RE.finditer(reply)]
    if not starts:
        return reply

    kept = [reply[: starts[0]]]
    bounds = starts + [len(reply)]
    dropped = 0
    for start, end in zip(bounds, bounds[1:]):
        block = reply[start:end]
        match = _TITLE_RE.search(block)
        if match:
            title = _normalize_title(match.group(1))
            if not any(title == a or (title and (title in a or a in title)) for a in allowed):
                dropped += 1
                continue
        kept.append(block)

    if dropped:
        logger.warning(f"Renderer added {dropped} entries not present in the ranked items; removed")
    return "".join(kept).strip()


class WatsonxRenderer:
    """Formats ranked items into prose with a watsonx.ai generation model."""

    def __init__(
        self,
        ibm_url: str,
        project_id: str,
        token_provider: IAMTokenProvider,
        client: httpx.AsyncClient,
        model_id: str = "ibm/granite-3-3-8b-instruct",
        max_new_tokens: int = 400,
    ):
        self.ibm_url = ibm_url.rstrip("/")
        self.project_id = project_id
        self.model_id = model_id
        self.max_new_tokens = max_new_tokens
        self._tokens = token_provider
        self._client = client

    async def format(self, items: list[Item], query: str) -> str:
        """Render items for the query.

        Raises:
            CollaboratorUnavailable: If the generation call fails.
        """
        prompt = build_prompt(format_inventory_context(items), query, max_entries=max(len(items), 1))
        headers = await self._tokens.auth_headers()
        try:
            response = await self._client.post(
                f"{self.ibm_url}/ml/v1/text/generation",
                params={"version": GENERATION_API_VERSION},
                json={
                    "model_id": self.model_id,
                    "input": prompt,
                    "parameters": {
                        "max_new_tokens": self.max_new_tokens,
                        "temperature": 0.0,
                        "stop_sequences": [END_MARKER],
                    },
                    "project_id": self.project_id,
                },
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Renderer call failed for query '{query}': {e}")
            raise CollaboratorUnavailable("render") from e

        results = payload.get("results") or [{}]
        reply = guard_rendered_reply(clean_reply(results[0].get("generated_text", "")), items)
        if len(reply) < 3:
            return EMPTY_REPLY_FALLBACK
        return reply

    async def close(self) -> None:
        await self._client.aclose()
