"""
Report & insight helpers — fixed prompt templates on top of the router.

Three call-sites for the analytics pages:
- generate_report: narrative report from a data snapshot and a template
- interpret_question: answer a natural-language question about the data
- suggest_insights: 3-5 one-line insights, returned as a list

The data context is whatever the data-source readers produce; it is
serialized to JSON and embedded in the prompt. Failures are whatever
send_request raises — these helpers add none of their own.
"""

from __future__ import annotations

import json
from typing import Any

from relay.llm.router import LLMRequest, RequestRouter

REPORT_TEMPLATE = """
{template}

Data to analyze:
{data}

Format the answer as a short, clear and informative report.
"""

QUESTION_TEMPLATE = """
User question: "{question}"

Data available to answer the question:
{data}

Answer the user's question directly and concisely, based on the data provided.
"""

INSIGHTS_TEMPLATE = """
Analyze the following data about currency exchange offices and identify 3-5 valuable insights or interesting trends:

{data}

Reply with a list of insights separated by newlines, without numbering or bullet markers. Each insight must be one concise, informative sentence.
"""


def serialize_context(data_context: Any) -> str:
    """Render the data context as JSON for embedding in a prompt."""
    return json.dumps(data_context, ensure_ascii=False, default=str)


def split_insights(text: str) -> list[str]:
    """One insight per non-blank line, trimmed, in original order."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def _request(prompt: str, options: dict[str, Any]) -> LLMRequest:
    # A caller-supplied prompt replaces the templated one.
    return LLMRequest(**{"prompt": prompt, **options})


async def generate_report(
    router: RequestRouter,
    data_context: Any,
    template: str,
    **options: Any,
) -> str:
    """
    Generate a narrative report.

    `options` are extra LLMRequest fields; a `prompt` among them replaces
    the templated one.
    """
    prompt = REPORT_TEMPLATE.format(
        template=template, data=serialize_context(data_context),
    )
    response = await router.send_request(_request(prompt, options))
    return response.text


async def interpret_question(
    router: RequestRouter,
    question: str,
    data_context: Any,
    **options: Any,
) -> str:
    """Answer a question about the data context."""
    prompt = QUESTION_TEMPLATE.format(
        question=question, data=serialize_context(data_context),
    )
    response = await router.send_request(_request(prompt, options))
    return response.text


async def suggest_insights(
    router: RequestRouter,
    data_context: Any,
    **options: Any,
) -> list[str]:
    """Ask for insights and split the answer into individual lines."""
    prompt = INSIGHTS_TEMPLATE.format(data=serialize_context(data_context))
    response = await router.send_request(_request(prompt, options))
    return split_insights(response.text)
