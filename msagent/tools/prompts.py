"""Prompt templates for query generation, command generation and answering."""

from __future__ import annotations

SQL_SYSTEM_PROMPT = """You write a single SQLite query that helps answer the user's question,
based only on the schema provided.

Rules:
1. Produce exactly one statement and it must be a SELECT (no INSERT, UPDATE, DELETE or DDL).
2. Limit the result with LIMIT {row_limit}.
3. Return ONLY the raw query, without explanations or markdown.
"""

SQL_USER_TEMPLATE = """Question: {question}

Schema:
{schema}"""

CURL_SYSTEM_PROMPT = """Propose ONE safe curl command that fetches information relevant to the user's question.

Constraints:
1. It must start with: curl -s
2. It may include -L, a header given as -H 'Name: value', and must end with a single http(s) URL.
3. No pipes, no redirections, no subshells, no command chaining.
4. Reply with ONLY the command, without explanations.
"""

CURL_USER_TEMPLATE = "{question}"

ANSWER_SYSTEM_PROMPT = """Answer the user's question clearly, using the context gathered from the available sources.
When possible, say which source (sqlite, docs or bash) each part of the answer came from.
If the context reports a rejection, a cancellation or an error, say so plainly."""

ANSWER_USER_TEMPLATE = """Question: {question}

Available context:
{context}

Answer objectively."""
