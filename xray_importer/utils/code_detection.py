"""Detect code snippets in step data so Jira renders them as code blocks."""

import json
import re
from typing import Literal

CodeLanguage = Literal["json", "javascript", "typescript", "none"]

_TYPESCRIPT_PATTERNS = [
    re.compile(r":\s*(string|number|boolean|any|void|never|unknown)\b"),
    re.compile(r"interface\s+\w+"),
    re.compile(r"type\s+\w+\s*="),
]

_JAVASCRIPT_PATTERNS = [
    re.compile(r"\b(const|let|var)\s+\w+\s*="),
    re.compile(r"\bfunction\s+\w*\s*\("),
    re.compile(r"=>\s*[{(]"),
    re.compile(r"\bexport\s+(default\s+)?"),
    re.compile(r"\bimport\s+.*\s+from\s+"),
    re.compile(r"\bclass\s+\w+"),
    re.compile(r"\basync\s+(function|\()"),
]


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def detect_code_language(text: str) -> CodeLanguage:
    if not text or not text.strip():
        return "none"

    trimmed = text.strip()
    if trimmed[0] in "{[" and _is_json(trimmed):
        return "json"
    # TypeScript is checked first, most TS snippets also match JS patterns
    if any(p.search(trimmed) for p in _TYPESCRIPT_PATTERNS):
        return "typescript"
    if any(p.search(trimmed) for p in _JAVASCRIPT_PATTERNS):
        return "javascript"
    return "none"


def format_step_data(data: str) -> str:
    """Wrap code-like step data in a Jira wiki ``{code}`` block"""
    if not data:
        return ""
    language = detect_code_language(data)
    if language == "none":
        return data
    return f"{{code:{language}}}\n{data}\n{{code}}"
