"""Prompt catalog for the decomposer, classifier and synthesizer.

Prompts live in ``prompts/prompts.json`` under dotted keys such as
``synthesis.prompt``. Long prompts are stored as lists of lines and joined
on render; placeholders use ``string.Template`` syntax (``$query``).
"""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

CATALOG_FILE = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


@lru_cache(maxsize=1)
def load_catalog() -> dict[str, Any]:
    catalog = json.loads(CATALOG_FILE.read_text(encoding="utf-8"))
    if not isinstance(catalog, dict):
        raise ValueError(f"{CATALOG_FILE.name} must hold a JSON object")
    return catalog


def prompt_template(key: str) -> Template:
    entry: Any = load_catalog()
    for segment in key.split("."):
        entry = entry.get(segment) if isinstance(entry, dict) else None
        if entry is None:
            raise KeyError(f"No prompt registered under '{key}'")

    if isinstance(entry, list) and all(isinstance(line, str) for line in entry):
        entry = "\n".join(entry)
    if not isinstance(entry, str):
        raise TypeError(f"Prompt '{key}' is neither text nor a list of lines")
    return Template(entry)


def render_prompt(key: str, **values: Any) -> str:
    """Fill the prompt at ``key``; every placeholder must be supplied."""
    template = prompt_template(key)
    try:
        return template.substitute(**values)
    except KeyError as e:
        raise KeyError(f"Prompt '{key}' needs a value for '{e.args[0]}'") from e
