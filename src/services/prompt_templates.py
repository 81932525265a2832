"""Prompt template loading from the prompts/ directory."""

from functools import lru_cache
from pathlib import Path

# Project root (parent of src/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
PROMPTS_DIR = _PROJECT_ROOT / "prompts"


@lru_cache()
def load_prompt_template(name: str) -> str:
    """Load prompts/<name>.md, dropping the header above the first '---'."""
    path = PROMPTS_DIR / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    template = path.read_text(encoding="utf-8")
    if "---" in template:
        template = template.split("---", 1)[-1].strip()
    return template


def render_prompt(name: str, **values: str) -> str:
    """Load a template and replace each {{ key }} with its value."""
    prompt = load_prompt_template(name)
    for key, value in values.items():
        prompt = prompt.replace("{{ " + key + " }}", value)
    return prompt
