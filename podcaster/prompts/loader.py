"""
Versioned prompt loader: reads prompts from podcaster/prompts/{version}/{component}.yaml.
Use PROMPT_VERSION (default v1) to select version.
"""
from pathlib import Path

import yaml

# Base path: podcaster/prompts/ (next to this file)
_PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompts(
    component: str,
    version: str | None = None,
) -> dict[str, str]:
    """Load prompt templates for a component. Returns dict with keys "system", "user" and "schema" (each optional); values may contain placeholders like <<ARTICLE>>, <<TITLE>>, <<DEEP_DIVE_GUIDANCE>>.
    Why available: Centralizes versioned prompts so summary and dialogue generation can be tuned without code changes."""
    if version is None:
        from podcaster.core.config import settings
        version = settings.prompt_version

    path = _PROMPTS_DIR / version / f"{component}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    out: dict[str, str] = {}
    for key in ("system", "user", "schema"):
        val = data.get(key)
        if val is not None:
            out[key] = val.strip() if isinstance(val, str) else str(val).strip()
    return out


def render(template: str, **values: str) -> str:
    """Replace <<NAME>> placeholders in template with values[name.lower()]."""
    out = template
    for name, value in values.items():
        out = out.replace(f"<<{name.upper()}>>", value)
    return out
