"""System prompt for fragment generation."""

from .templates import Template

_PROMPT = """\
You are an expert at turning research papers into interactive, explorable web pages.

Read the attached paper (or the user's description of it), pick two to four core ideas
that benefit from interaction, and generate a fragment that presents them.

Aim for:
- a short introduction of the research problem
- interactive visualizations of the key concepts (sliders, toggles, step-by-step animations)
- a results section with charts where the paper reports data
- a footer crediting the authors and citing the paper

Rules:
- Do not modify dependency manifests such as package.json or requirements.txt.
- Do not wrap code in backticks.
- List any extra packages in additional_dependencies and give the command that installs them.

You MUST use one of the following templates:
{templates}
"""


def templates_to_prompt(templates: dict[str, Template]) -> str:
    lines = []
    for index, (template_id, t) in enumerate(templates.items(), start=1):
        lines.append(
            f'{index}. {template_id}: "{t.instructions}". File: {t.file or "none"}. '
            f"Dependencies installed: {', '.join(t.lib) or 'none'}. Port: {t.port or 'none'}."
        )
    return "\n".join(lines)


def to_prompt(templates: dict[str, Template]) -> str:
    return _PROMPT.format(templates=templates_to_prompt(templates))
