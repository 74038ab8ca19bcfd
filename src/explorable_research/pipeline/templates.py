"""Sandbox templates: the runtimes a fragment can target."""

from dataclasses import dataclass, field

DEV_SUFFIX = "-dev"
INTERPRETER_TEMPLATE = "code-interpreter-v1"
DEFAULT_TEMPLATE = "explorable-research-developer"


@dataclass(frozen=True)
class Template:
    name: str
    instructions: str
    file: str | None
    port: int | None
    lib: list[str] = field(default_factory=list)


TEMPLATES: dict[str, Template] = {
    "explorable-research-developer": Template(
        name="Explorable Research developer",
        instructions=(
            "A single-page app template using React + Vite, that reloads automatically. "
            "Builds an explorable research page from the attached paper."
        ),
        file="App.tsx",
        port=3000,
        lib=[
            "react@^19.2.0",
            "react-dom@^19.2.0",
            "@react-three/fiber@^9.4.0",
            "@react-three/drei@^10.7.7",
            "three@^0.181.1",
            "motion@^12.23.25",
            "lucide-react@^0.553.0",
            "@types/node@^22.14.0",
            "@vitejs/plugin-react@^5.0.0",
            "typescript@~5.8.2",
            "vite@^6.2.0",
        ],
    ),
    "html-developer": Template(
        name="HTML developer",
        instructions="A static single-page HTML app served as-is. Inline CSS and JavaScript.",
        file="index.html",
        port=80,
    ),
    "streamlit-developer": Template(
        name="Streamlit developer",
        instructions="A streamlit app that reloads automatically.",
        file="app.py",
        port=8501,
        lib=["streamlit", "pandas", "numpy", "matplotlib", "requests", "seaborn", "plotly"],
    ),
    INTERPRETER_TEMPLATE: Template(
        name="Python data analyst",
        instructions="Runs Python code in a Jupyter-style interpreter and captures its output.",
        file="script.py",
        port=None,
        lib=["python", "jupyter", "numpy", "pandas", "matplotlib", "seaborn", "plotly"],
    ),
}


def base_template_id(template_id: str) -> str:
    """Strip the environment suffix: ``html-developer-dev`` -> ``html-developer``."""
    if template_id.endswith(DEV_SUFFIX):
        return template_id[: -len(DEV_SUFFIX)]
    return template_id


def is_interpreter_template(template_id: str) -> bool:
    return base_template_id(template_id) == INTERPRETER_TEMPLATE


class TemplateRegistry:
    """Resolves template ids for one deployment environment.

    In development, sandbox images are published with a ``-dev`` suffix.
    """

    def __init__(self, environment: str = "production", templates: dict[str, Template] | None = None):
        self.environment = environment
        self._templates = templates if templates is not None else TEMPLATES

    def template_id_with_suffix(self, template_id: str) -> str:
        base = base_template_id(template_id)
        return f"{base}{DEV_SUFFIX}" if self.environment == "development" else base

    def resolve(self, template_id: str) -> dict[str, Template] | None:
        """Single-entry ``{environment id: template}``, or None if unknown."""
        template = self._templates.get(base_template_id(template_id))
        if template is None:
            return None
        return {self.template_id_with_suffix(template_id): template}

    def all(self) -> dict[str, Template]:
        return {self.template_id_with_suffix(tid): t for tid, t in self._templates.items()}
