"""Fragment schema: the structured output requested from the LLM."""

from dataclasses import dataclass

from pydantic import BaseModel, Field, model_validator


class FileEntry(BaseModel):
    """One generated file of a multi-file fragment."""

    file_path: str = Field(description="Relative path to the file, including the file name.")
    file_content: str = Field(description="Full content of the file.")


class Fragment(BaseModel):
    """Generated code bundle plus the metadata needed to run it."""

    commentary: str = Field(
        description=(
            "Describe what you're about to do and the steps you want to take "
            "for generating the fragment in great detail."
        )
    )
    template: str = Field(description="Name of the template used to generate the fragment.")
    title: str = Field(description="Short title of the fragment. Max 3 words.")
    description: str = Field(description="Short description of the fragment. Max 1 sentence.")
    additional_dependencies: list[str] = Field(
        default_factory=list,
        description="Additional dependencies required by the fragment. "
        "Do not include dependencies that are already included in the template.",
    )
    has_additional_dependencies: bool = Field(
        default=False,
        description="Detect if additional dependencies that are not included "
        "in the template are required by the fragment.",
    )
    install_dependencies_command: str = Field(
        default="",
        description="Command to install additional dependencies required by the fragment.",
    )
    port: int | None = Field(
        default=None,
        description="Port number used by the resulting fragment. Null when no ports are exposed.",
    )
    file_path: str = Field(description="Relative path to the main file, including the file name.")
    code: str | list[FileEntry] = Field(
        description="Code generated by the fragment. Only runnable code is allowed. "
        "Either a single file's content or a list of files."
    )

    @model_validator(mode="after")
    def _dependencies_need_install_command(self) -> "Fragment":
        if self.has_additional_dependencies and not self.install_dependencies_command.strip():
            raise ValueError(
                "install_dependencies_command is required when has_additional_dependencies is true"
            )
        return self

    def bundle(self) -> "CodeBundle":
        """Resolve the code field into a single-file or multi-file bundle."""
        if isinstance(self.code, list):
            return MultiFile(
                files=tuple(SourceFile(f.file_path, f.file_content) for f in self.code),
                main_path=self.file_path,
            )
        return SingleFile(path=self.file_path, content=self.code)


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


@dataclass(frozen=True)
class SingleFile:
    path: str
    content: str

    @property
    def files(self) -> tuple[SourceFile, ...]:
        return (SourceFile(self.path, self.content),)

    def entrypoint(self) -> SourceFile:
        return SourceFile(self.path, self.content)

    def render(self) -> str:
        return self.content


@dataclass(frozen=True)
class MultiFile:
    files: tuple[SourceFile, ...]
    main_path: str | None = None

    def entrypoint(self) -> SourceFile:
        """The file named as main path, else the first file."""
        for source in self.files:
            if source.path == self.main_path:
                return source
        if not self.files:
            raise ValueError("multi-file bundle has no files")
        return self.files[0]

    def render(self) -> str:
        return "\n\n".join(f"// {f.path}\n{f.content}" for f in self.files)


CodeBundle = SingleFile | MultiFile
